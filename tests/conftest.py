"""
Shared test fixtures and utilities.

Every test gets a throw-away SQLite database (via aiosqlite) in its own
tmp dir, settings with a cheap bcrypt cost, and a notifier that
records messages instead of sending them.
"""

from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.config import Settings
from momentum.core.database import Database
from momentum.core.errors import NotificationError
from momentum.core.security import PasswordHasher, TokenSigner
from momentum.models import Base
from momentum.services.auth_service import SessionAuthority

TEST_NAME = "A"
TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "Abcdef1!"


@dataclass
class SentMessage:
    kind: str
    to: str
    name: str
    token: str


class RecordingNotifier:
    """Captures out-of-band messages; set ``fail`` to simulate an SMTP outage."""

    def __init__(self):
        self.sent: list[SentMessage] = []
        self.fail = False

    async def send_password_reset(self, to: str, name: str, token: str) -> None:
        self._record("password_reset", to, name, token)

    async def send_email_verification(self, to: str, name: str, token: str) -> None:
        self._record("email_verification", to, name, token)

    def _record(self, kind: str, to: str, name: str, token: str) -> None:
        if self.fail:
            raise NotificationError("SMTP unavailable")
        self.sent.append(SentMessage(kind=kind, to=to, name=name, token=token))

    def last(self, kind: str) -> SentMessage:
        return [m for m in self.sent if m.kind == kind][-1]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET="test-access-secret",
        JWT_REFRESH_SECRET="test-refresh-secret",
        BCRYPT_ROUNDS=4,
        EMAIL_ENABLED=False,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def signer(settings: Settings) -> TokenSigner:
    return TokenSigner.from_settings(settings)


@pytest_asyncio.fixture
async def database(settings: Settings):
    database = Database.from_settings(settings)
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database):
    async with database.session_factory() as session:
        yield session


def make_authority(
    session: AsyncSession,
    settings: Settings,
    notifier: RecordingNotifier,
) -> SessionAuthority:
    return SessionAuthority(
        session,
        settings=settings,
        signer=TokenSigner.from_settings(settings),
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        notifier=notifier,
    )


@pytest.fixture
def authority(db_session, settings, notifier) -> SessionAuthority:
    return make_authority(db_session, settings, notifier)
