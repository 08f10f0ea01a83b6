"""
Authentication service: the Session Authority.

Handles:
- Registration and login (bcrypt, run on the thread pool)
- Access / refresh token issuance
- Refresh-token verification against the server-side session table,
  with optional rotation
- Logout of one session or of every session
- Password change and the reset-challenge flow
- Email verification challenges

Rules that hold across every method:
- Login, refresh and reset failures are undifferentiated: one error
  per boundary, whatever actually failed.
- Any write is committed before tokens are handed back.
- A password change or reset revokes every refresh session.
- Out-of-band delivery is best-effort and never undoes a commit.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.config import Settings
from momentum.core.errors import (
    CurrentPasswordMismatchError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    MissingTokenError,
    NotificationError,
    UserNotFoundError,
)
from momentum.core.security import (
    PasswordHasher,
    TokenSigner,
    generate_challenge_token,
    hash_token,
)
from momentum.models.base import utcnow
from momentum.models.session import RefreshSession
from momentum.models.user import User
from momentum.services import session_service, user_service
from momentum.services.email_service import Notifier

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If that email is registered, reset instructions are on their way"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class RefreshResult:
    access_token: str
    refresh_token: str | None = None  # set only when rotation is enabled


class SessionAuthority:
    def __init__(
        self,
        db: AsyncSession,
        *,
        settings: Settings,
        signer: TokenSigner,
        hasher: PasswordHasher,
        notifier: Notifier,
    ):
        self._db = db
        self._settings = settings
        self._signer = signer
        self._hasher = hasher
        self._notifier = notifier

    # ── Helpers ──────────────────────────────────────────────────────

    async def _open_session(self, user_id: uuid.UUID) -> TokenPair:
        """Mint a token pair and record the refresh half server-side."""
        access = self._signer.sign_access(user_id)
        refresh = self._signer.sign_refresh(user_id)
        await session_service.append_refresh_session(
            user_id, refresh.token, refresh.expires_at, self._db,
        )
        return TokenPair(access_token=access.token, refresh_token=refresh.token)

    async def _notify(
        self,
        send: Callable[[str, str, str], Awaitable[None]],
        user: User,
        token: str,
    ) -> None:
        try:
            await send(user.email, user.name, token)
        except NotificationError:
            logger.warning("Out-of-band delivery failed for user %s; state change kept", user.id)

    # ── Register / Login ─────────────────────────────────────────────

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        if await user_service.get_by_email(email, self._db) is not None:
            raise EmailAlreadyRegisteredError()

        password_hash = await run_in_threadpool(self._hasher.hash, password)
        try:
            user = await user_service.create_user(name, email, password_hash, self._db)
        except IntegrityError:
            # lost a race with a concurrent registration of the same email
            await self._db.rollback()
            raise EmailAlreadyRegisteredError()

        tokens = await self._open_session(user.id)
        raw_challenge, challenge_hash = generate_challenge_token()
        await user_service.set_verification_challenge(user, challenge_hash, self._db)
        await self._db.commit()
        logger.info("Registered user %s", user.id)

        await self._notify(self._notifier.send_email_verification, user, raw_challenge)
        return AuthResult(user=user, tokens=tokens)

    async def login(self, email: str, password: str) -> AuthResult:
        user = await user_service.get_by_email_with_credentials(email, self._db)
        if user is None:
            await run_in_threadpool(self._hasher.verify_dummy, password)
            raise InvalidCredentialsError()

        if not await run_in_threadpool(self._hasher.verify, password, user.password_hash):
            raise InvalidCredentialsError()

        now = utcnow()
        await user_service.record_login(user, now, self._db)
        tokens = await self._open_session(user.id)
        pruned = await session_service.prune_expired_sessions(user.id, now, self._db)
        await self._db.commit()
        logger.info("User %s logged in (%d expired sessions pruned)", user.id, pruned)
        return AuthResult(user=user, tokens=tokens)

    # ── Refresh / Logout ─────────────────────────────────────────────

    async def refresh(self, refresh_token: str | None) -> RefreshResult:
        if not refresh_token:
            raise MissingTokenError()

        claims = self._signer.verify_refresh(refresh_token)
        session = await session_service.get_active_session(
            claims.user_id, refresh_token, utcnow(), self._db,
        )
        if session is None:
            raise InvalidTokenError()

        if not self._settings.REFRESH_TOKEN_ROTATION:
            return RefreshResult(access_token=self._signer.sign_access(claims.user_id).token)

        removed = await session_service.remove_refresh_session(
            claims.user_id, refresh_token, self._db,
        )
        if not removed:
            # a concurrent refresh already spent this token
            await self._db.rollback()
            raise InvalidTokenError()
        tokens = await self._open_session(claims.user_id)
        await self._db.commit()
        return RefreshResult(access_token=tokens.access_token, refresh_token=tokens.refresh_token)

    async def logout(self, user_id: uuid.UUID, refresh_token: str | None = None) -> int:
        """Revoke one session (by token) or, without a token, all of them."""
        if refresh_token:
            removed = await session_service.remove_refresh_session(
                user_id, refresh_token, self._db,
            )
        else:
            removed = await session_service.clear_refresh_sessions(user_id, self._db)
        await self._db.commit()
        logger.info("User %s logged out (%d sessions revoked)", user_id, removed)
        return removed

    # ── Password lifecycle ───────────────────────────────────────────

    async def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        user = await user_service.get_by_id_with_credentials(user_id, self._db)
        if user is None:
            raise UserNotFoundError()

        if not await run_in_threadpool(self._hasher.verify, current_password, user.password_hash):
            raise CurrentPasswordMismatchError()

        new_hash = await run_in_threadpool(self._hasher.hash, new_password)
        await user_service.update_password_hash(user, new_hash, self._db)
        revoked = await session_service.clear_refresh_sessions(user.id, self._db)
        await self._db.commit()
        logger.info("User %s changed password (%d sessions revoked)", user.id, revoked)

    async def request_password_reset(self, email: str) -> str:
        """Always returns the same message, whether or not the email exists."""
        user = await user_service.get_by_email(email, self._db)
        if user is None:
            return RESET_REQUESTED_MESSAGE

        raw_token, token_hash = generate_challenge_token()
        expires_at = utcnow() + timedelta(minutes=self._settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await user_service.set_reset_challenge(user, token_hash, expires_at, self._db)
        await self._db.commit()
        logger.info("Password reset requested for user %s", user.id)

        await self._notify(self._notifier.send_password_reset, user, raw_token)
        return RESET_REQUESTED_MESSAGE

    async def reset_password(self, token: str, new_password: str) -> None:
        if not token:
            raise InvalidOrExpiredTokenError()

        user = await user_service.get_by_reset_token(hash_token(token), utcnow(), self._db)
        if user is None:
            raise InvalidOrExpiredTokenError()

        new_hash = await run_in_threadpool(self._hasher.hash, new_password)
        await user_service.update_password_hash(user, new_hash, self._db)
        revoked = await session_service.clear_refresh_sessions(user.id, self._db)
        await self._db.commit()
        logger.info("User %s reset password (%d sessions revoked)", user.id, revoked)

    # ── Email verification ───────────────────────────────────────────

    async def verify_email(self, token: str) -> None:
        if not token:
            raise InvalidOrExpiredTokenError()
        user = await user_service.get_by_verification_token(hash_token(token), self._db)
        if user is None:
            raise InvalidOrExpiredTokenError()
        await user_service.mark_email_verified(user, self._db)
        await self._db.commit()

    # ── Profile & sessions ───────────────────────────────────────────

    async def get_current_user(self, user_id: uuid.UUID) -> User:
        user = await user_service.get_by_id(user_id, self._db)
        if user is None:
            raise UserNotFoundError()
        return user

    async def list_sessions(self, user_id: uuid.UUID) -> list[RefreshSession]:
        return await session_service.list_active_sessions(user_id, utcnow(), self._db)

    async def revoke_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> None:
        """Revoke one device's session.  Unknown ids are not an error."""
        await session_service.remove_session_by_id(user_id, session_id, self._db)
        await self._db.commit()
