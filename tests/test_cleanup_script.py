from datetime import timedelta

import pytest

from conftest import TEST_EMAIL, TEST_NAME, TEST_PASSWORD
from momentum.models.base import utcnow
from momentum.scripts.cleanup_sessions import cleanup
from momentum.services import session_service


async def _user_with_stale_session(authority, db_session):
    registered = await authority.register(TEST_NAME, TEST_EMAIL, TEST_PASSWORD)
    await session_service.append_refresh_session(
        registered.user.id, "stale-token", utcnow() - timedelta(days=1), db_session,
    )
    await db_session.commit()
    return registered.user


@pytest.mark.asyncio
async def test_cleanup_removes_expired_sessions(settings, authority, db_session, capsys):
    user = await _user_with_stale_session(authority, db_session)

    assert await cleanup(settings) == 1
    assert await session_service.count_sessions(user.id, db_session) == 1
    assert "Removed 1 expired" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_cleanup_for_one_user(settings, authority, db_session):
    await _user_with_stale_session(authority, db_session)

    assert await cleanup(settings, "nobody@x.com") == 0
    assert await cleanup(settings, TEST_EMAIL.upper()) == 1
