"""
Refresh-session service: the only write path for ``refresh_sessions``.

Handles:
- Appending a session at login / register (single INSERT)
- Pruning expired sessions (single DELETE)
- Revoking one session by token or by id (logout, device revoke)
- Revoking all sessions for a user (logout everywhere, password change)
- Looking up an unexpired session during token refresh

Every mutation is one statement, so concurrent logins for the same
user cannot lose each other's sessions.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.security import hash_token
from momentum.models.session import RefreshSession


async def append_refresh_session(
    user_id: uuid.UUID,
    refresh_token: str,
    expires_at: datetime,
    db: AsyncSession,
) -> RefreshSession:
    session = RefreshSession(
        id=uuid.uuid4(),
        user_id=user_id,
        token_hash=hash_token(refresh_token),
        created_at=datetime.now(timezone.utc),
        expires_at=expires_at,
    )
    db.add(session)
    await db.flush()
    return session


async def prune_expired_sessions(
    user_id: uuid.UUID,
    now: datetime,
    db: AsyncSession,
) -> int:
    """Delete every session of the user whose ``expires_at <= now``."""
    stmt = delete(RefreshSession).where(
        RefreshSession.user_id == user_id,
        RefreshSession.expires_at <= now,
    ).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    return result.rowcount


async def get_active_session(
    user_id: uuid.UUID,
    refresh_token: str,
    now: datetime,
    db: AsyncSession,
) -> RefreshSession | None:
    stmt = select(RefreshSession).where(
        RefreshSession.user_id == user_id,
        RefreshSession.token_hash == hash_token(refresh_token),
        RefreshSession.expires_at > now,
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_active_sessions(
    user_id: uuid.UUID,
    now: datetime,
    db: AsyncSession,
) -> list[RefreshSession]:
    """Return the user's unexpired sessions, newest first."""
    stmt = (
        select(RefreshSession)
        .where(
            RefreshSession.user_id == user_id,
            RefreshSession.expires_at > now,
        )
        .order_by(RefreshSession.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_sessions(user_id: uuid.UUID, db: AsyncSession) -> int:
    """Count every stored session, expired or not."""
    stmt = (
        select(func.count())
        .select_from(RefreshSession)
        .where(RefreshSession.user_id == user_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def remove_refresh_session(
    user_id: uuid.UUID,
    refresh_token: str,
    db: AsyncSession,
) -> int:
    """Revoke the session holding this token.  Removing nothing is fine."""
    stmt = delete(RefreshSession).where(
        RefreshSession.user_id == user_id,
        RefreshSession.token_hash == hash_token(refresh_token),
    ).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    return result.rowcount


async def remove_session_by_id(
    user_id: uuid.UUID,
    session_id: uuid.UUID,
    db: AsyncSession,
) -> int:
    stmt = delete(RefreshSession).where(
        RefreshSession.user_id == user_id,
        RefreshSession.id == session_id,
    ).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    return result.rowcount


async def clear_refresh_sessions(user_id: uuid.UUID, db: AsyncSession) -> int:
    """
    Revoke every session for a given user.

    Returns the number of sessions removed.
    Used by logout-everywhere, password change and password reset.
    """
    stmt = (
        delete(RefreshSession)
        .where(RefreshSession.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def cleanup_expired_sessions(
    db: AsyncSession,
    user_id: uuid.UUID | None = None,
) -> int:
    """Delete expired sessions for one user, or for everyone."""
    stmt = delete(RefreshSession).where(
        RefreshSession.expires_at <= datetime.now(timezone.utc),
    ).execution_options(synchronize_session=False)
    if user_id is not None:
        stmt = stmt.where(RefreshSession.user_id == user_id)
    result = await db.execute(stmt)
    return result.rowcount
