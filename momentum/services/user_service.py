"""
User record store: lookups and targeted column updates.

Default reads leave ``password_hash`` unloaded; use the
``*_with_credentials`` variants when a password must be checked.
Emails are normalized here so every lookup agrees on one form.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from momentum.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_by_id(user_id: uuid.UUID, db: AsyncSession) -> User | None:
    return await db.get(User, user_id)


async def get_by_id_with_credentials(user_id: uuid.UUID, db: AsyncSession) -> User | None:
    stmt = select(User).options(undefer(User.password_hash)).where(User.id == user_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_by_email(email: str, db: AsyncSession) -> User | None:
    stmt = select(User).where(User.email == normalize_email(email))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_by_email_with_credentials(email: str, db: AsyncSession) -> User | None:
    stmt = (
        select(User)
        .options(undefer(User.password_hash))
        .where(User.email == normalize_email(email))
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    name: str,
    email: str,
    password_hash: str,
    db: AsyncSession,
) -> User:
    """Insert a new user.  Raises ``IntegrityError`` if the email is taken."""
    user = User(
        id=uuid.uuid4(),
        name=name.strip(),
        email=normalize_email(email),
        password_hash=password_hash,
    )
    db.add(user)
    await db.flush()
    return user


async def record_login(user: User, at: datetime, db: AsyncSession) -> None:
    user.last_login_at = at
    await db.flush()


async def update_password_hash(user: User, password_hash: str, db: AsyncSession) -> None:
    """Replace the hash and drop any outstanding reset challenge."""
    user.password_hash = password_hash
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.flush()


# ── Password reset challenge ────────────────────────────────────────


async def set_reset_challenge(
    user: User,
    token_hash: str,
    expires_at: datetime,
    db: AsyncSession,
) -> None:
    """Store a new challenge, overwriting any previous one."""
    user.password_reset_token = token_hash
    user.password_reset_expires = expires_at
    await db.flush()


async def get_by_reset_token(
    token_hash: str,
    now: datetime,
    db: AsyncSession,
) -> User | None:
    """Match the hash *and* require an unexpired challenge in one query."""
    stmt = (
        select(User)
        .options(undefer(User.password_hash))
        .where(
            User.password_reset_token == token_hash,
            User.password_reset_expires > now,
        )
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


# ── Email verification ───────────────────────────────────────────────


async def set_verification_challenge(user: User, token_hash: str, db: AsyncSession) -> None:
    user.email_verification_token = token_hash
    await db.flush()


async def get_by_verification_token(token_hash: str, db: AsyncSession) -> User | None:
    stmt = select(User).where(
        User.email_verification_token == token_hash,
        User.is_email_verified == False,  # noqa: E712
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def mark_email_verified(user: User, db: AsyncSession) -> None:
    user.is_email_verified = True
    user.email_verification_token = None
    await db.flush()
