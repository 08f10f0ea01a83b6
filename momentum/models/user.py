"""
User model: the credential record.

Design decisions:
- ``email`` is stored normalized (trimmed, lower-cased) and carries a
  unique index, so the one-account-per-email rule holds at the
  storage layer even when two registrations race.
- ``password_hash`` is deferred: ordinary reads never load it, only
  the explicit "with credentials" queries do.
- Reset and verification challenges store a SHA-256 of the raw token,
  never the token itself.
- Refresh sessions live in their own table (see ``session.py``).
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from momentum.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False, deferred=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # ── Email verification ───────────────────────────────────────────
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_verification_token: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )

    # ── Password reset challenge (at most one outstanding) ───────────
    password_reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    password_reset_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
