"""
Refresh session model: one row per logged-in device/client.

Rows are only ever inserted or deleted by single statements, never
rewritten as a list, so concurrent logins for the same user cannot
overwrite each other. A row is valid while ``expires_at`` is in the
future; expired rows are deleted opportunistically on login and by
the cleanup script.

The refresh token is stored as a SHA-256 hash.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from momentum.models.base import Base, utcnow


class RefreshSession(Base):
    __tablename__ = "refresh_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_refresh_sessions_user_token", "user_id", "token_hash"),
        Index("ix_refresh_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<RefreshSession user={self.user_id} expires={self.expires_at}>"
