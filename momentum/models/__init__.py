"""
Models package: import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from momentum.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from momentum.models.session import RefreshSession
from momentum.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "RefreshSession",
    "User",
]
