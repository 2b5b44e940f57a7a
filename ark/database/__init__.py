from ark.database.base import Base, JSONVariant, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from ark.database.engine import async_session, engine
from ark.database.session import get_db

__all__ = [
    "Base",
    "JSONVariant",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utcnow",
    "async_session",
    "engine",
    "get_db",
]
