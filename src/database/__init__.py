from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from src.database.session import session_scope

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "session_scope",
    "utcnow",
]
