from .passwords import get_password_hash, verify_password
from .sessions import InMemorySessionStore, SessionStore

__all__ = [
    "InMemorySessionStore",
    "SessionStore",
    "get_password_hash",
    "verify_password",
]
