"""Database package with session management."""

from checkout.db.session import async_session_maker, dispose_engine, engine, get_session, init_models

__all__ = [
    "async_session_maker",
    "dispose_engine",
    "engine",
    "get_session",
    "init_models",
]
