from .async_db import create_db_and_tables, create_engine_for, get_async_db, get_engine, get_session_factory

__all__ = [
    "create_db_and_tables",
    "create_engine_for",
    "get_async_db",
    "get_engine",
    "get_session_factory",
]
