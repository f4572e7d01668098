"""Database session exports."""

from quotaflow.db.session import (
    AsyncSessionLocal,
    dispose_engine,
    engine,
    get_db,
    get_db_context,
)

__all__ = ["AsyncSessionLocal", "dispose_engine", "engine", "get_db", "get_db_context"]
