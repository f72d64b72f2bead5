"""Database package."""

from app.db.base import Base, get_engine, get_session_maker, init_db

__all__ = ["Base", "get_engine", "get_session_maker", "init_db"]
