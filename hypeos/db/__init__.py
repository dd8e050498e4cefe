"""
Database Module - SQLAlchemy persistence for engine state.
"""

from hypeos.db.database import create_db_engine, init_db, make_session_factory, session_scope

__all__ = ["create_db_engine", "init_db", "make_session_factory", "session_scope"]
