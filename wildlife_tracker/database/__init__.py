"""Database module for FastAPI backend"""

from .connection import check_connection, create_db_engine, create_session_factory, get_db

__all__ = ['check_connection', 'create_db_engine', 'create_session_factory', 'get_db']
