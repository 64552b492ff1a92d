"""Database module for the agent memory engine."""

from agent_memory.database.sqlite_manager import SQLiteManager, get_db_manager

__all__ = ['SQLiteManager', 'get_db_manager']
