"""Database layer for ofxledger application."""

from ofxledger.database.base import Database
from ofxledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
