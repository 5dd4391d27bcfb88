"""
Base Database Service Module

This module provides shared database utilities and connection management
for the catalog services (books and pages).
"""

import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any

# Configure logger for this module
logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/audiobooks.db"


class BaseDatabaseService:
    """
    Base class providing shared database utilities and connection management.

    Handles connection setup, creation of the data directory and the small
    helpers the specialized catalog services share.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """
        Initialize the base database service.

        Args:
            db_path (str): Path to the SQLite database file. Defaults to "data/audiobooks.db".
                          The directory will be created if it doesn't exist.
        """
        self.db_path = db_path
        self._ensure_data_dir()

    def _ensure_data_dir(self):
        data_dir = os.path.dirname(self.db_path)
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir)

    @contextmanager
    def get_connection(self):
        """Context manager for database connections with name-based row access"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def fetch_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        """
        Run a SELECT and return the first row as a dictionary.

        Returns:
            dict | None: The row, or None if there is no match or the query failed
        """
        try:
            with self.get_connection() as conn:
                row = conn.execute(query, params).fetchone()
                return dict(row) if row else None
        except sqlite3.Error as e:
            logger.error(f"Database query error: {e}")
            return None

    def fetch_all(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        """
        Run a SELECT and return all rows as dictionaries.

        Returns:
            list[dict]: The rows, or an empty list if the query failed
        """
        try:
            with self.get_connection() as conn:
                rows = conn.execute(query, params).fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"Database query error: {e}")
            return []

    def get_current_timestamp(self) -> str:
        """
        Get current timestamp for database operations.

        Microseconds are kept so that rows inserted in the same second still
        sort newest first.
        """
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())
