"""
Services Package

This package contains the catalog database services (books and pages), the
facade that coordinates them, and the playback synchronization used by
player sessions.
"""

from .base_database_service import BaseDatabaseService
from .books_service import BooksService
from .database_service import DatabaseService, db_service
from .pages_service import PagesService
from .playback_synchronizer import PlaybackSynchronizer, SynchronizerConfig
from .player_session_service import PlayerSessionService

__all__ = [
    "DatabaseService",
    "db_service",
    "BooksService",
    "PagesService",
    "BaseDatabaseService",
    "PlaybackSynchronizer",
    "SynchronizerConfig",
    "PlayerSessionService",
]
