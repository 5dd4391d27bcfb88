"""
Player Session Service

Keeps one PlaybackSynchronizer per open player view. A session is created
when a client opens a book and is driven through the player endpoints until
it is closed or goes stale.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.models.book_models import Book

from .database_service import DatabaseService
from .playback_synchronizer import (
    MediaPosition,
    PlaybackSynchronizer,
    SynchronizerConfig,
)

logger = logging.getLogger(__name__)


class BookNotFoundError(LookupError):
    """Raised when a player is opened for a book that does not exist"""


@dataclass
class PlayerSession:
    """An open player for one book"""

    session_id: str
    book: Book
    synchronizer: PlaybackSynchronizer
    created_at: datetime = field(default_factory=datetime.now)
    last_active: datetime = field(default_factory=datetime.now)

    def touch(self):
        self.last_active = datetime.now()


class PlayerSessionService:
    """Registry of open player sessions"""

    def __init__(
        self,
        database: DatabaseService,
        config: SynchronizerConfig | None = None,
        max_idle: timedelta = timedelta(hours=2),
    ):
        self.database = database
        self.config = config or SynchronizerConfig()
        self._sessions: dict[str, PlayerSession] = {}
        self._max_idle = max_idle

    def create_session(
        self, book_id: str | None = None, isbn: str | None = None
    ) -> PlayerSession:
        """
        Open a player for a book.

        Args:
            book_id: Book identifier (takes precedence over isbn)
            isbn: ISBN-13 of the book

        Returns:
            The new session

        Raises:
            ValueError: If neither book_id nor isbn is given, or page data is malformed
            BookNotFoundError: If the book does not exist
        """
        self.cleanup_stale_sessions()

        if book_id:
            book = self.database.get_book(book_id)
        elif isbn:
            book = self.database.get_book_by_isbn(isbn)
        else:
            raise ValueError("Either book_id or isbn is required")

        if book is None:
            raise BookNotFoundError("Book not found")

        pages = self.database.get_book_pages(book.id)
        media = MediaPosition(duration=book.total_duration_ms / 1000)
        synchronizer = PlaybackSynchronizer(pages, media, self.config)

        session = PlayerSession(
            session_id=str(uuid.uuid4()), book=book, synchronizer=synchronizer
        )
        self._sessions[session.session_id] = session
        logger.info(
            f"Opened player session {session.session_id} for book {book.id} ({len(pages)} pages)"
        )
        return session

    def get_session(self, session_id: str) -> PlayerSession | None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def close_session(self, session_id: str) -> bool:
        """
        Close a session and cancel any highlight walk in flight.

        Returns:
            True if the session existed
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.warning(f"Player session {session_id} not found for closing")
            return False
        session.synchronizer.close()
        logger.info(f"Closed player session {session_id}")
        return True

    def get_active_sessions(self) -> dict[str, PlayerSession]:
        return self._sessions.copy()

    def cleanup_stale_sessions(self) -> int:
        """
        Close sessions that have been idle longer than the configured limit

        Returns:
            Number of sessions closed
        """
        now = datetime.now()
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_active > self._max_idle
        ]

        for session_id in stale:
            self._sessions.pop(session_id).synchronizer.close()

        if stale:
            logger.info(f"Cleaned up {len(stale)} stale player sessions")

        return len(stale)
