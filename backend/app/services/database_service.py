"""
Database Service Module

This module provides the facade over the audiobook catalog. It owns the
schema and coordinates the specialized services:

1. Books - catalog entries shown in the gallery
2. Pages - ordered pages of a book with their word timing data
"""

import logging
import os
import sqlite3

from app.models.book_models import Book, BookImportRequest, BookInfo, BookSummary, Page

from .base_database_service import DEFAULT_DB_PATH
from .books_service import BooksService
from .pages_service import PagesService
from .playback_synchronizer import format_time

# Configure logger for this module
logger = logging.getLogger(__name__)


class DatabaseService:
    """
    A facade service class for the audiobook catalog stored in SQLite.

    It delegates operations to:
    - BooksService: gallery listing and book lookups
    - PagesService: pages and word timings of a book

    The database is automatically initialized with the required schema on first use.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """
        Initialize the database service and its specialized services.

        Args:
            db_path (str): Path to the SQLite database file. Defaults to "data/audiobooks.db".
                          The directory will be created if it doesn't exist.
        """
        self.db_path = db_path

        self._ensure_data_dir()
        self._init_database()

        # Initialize specialized services
        self.books = BooksService(db_path)
        self.pages = PagesService(db_path)

    def _ensure_data_dir(self):
        data_dir = os.path.dirname(self.db_path)
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir)

    def _init_database(self):
        """
        Initialize the database with required tables and indexes.

        Creates two tables:
        1. books: catalog metadata for each audiobook
        2. pages: ordered pages with text and word timing JSON
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS books (
                    id TEXT PRIMARY KEY,                   -- UUID of the book
                    book_title TEXT NOT NULL,
                    author TEXT NOT NULL,
                    cover_image_url TEXT DEFAULT '',
                    background_image_url TEXT DEFAULT '',
                    audio_url TEXT DEFAULT '',
                    total_duration_ms INTEGER DEFAULT 0,   -- Length of the audio track
                    rating_avg REAL DEFAULT 0.0,
                    rating_count INTEGER DEFAULT 0,
                    description TEXT DEFAULT '',
                    book_summary TEXT DEFAULT '',
                    editorial_review TEXT,
                    customer_says TEXT,
                    purchase_link TEXT DEFAULT '',
                    isbn_13 TEXT UNIQUE,
                    publisher TEXT DEFAULT '',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS pages (
                    id TEXT PRIMARY KEY,
                    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
                    page_order INTEGER NOT NULL,          -- Reading order within the book
                    text TEXT DEFAULT '',                 -- Display text of the page
                    word_data TEXT NOT NULL,              -- JSON {words, start_times, end_times}
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (book_id, page_order)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_books_created
                ON books(created_at)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_pages_book_order
                ON pages(book_id, page_order)
            """)

            conn.commit()

    # ========================================
    # GALLERY
    # ========================================

    def list_books(self, search: str | None = None) -> list[Book]:
        return self.books.list_books(search)

    def list_book_summaries(self, search: str | None = None) -> list[BookSummary]:
        """Gallery cards for all books matching the search"""
        return [
            BookSummary(
                id=book.id,
                book_title=book.book_title,
                author=book.author,
                cover_image_url=book.cover_image_url,
                isbn_13=book.isbn_13,
                rating_avg=book.rating_avg,
                rating_count=book.rating_count,
                duration_minutes=book.total_duration_ms // 60000,
            )
            for book in self.books.list_books(search)
        ]

    def get_book(self, book_id: str) -> Book | None:
        return self.books.get_by_id(book_id)

    def get_book_by_isbn(self, isbn: str) -> Book | None:
        return self.books.get_by_isbn(isbn)

    def get_random_book(self) -> Book | None:
        return self.books.get_random()

    def get_book_pages(self, book_id: str) -> list[Page]:
        return self.pages.get_pages(book_id)

    def get_book_info(self, book_id: str) -> BookInfo | None:
        """
        Build the info panel payload for a book.

        Returns:
            BookInfo | None: Book details with formatted duration, or None if not found
        """
        book = self.books.get_by_id(book_id)
        if book is None:
            return None

        return BookInfo(
            id=book.id,
            book_title=book.book_title,
            author=book.author,
            publisher=book.publisher,
            isbn_13=book.isbn_13,
            description=book.description,
            book_summary=book.book_summary,
            editorial_review=book.editorial_review,
            customer_says=book.customer_says,
            purchase_link=book.purchase_link,
            rating_avg=book.rating_avg,
            rating_count=book.rating_count,
            duration_minutes=book.total_duration_ms // 60000,
            duration_display=format_time(book.total_duration_ms / 1000),
        )

    # ========================================
    # CATALOG LOADING
    # ========================================

    def import_book(self, book: BookImportRequest) -> str | None:
        """
        Save a book and replace its pages in one transaction.

        Word data has already been validated by the request model, so a
        malformed book never reaches the database. If any write fails nothing
        is committed.

        Args:
            book (BookImportRequest): Book metadata and pages

        Returns:
            str | None: The book id, or None if the write failed

        Raises:
            ValueError: If two pages share the same page_order or another
                        book already uses the ISBN
        """
        orders = [page.page_order for page in book.pages]
        if len(orders) != len(set(orders)):
            raise ValueError("page_order values must be unique within a book")

        try:
            with self.books.get_connection() as conn:
                book_id = self.books.write_book(conn, book)
                self.pages.write_pages(conn, book_id, book.pages)
                conn.commit()
        except sqlite3.IntegrityError as e:
            if "isbn_13" in str(e):
                logger.warning(f"Rejected import of '{book.book_title}': {e}")
                raise ValueError(
                    f"A book with ISBN {book.isbn_13} already exists"
                ) from e
            logger.error(f"Error importing book '{book.book_title}': {e}")
            return None
        except sqlite3.Error as e:
            logger.error(f"Error importing book '{book.book_title}': {e}")
            return None

        logger.info(
            f"Imported book {book_id} '{book.book_title}' with {len(book.pages)} pages"
        )
        return book_id

    def delete_book(self, book_id: str) -> bool:
        return self.books.delete_book(book_id)


# Global instance
db_service = DatabaseService(os.environ.get("AUDIOBOOK_DB_PATH", DEFAULT_DB_PATH))
