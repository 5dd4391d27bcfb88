"""
Books Service Module

Catalog queries for books: the gallery listing with search, lookups by id
and by ISBN, a random pick, and saving imported books.
"""

import logging
import sqlite3
from typing import Any

from app.models.book_models import Book, BookImportRequest

from .base_database_service import DEFAULT_DB_PATH, BaseDatabaseService

# Configure logger for this module
logger = logging.getLogger(__name__)

BOOK_COLUMNS = (
    "id",
    "book_title",
    "author",
    "cover_image_url",
    "background_image_url",
    "audio_url",
    "total_duration_ms",
    "rating_avg",
    "rating_count",
    "description",
    "book_summary",
    "editorial_review",
    "customer_says",
    "purchase_link",
    "isbn_13",
    "publisher",
)


class BooksService(BaseDatabaseService):
    """
    Service class for the books table.

    Reads return Book models; failed queries are logged and surface as
    None or an empty list.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        super().__init__(db_path)

    def list_books(self, search: str | None = None) -> list[Book]:
        """
        List books newest first, optionally filtered by title or author.

        The search is a literal, case-insensitive substring match done in
        Python, so wildcard characters and non-ASCII letters match as typed.

        Args:
            search (str | None): Substring matched against the title and the
                                 author. Blank means no filter.

        Returns:
            list[Book]: Matching books ordered by created_at descending
        """
        term = (search or "").strip().casefold()
        rows = self.fetch_all("SELECT * FROM books ORDER BY created_at DESC")

        books = [Book(**row) for row in rows]
        if term:
            books = [
                book
                for book in books
                if term in book.book_title.casefold() or term in book.author.casefold()
            ]

        logger.info(
            f"Retrieved {len(books)} books" + (f" matching '{term}'" if term else "")
        )
        return books

    def get_by_id(self, book_id: str) -> Book | None:
        row = self.fetch_one("SELECT * FROM books WHERE id = ?", (book_id,))
        if row is None:
            logger.warning(f"Book not found: {book_id}")
            return None
        return Book(**row)

    def get_by_isbn(self, isbn: str) -> Book | None:
        row = self.fetch_one("SELECT * FROM books WHERE isbn_13 = ?", (isbn,))
        if row is None:
            logger.warning(f"Book not found for ISBN {isbn}")
            return None
        return Book(**row)

    def get_random(self) -> Book | None:
        row = self.fetch_one("SELECT * FROM books ORDER BY RANDOM() LIMIT 1")
        return Book(**row) if row else None

    def write_book(self, conn: sqlite3.Connection, book: BookImportRequest) -> str:
        """
        Upsert a book on an open connection without committing.

        Args:
            conn (sqlite3.Connection): Connection the caller commits
            book (BookImportRequest): Book fields; a new id is generated when missing

        Returns:
            str: The book id

        Raises:
            sqlite3.IntegrityError: If another book already has the same ISBN
        """
        book_id = book.id or self.generate_id()
        values: dict[str, Any] = book.model_dump(exclude={"pages"})
        values["id"] = book_id
        now = self.get_current_timestamp()

        columns = ", ".join(BOOK_COLUMNS)
        placeholders = ", ".join("?" for _ in BOOK_COLUMNS)
        updates = ", ".join(
            f"{column} = excluded.{column}" for column in BOOK_COLUMNS if column != "id"
        )

        conn.execute(
            f"""
            INSERT INTO books ({columns}, created_at, updated_at)
            VALUES ({placeholders}, ?, ?)
            ON CONFLICT(id) DO UPDATE SET {updates},
                updated_at = excluded.updated_at
            """,
            tuple(values[column] for column in BOOK_COLUMNS) + (now, now),
        )
        return book_id

    def delete_book(self, book_id: str) -> bool:
        """Delete a book; its pages go with it through the foreign key"""
        try:
            with self.get_connection() as conn:
                cursor = conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
                conn.commit()
                deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted book {book_id}")
            else:
                logger.warning(f"No book found to delete: {book_id}")
            return deleted
        except Exception as e:
            logger.error(f"Error deleting book {book_id}: {e}")
            return False
