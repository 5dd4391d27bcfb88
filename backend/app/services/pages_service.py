"""
Pages Service Module

Stores the ordered pages of each book together with their word timing data
(serialized as JSON).
"""

import json
import logging
import sqlite3

from pydantic import ValidationError

from app.models.book_models import Page, PageCreate, WordData

from .base_database_service import DEFAULT_DB_PATH, BaseDatabaseService

# Configure logger for this module
logger = logging.getLogger(__name__)


class PagesService(BaseDatabaseService):
    """Service class for the pages table"""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        super().__init__(db_path)

    def get_pages(self, book_id: str) -> list[Page]:
        """
        Get the pages of a book ordered by page_order.

        Args:
            book_id (str): Book the pages belong to

        Returns:
            list[Page]: Pages in reading order (empty if none or on query failure)

        Raises:
            ValueError: If stored word data is malformed
        """
        rows = self.fetch_all(
            """
            SELECT id, book_id, page_order, text, word_data, created_at, updated_at
            FROM pages
            WHERE book_id = ?
            ORDER BY page_order ASC
            """,
            (book_id,),
        )

        pages = []
        for row in rows:
            try:
                word_data = WordData(**json.loads(row["word_data"] or "{}"))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Malformed word data on page {row['id']}: {e}")
                raise ValueError(
                    f"Malformed word data on page {row['page_order']}"
                ) from e
            row["word_data"] = word_data
            pages.append(Page(**row))

        logger.info(f"Retrieved {len(pages)} pages for book {book_id}")
        return pages

    def write_pages(
        self, conn: sqlite3.Connection, book_id: str, pages: list[PageCreate]
    ):
        """
        Replace the pages of a book on an open connection without committing.

        Raises:
            ValueError: If two pages share the same page_order
        """
        orders = [page.page_order for page in pages]
        if len(orders) != len(set(orders)):
            raise ValueError("page_order values must be unique within a book")

        now = self.get_current_timestamp()
        conn.execute("DELETE FROM pages WHERE book_id = ?", (book_id,))
        conn.executemany(
            """
            INSERT INTO pages
            (id, book_id, page_order, text, word_data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    self.generate_id(),
                    book_id,
                    page.page_order,
                    page.text,
                    page.word_data.model_dump_json(),
                    now,
                    now,
                )
                for page in pages
            ],
        )
