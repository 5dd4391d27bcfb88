"""
Shared fixtures.

The module-level db_service singleton is created on import, so point it at a
throwaway database before any app module is imported.
"""

import os
import tempfile

import pytest

os.environ.setdefault(
    "AUDIOBOOK_DB_PATH",
    os.path.join(tempfile.mkdtemp(prefix="audiobook-tests-"), "audiobooks.db"),
)

from app.models.book_models import BookImportRequest  # noqa: E402
from app.services.database_service import DatabaseService  # noqa: E402


@pytest.fixture
def temp_db_path():
    """Create temporary database path"""
    with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".db") as f:
        db_path = f.name

    yield db_path

    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def database(temp_db_path):
    """DatabaseService instance with temp database"""
    return DatabaseService(db_path=temp_db_path)


@pytest.fixture
def sample_book():
    """A two page book whose page spans leave a small gap between them"""
    return BookImportRequest(
        book_title="The Cat Book",
        author="Jane Writer",
        isbn_13="9780000000001",
        total_duration_ms=2_400,
        rating_avg=4.5,
        rating_count=12,
        description="A short book about a cat.",
        purchase_link="https://example.com/cat",
        publisher="Small Press",
        pages=[
            {
                "page_order": 1,
                "text": "The cat sat",
                "word_data": {
                    "words": ["The", "cat", "sat"],
                    "start_times": [0.0, 0.5, 1.0],
                    "end_times": [0.4, 0.9, 1.4],
                },
            },
            {
                "page_order": 2,
                "text": "on mats",
                "word_data": {
                    "words": ["on", "mats"],
                    "start_times": [1.5, 2.0],
                    "end_times": [1.9, 2.4],
                },
            },
        ],
    )
