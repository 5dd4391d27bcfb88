"""
Book Type Models

Pydantic models for books, pages and the per-page word timing data that
drives highlight synchronization.
"""

import logging

from pydantic import BaseModel, Field, FiniteFloat, model_validator

logger = logging.getLogger(__name__)


class WordData(BaseModel):
    """
    Word timing block of a page.

    Three parallel arrays aligned by index: each (word, start, end) triple
    gives the audio interval (in seconds) during which the word is spoken.

    Validation rules applied on load:
    - all three arrays must have the same length
    - times must be non-negative and start_times non-decreasing
    - start_times[i] <= end_times[i]
    - an end time that overlaps the next word's start is clamped to it
    """

    words: list[str] = Field(default_factory=list)
    start_times: list[FiniteFloat] = Field(default_factory=list)
    end_times: list[FiniteFloat] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_timings(self) -> "WordData":
        if not (len(self.words) == len(self.start_times) == len(self.end_times)):
            raise ValueError(
                "words, start_times and end_times must have equal length "
                f"(got {len(self.words)}, {len(self.start_times)}, {len(self.end_times)})"
            )

        for i, (start, end) in enumerate(zip(self.start_times, self.end_times)):
            if start < 0 or end < 0:
                raise ValueError(f"Negative timing at word {i}")
            if start > end:
                raise ValueError(
                    f"start_time {start} is after end_time {end} at word {i}"
                )
            if i > 0 and start < self.start_times[i - 1]:
                raise ValueError(f"start_times are not sorted at word {i}")

        for i in range(len(self.end_times) - 1):
            next_start = self.start_times[i + 1]
            if self.end_times[i] > next_start:
                logger.warning(
                    f"Clamping end_time of word {i} from {self.end_times[i]} to {next_start}"
                )
                self.end_times[i] = next_start

        return self

    @property
    def span(self) -> tuple[float, float] | None:
        """(first start, last end) of the page, or None for a page without words"""
        if not self.words:
            return None
        return self.start_times[0], self.end_times[-1]


class WordTiming(BaseModel):
    """A single word with its audio interval and its index on the page"""

    word: str
    start_time: float
    end_time: float
    index: int


class Page(BaseModel):
    """An ordered page of a book"""

    id: str
    book_id: str
    page_order: int
    text: str = ""
    word_data: WordData = Field(default_factory=WordData)
    created_at: str | None = None
    updated_at: str | None = None

    def word_timings(self) -> list[WordTiming]:
        data = self.word_data
        return [
            WordTiming(word=word, start_time=start, end_time=end, index=index)
            for index, (word, start, end) in enumerate(
                zip(data.words, data.start_times, data.end_times)
            )
        ]


class Book(BaseModel):
    """A book as stored in the catalog"""

    id: str
    book_title: str
    author: str
    cover_image_url: str = ""
    background_image_url: str = ""
    audio_url: str = ""
    total_duration_ms: int = 0
    rating_avg: float = 0.0
    rating_count: int = 0
    description: str = ""
    book_summary: str = ""
    editorial_review: str | None = None
    customer_says: str | None = None
    purchase_link: str = ""
    isbn_13: str | None = None
    publisher: str = ""
    created_at: str | None = None
    updated_at: str | None = None


class BookSummary(BaseModel):
    """Gallery card data"""

    id: str
    book_title: str
    author: str
    cover_image_url: str
    isbn_13: str | None = None
    rating_avg: float
    rating_count: int
    duration_minutes: int


class BookInfo(BaseModel):
    """Book details shown in the info panel of the player"""

    id: str
    book_title: str
    author: str
    publisher: str
    isbn_13: str | None = None
    description: str
    book_summary: str
    editorial_review: str | None = None
    customer_says: str | None = None
    purchase_link: str
    rating_avg: float
    rating_count: int
    duration_minutes: int
    duration_display: str


class PageCreate(BaseModel):
    """Request model for a page inside a book import"""

    page_order: int
    text: str = ""
    word_data: WordData = Field(default_factory=WordData)


class BookImportRequest(BaseModel):
    """Request model for importing a book with its pages"""

    id: str | None = None
    book_title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    cover_image_url: str = ""
    background_image_url: str = ""
    audio_url: str = ""
    total_duration_ms: int = Field(default=0, ge=0)
    rating_avg: float = Field(default=0.0, ge=0.0)
    rating_count: int = Field(default=0, ge=0)
    description: str = ""
    book_summary: str = ""
    editorial_review: str | None = None
    customer_says: str | None = None
    purchase_link: str = ""
    isbn_13: str | None = None
    publisher: str = ""
    pages: list[PageCreate] = Field(default_factory=list)
