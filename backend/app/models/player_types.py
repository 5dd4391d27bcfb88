"""
Player Type Models

Pydantic models for player sessions and the playback state they expose.
"""

from enum import Enum

from pydantic import BaseModel, Field, FiniteFloat


class PlayerStatus(str, Enum):
    """Play/pause state of a player"""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackState(BaseModel):
    """Snapshot of a player's derived state. Never persisted."""

    current_time: float
    current_page_index: int | None = None
    highlighted_word_index: int | None = None
    status: PlayerStatus = PlayerStatus.IDLE
    walking: bool = False
    page_count: int = 0
    can_skip_previous: bool = False
    can_skip_next: bool = False
    current_time_display: str = "0:00"
    duration_display: str = "0:00"


class SessionCreateRequest(BaseModel):
    """Open a player for a book, by id or by ISBN"""

    book_id: str | None = None
    isbn: str | None = None


class SessionResponse(BaseModel):
    session_id: str
    book_id: str
    state: PlaybackState


class TimeUpdateRequest(BaseModel):
    """Position reported by the media element"""

    current_time: FiniteFloat = Field(..., ge=0)


class SeekRequest(BaseModel):
    """Absolute seek from the scrub bar"""

    time: FiniteFloat


class KeyPressRequest(BaseModel):
    code: str
