"""
Player Router

API endpoints for player sessions: opening a book, reporting playback
position and the seek controls (scrub bar, word click, page skip, play/pause).
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from ..models.player_types import (
    KeyPressRequest,
    PlaybackState,
    SeekRequest,
    SessionCreateRequest,
    SessionResponse,
    TimeUpdateRequest,
)
from ..services.database_service import db_service
from ..services.player_session_service import (
    BookNotFoundError,
    PlayerSession,
    PlayerSessionService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/player", tags=["player"])

# Initialize services
player_sessions = PlayerSessionService(db_service)


def get_session_or_404(session_id: str) -> PlayerSession:
    session = player_sessions.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Player session not found")
    return session


@router.post("/sessions", response_model=SessionResponse)
async def create_session(request: SessionCreateRequest):
    """
    Open a player for a book by ID or ISBN.

    Raises:
        HTTPException: 400 if no book reference is given or its pages are malformed,
                       404 if the book does not exist
    """
    try:
        session = player_sessions.create_session(
            book_id=request.book_id, isbn=request.isbn
        )
        return SessionResponse(
            session_id=session.session_id,
            book_id=session.book.id,
            state=session.synchronizer.snapshot(),
        )
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error opening player session: {e}")
        raise HTTPException(
            status_code=500, detail=f"Error opening player session: {str(e)}"
        )


@router.get("/sessions/{session_id}", response_model=PlaybackState)
async def get_state(session_id: str):
    """
    Get the current playback state of a session
    """
    return get_session_or_404(session_id).synchronizer.snapshot()


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str) -> Dict[str, Any]:
    """
    Close a player session
    """
    if not player_sessions.close_session(session_id):
        raise HTTPException(status_code=404, detail="Player session not found")
    return {"message": "Player session closed", "session_id": session_id}


@router.post("/sessions/{session_id}/time", response_model=PlaybackState)
async def report_time(session_id: str, request: TimeUpdateRequest):
    """
    Report the media element's position; resolves the current page and word
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    synchronizer.on_time_update(request.current_time)
    return synchronizer.snapshot()


@router.post("/sessions/{session_id}/seek", response_model=PlaybackState)
async def seek(session_id: str, request: SeekRequest):
    """
    Seek to an absolute position (scrub bar)
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    try:
        synchronizer.seek(request.time)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return synchronizer.snapshot()


@router.post(
    "/sessions/{session_id}/words/{word_index:int}/click",
    response_model=PlaybackState,
)
async def click_word(session_id: str, word_index: int):
    """
    Seek to a word on the current page.

    The returned state may show the highlight walk still in progress
    (walking=true); poll the session state to see it settle.
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    try:
        await synchronizer.click_word(word_index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return synchronizer.snapshot()


@router.post("/sessions/{session_id}/pages/next", response_model=PlaybackState)
async def next_page(session_id: str):
    """
    Skip to the start of the next page
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    try:
        synchronizer.next_page()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return synchronizer.snapshot()


@router.post("/sessions/{session_id}/pages/previous", response_model=PlaybackState)
async def previous_page(session_id: str):
    """
    Skip to the start of the previous page
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    try:
        synchronizer.previous_page()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return synchronizer.snapshot()


@router.post(
    "/sessions/{session_id}/pages/{page_index:int}", response_model=PlaybackState
)
async def skip_to_page(session_id: str, page_index: int):
    """
    Skip to the start of a page by index
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    try:
        synchronizer.skip_to_page(page_index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return synchronizer.snapshot()


@router.post("/sessions/{session_id}/toggle", response_model=PlaybackState)
async def toggle_play(session_id: str):
    """
    Toggle play/pause
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    synchronizer.toggle_play()
    return synchronizer.snapshot()


@router.post("/sessions/{session_id}/key", response_model=PlaybackState)
async def key_press(session_id: str, request: KeyPressRequest):
    """
    Forward a key press from the player view; the space bar toggles playback
    """
    synchronizer = get_session_or_404(session_id).synchronizer
    synchronizer.handle_key(request.code)
    return synchronizer.snapshot()
