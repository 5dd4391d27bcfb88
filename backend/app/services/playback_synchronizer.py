"""
Playback Synchronizer Module

Maps an advancing (and seekable) audio position to the current page and the
highlighted word on that page, and provides the seek controls of the player:
scrub-bar seeks, word clicks, page skips and play/pause.

Word clicks may animate the highlight through the intervening words before
the audio position is committed (the sequential highlight walk). The walk
runs as an asyncio task; every new seek bumps a generation counter so a
superseded walk stops at its next step.
"""

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass

from app.models.book_models import Page, WordTiming
from app.models.player_types import PlaybackState, PlayerStatus

# Configure logger for this module
logger = logging.getLogger(__name__)

SPACE_KEY = "Space"


@dataclass
class SynchronizerConfig:
    """Tuning for the sequential highlight walk"""

    sequential_highlight: bool = True
    walk_min_delay: float = 0.04  # seconds per step, lower bound
    walk_max_delay: float = 0.12  # seconds per step, upper bound


class MediaPosition:
    """
    Server-side stand-in for the media element.

    Holds the readable/settable playback position and the play/pause flag.
    The client reports real positions back through time updates.
    """

    def __init__(self, duration: float = 0.0):
        self.current_time = 0.0
        self.duration = duration
        self.paused = True

    def play(self):
        self.paused = False

    def pause(self):
        self.paused = True


def format_time(seconds: float) -> str:
    """Format seconds as m:ss; negative or non-finite values show as 0:00"""
    if not math.isfinite(seconds):
        return "0:00"
    seconds = max(seconds, 0)
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"


def resolve_page_index(
    pages: list[Page], time: float, fallback: int | None
) -> int | None:
    """
    Find the first page whose span contains the given time.

    Args:
        pages: Pages ordered by page_order
        time: Audio position in seconds
        fallback: Index to keep when no span contains the time

    Returns:
        int | None: Index of the matching page, or the fallback
    """
    for index, page in enumerate(pages):
        span = page.word_data.span
        if span is None:
            continue
        start, end = span
        if start <= time <= end:
            return index
    return fallback


def resolve_word_index(timings: list[WordTiming], time: float) -> int | None:
    """
    Find the word to highlight at the given time.

    The first word whose interval contains the time wins (both bounds
    inclusive). Otherwise the word whose start time is nearest to the time
    is chosen; on equal distance the earlier word is kept.

    Args:
        timings: Word timings of one page, in order
        time: Audio position in seconds

    Returns:
        int | None: Index of the word, or None when the page has no words
    """
    if not timings:
        return None

    for timing in timings:
        if timing.start_time <= time <= timing.end_time:
            return timing.index

    nearest = timings[0]
    nearest_distance = abs(nearest.start_time - time)
    for timing in timings[1:]:
        distance = abs(timing.start_time - time)
        if distance < nearest_distance:
            nearest = timing
            nearest_distance = distance
    return nearest.index


def walk_step_delay(
    timings: list[WordTiming],
    from_index: int,
    to_index: int,
    min_delay: float,
    max_delay: float,
) -> float:
    """Delay before moving the highlight between two neighbouring words"""
    gap = abs(timings[to_index].start_time - timings[from_index].start_time)
    return min(max(gap, min_delay), max_delay)


class PlaybackSynchronizer:
    """
    Playback state of one player view.

    State is only changed through the transition methods below and all of
    them run on the event loop thread, so no locking is needed.
    """

    def __init__(
        self,
        pages: list[Page],
        media: MediaPosition,
        config: SynchronizerConfig | None = None,
    ):
        self.pages = sorted(pages, key=lambda page: page.page_order)
        self.media = media
        self.config = config or SynchronizerConfig()

        self.current_time = media.current_time
        self.current_page_index: int | None = 0 if self.pages else None
        self.highlighted_word_index: int | None = None
        self.status = PlayerStatus.IDLE

        self._page_timings = [page.word_timings() for page in self.pages]
        self._generation = 0
        self._walk_task: asyncio.Task | None = None

    # ========================================
    # DERIVED STATE
    # ========================================

    @property
    def current_page(self) -> Page | None:
        if self.current_page_index is None:
            return None
        return self.pages[self.current_page_index]

    @property
    def word_timings(self) -> list[WordTiming]:
        if self.current_page_index is None:
            return []
        return self._page_timings[self.current_page_index]

    @property
    def walking(self) -> bool:
        return self._walk_task is not None and not self._walk_task.done()

    @property
    def can_skip_previous(self) -> bool:
        return self.current_page_index is not None and self.current_page_index > 0

    @property
    def can_skip_next(self) -> bool:
        return (
            self.current_page_index is not None
            and self.current_page_index < len(self.pages) - 1
        )

    def snapshot(self) -> PlaybackState:
        return PlaybackState(
            current_time=self.current_time,
            current_page_index=self.current_page_index,
            highlighted_word_index=self.highlighted_word_index,
            status=self.status,
            walking=self.walking,
            page_count=len(self.pages),
            can_skip_previous=self.can_skip_previous,
            can_skip_next=self.can_skip_next,
            current_time_display=format_time(self.current_time),
            duration_display=format_time(self.media.duration),
        )

    # ========================================
    # TIME UPDATES
    # ========================================

    def on_time_update(self, time: float):
        """
        Handle a position report from the media element.

        A page change clears the highlight; the word on the new page is
        resolved on the following update. While a highlight walk is in
        flight only the time is recorded.
        """
        self.current_time = time

        if self.walking or self.current_page_index is None:
            return

        page_index = resolve_page_index(self.pages, time, self.current_page_index)
        if page_index != self.current_page_index:
            logger.debug(
                f"Page changed from {self.current_page_index} to {page_index} at {time:.3f}s"
            )
            self.current_page_index = page_index
            self.highlighted_word_index = None
            return

        self.highlighted_word_index = resolve_word_index(self.word_timings, time)

    # ========================================
    # SEEKS
    # ========================================

    def seek(self, time: float):
        """
        Seek to an absolute position (scrub bar).

        Raises:
            ValueError: If the time is NaN or infinite
        """
        if not math.isfinite(time):
            raise ValueError(f"Seek time must be a finite number, got {time}")

        self._cancel_walk()

        time = max(time, 0.0)
        if self.media.duration > 0:
            time = min(time, self.media.duration)

        self.media.current_time = time
        self.on_time_update(time)

    async def click_word(self, word_index: int):
        """
        Seek to a word of the current page.

        With sequential highlighting the highlight walks towards the word in
        the background and the audio position is committed once it arrives;
        use wait_for_walk() to wait for that.

        Raises:
            ValueError: If the word index is not on the current page
        """
        timings = self.word_timings
        if not 0 <= word_index < len(timings):
            raise ValueError(f"Word index {word_index} is out of range")

        self._cancel_walk()
        generation = self._generation
        page_index = self.current_page_index

        start_index = self.highlighted_word_index
        if start_index is None:
            start_index = 0

        if not self.config.sequential_highlight or start_index == word_index:
            self._commit_word(page_index, word_index)
            return

        self._walk_task = asyncio.create_task(
            self._walk_highlight(generation, page_index, start_index, word_index)
        )

    def skip_to_page(self, page_index: int):
        """
        Jump to the first word of a page.

        The page index changes immediately; the highlighted word is resolved
        on the next time update. Page skips commit the position directly and
        never run the highlight walk.

        Raises:
            ValueError: If there are no pages or the index is out of range
        """
        if not 0 <= page_index < len(self.pages):
            raise ValueError(f"Page index {page_index} is out of range")

        self._cancel_walk()

        span = self.pages[page_index].word_data.span
        if span is not None:
            self.media.current_time = span[0]
            self.current_time = span[0]

        self.current_page_index = page_index
        self.highlighted_word_index = None
        logger.info(f"Skipped to page {page_index} at {self.current_time:.3f}s")

    def next_page(self):
        if not self.can_skip_next:
            raise ValueError("Already on the last page")
        self.skip_to_page(self.current_page_index + 1)

    def previous_page(self):
        if not self.can_skip_previous:
            raise ValueError("Already on the first page")
        self.skip_to_page(self.current_page_index - 1)

    # ========================================
    # PLAY / PAUSE
    # ========================================

    def toggle_play(self) -> PlayerStatus:
        if self.status == PlayerStatus.PLAYING:
            self.media.pause()
            self.status = PlayerStatus.PAUSED
        else:
            self.media.play()
            self.status = PlayerStatus.PLAYING
        return self.status

    def handle_key(self, code: str) -> bool:
        """Toggle playback on the space bar. Returns True if the key was handled."""
        if code != SPACE_KEY:
            return False
        self.toggle_play()
        return True

    # ========================================
    # HIGHLIGHT WALK
    # ========================================

    async def wait_for_walk(self):
        """Wait until the in-flight highlight walk finishes or is cancelled"""
        task = self._walk_task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def close(self):
        self._cancel_walk()

    def _cancel_walk(self):
        self._generation += 1
        if self._walk_task is not None and not self._walk_task.done():
            self._walk_task.cancel()
        self._walk_task = None

    def _commit_word(self, page_index: int, word_index: int):
        start_time = self._page_timings[page_index][word_index].start_time
        self.current_page_index = page_index
        self.highlighted_word_index = word_index
        self.media.current_time = start_time
        self.current_time = start_time

    async def _walk_highlight(
        self, generation: int, page_index: int, start_index: int, target_index: int
    ):
        timings = self._page_timings[page_index]
        step = 1 if target_index > start_index else -1
        index = start_index
        self.highlighted_word_index = index

        try:
            while index != target_index:
                delay = walk_step_delay(
                    timings,
                    index,
                    index + step,
                    self.config.walk_min_delay,
                    self.config.walk_max_delay,
                )
                await asyncio.sleep(delay)
                if generation != self._generation:
                    return
                index += step
                self.highlighted_word_index = index

            self._commit_word(page_index, target_index)
        finally:
            if generation == self._generation:
                self._walk_task = None
