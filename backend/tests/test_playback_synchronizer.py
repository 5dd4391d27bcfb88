"""
Unit tests for the playback synchronizer.

Tests cover:
- Page and word resolution for a playback time
- Nearest-word fallback in timing gaps and outside the page span
- Page switches clearing the highlight until the next update
- Scrub seeks, word clicks and page skips
- The sequential highlight walk and its cancellation
- Play/pause and the space bar
"""

import asyncio
from unittest.mock import patch

import pytest

from app.models.book_models import Page, WordData
from app.models.player_types import PlayerStatus
from app.services.playback_synchronizer import (
    MediaPosition,
    PlaybackSynchronizer,
    SynchronizerConfig,
    format_time,
    resolve_page_index,
    resolve_word_index,
    walk_step_delay,
)

FAST_WALK = SynchronizerConfig(walk_min_delay=0.001, walk_max_delay=0.002)


def _page(order, words, starts, ends):
    return Page(
        id=f"page-{order}",
        book_id="book-1",
        page_order=order,
        text=" ".join(words),
        word_data=WordData(words=words, start_times=starts, end_times=ends),
    )


@pytest.fixture
def pages():
    return [
        _page(1, ["The", "cat", "sat"], [0.0, 0.5, 1.0], [0.4, 0.9, 1.4]),
        _page(2, ["on", "mats"], [1.5, 2.0], [1.9, 2.4]),
    ]


@pytest.fixture
def long_page():
    words = ["a", "b", "c", "d", "e"]
    starts = [0.0, 0.5, 1.0, 1.5, 2.0]
    ends = [0.4, 0.9, 1.4, 1.9, 2.4]
    return [_page(1, words, starts, ends)]


@pytest.fixture
def synchronizer(pages):
    return PlaybackSynchronizer(pages, MediaPosition(duration=2.4), FAST_WALK)


class TestResolveWordIndex:
    """Test word resolution within a page"""

    def test_time_inside_word_interval(self, pages):
        timings = pages[0].word_timings()
        assert resolve_word_index(timings, 0.6) == 1

    def test_every_time_in_span_maps_to_containing_word(self, pages):
        timings = pages[0].word_timings()
        for time, expected in [(0.0, 0), (0.2, 0), (0.4, 0), (0.5, 1), (0.9, 1), (1.0, 2), (1.4, 2)]:
            assert resolve_word_index(timings, time) == expected

    def test_gap_selects_nearest_start_time(self, pages):
        timings = pages[0].word_timings()
        # 0.45 is 0.45 from "The" and 0.05 from "cat"
        assert resolve_word_index(timings, 0.45) == 1

    def test_equal_distance_keeps_first_word(self):
        page = _page(1, ["one", "two"], [0.0, 1.0], [0.2, 1.2])
        assert resolve_word_index(page.word_timings(), 0.5) == 0

    def test_time_after_last_word(self, pages):
        assert resolve_word_index(pages[0].word_timings(), 10.0) == 2

    def test_time_before_first_word(self, pages):
        assert resolve_word_index(pages[1].word_timings(), 0.0) == 0

    def test_no_words(self):
        assert resolve_word_index([], 1.0) is None


class TestResolvePageIndex:
    """Test page resolution across the book"""

    def test_time_inside_span(self, pages):
        assert resolve_page_index(pages, 0.2, 1) == 0
        assert resolve_page_index(pages, 2.1, 0) == 1

    def test_span_bounds_are_inclusive(self, pages):
        assert resolve_page_index(pages, 1.4, 1) == 0
        assert resolve_page_index(pages, 1.5, 0) == 1

    def test_gap_between_pages_keeps_fallback(self, pages):
        assert resolve_page_index(pages, 1.45, 0) == 0
        assert resolve_page_index(pages, 1.45, 1) == 1

    def test_abutting_spans_pick_first_page(self):
        pages = [
            _page(1, ["a"], [0.0], [1.0]),
            _page(2, ["b"], [1.0], [2.0]),
        ]
        assert resolve_page_index(pages, 1.0, 1) == 0

    def test_pages_without_words_are_skipped(self, pages):
        empty = _page(0, [], [], [])
        assert resolve_page_index([empty] + pages, 0.2, 0) == 1

    def test_no_pages(self):
        assert resolve_page_index([], 1.0, None) is None


class TestTimeUpdates:
    """Test the time update transition"""

    def test_initial_state(self, synchronizer):
        state = synchronizer.snapshot()
        assert state.current_page_index == 0
        assert state.highlighted_word_index is None
        assert state.status == PlayerStatus.IDLE
        assert state.page_count == 2
        assert state.can_skip_previous is False
        assert state.can_skip_next is True

    def test_highlights_word_on_current_page(self, synchronizer):
        synchronizer.on_time_update(0.6)
        assert synchronizer.current_page_index == 0
        assert synchronizer.highlighted_word_index == 1
        assert synchronizer.current_time == 0.6

    def test_page_switch_defers_word_resolution(self, synchronizer):
        synchronizer.on_time_update(1.2)
        assert synchronizer.highlighted_word_index == 2

        synchronizer.on_time_update(1.6)
        assert synchronizer.current_page_index == 1
        assert synchronizer.highlighted_word_index is None

        synchronizer.on_time_update(1.7)
        assert synchronizer.current_page_index == 1
        assert synchronizer.highlighted_word_index == 0

    def test_gap_between_pages_keeps_page_and_uses_nearest_word(self, synchronizer):
        synchronizer.on_time_update(1.2)
        synchronizer.on_time_update(1.45)
        assert synchronizer.current_page_index == 0
        assert synchronizer.highlighted_word_index == 2

    def test_pages_are_ordered_by_page_order(self, pages):
        synchronizer = PlaybackSynchronizer(list(reversed(pages)), MediaPosition())
        assert [page.page_order for page in synchronizer.pages] == [1, 2]


class TestSeek:
    """Test scrub bar seeks"""

    def test_seek_sets_media_position_and_resolves(self, synchronizer):
        synchronizer.seek(0.7)
        assert synchronizer.media.current_time == 0.7
        assert synchronizer.highlighted_word_index == 1

    def test_seek_is_clamped_to_duration(self, synchronizer):
        synchronizer.seek(99.0)
        assert synchronizer.media.current_time == 2.4

        synchronizer.seek(-3.0)
        assert synchronizer.media.current_time == 0.0
        assert synchronizer.current_page_index == 0

    def test_seek_across_pages_switches_page_first(self, synchronizer):
        synchronizer.seek(2.1)
        assert synchronizer.current_page_index == 1
        assert synchronizer.highlighted_word_index is None

        synchronizer.on_time_update(2.1)
        assert synchronizer.highlighted_word_index == 1

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_seek_rejected(self, synchronizer, value):
        synchronizer.seek(0.7)

        with pytest.raises(ValueError, match="finite"):
            synchronizer.seek(value)

        assert synchronizer.media.current_time == 0.7
        state = synchronizer.snapshot()
        assert state.current_time_display == "0:00"
        assert state.highlighted_word_index == 1


class TestPageSkip:
    """Test page skip controls"""

    def test_skip_updates_page_and_position_immediately(self, synchronizer):
        synchronizer.on_time_update(0.6)
        synchronizer.skip_to_page(1)

        assert synchronizer.current_page_index == 1
        assert synchronizer.media.current_time == 1.5
        assert synchronizer.current_time == 1.5
        assert synchronizer.highlighted_word_index is None

        synchronizer.on_time_update(1.5)
        assert synchronizer.current_page_index == 1
        assert synchronizer.highlighted_word_index == 0

    @pytest.mark.asyncio
    async def test_skip_commits_without_walking(self, synchronizer):
        assert synchronizer.config.sequential_highlight is True
        await synchronizer.click_word(2)
        assert synchronizer.walking is True

        synchronizer.skip_to_page(1)
        assert synchronizer.walking is False
        assert synchronizer.media.current_time == 1.5

        await asyncio.sleep(0.02)
        assert synchronizer.current_page_index == 1
        assert synchronizer.media.current_time == 1.5

    def test_next_and_previous(self, synchronizer):
        synchronizer.next_page()
        assert synchronizer.current_page_index == 1
        assert synchronizer.can_skip_next is False

        synchronizer.previous_page()
        assert synchronizer.current_page_index == 0
        assert synchronizer.media.current_time == 0.0

    def test_skip_past_ends_raises(self, synchronizer):
        with pytest.raises(ValueError):
            synchronizer.previous_page()
        with pytest.raises(ValueError):
            synchronizer.skip_to_page(2)

        synchronizer.next_page()
        with pytest.raises(ValueError):
            synchronizer.next_page()

    def test_skip_to_page_without_words_keeps_position(self, pages):
        empty = _page(3, [], [], [])
        synchronizer = PlaybackSynchronizer(pages + [empty], MediaPosition(), FAST_WALK)
        synchronizer.seek(0.6)

        synchronizer.skip_to_page(2)
        assert synchronizer.current_page_index == 2
        assert synchronizer.media.current_time == 0.6
        assert synchronizer.word_timings == []


class TestNoPages:
    """Test a book without pages"""

    @pytest.fixture
    def empty_synchronizer(self):
        return PlaybackSynchronizer([], MediaPosition(duration=10.0))

    def test_nothing_is_ever_highlighted(self, empty_synchronizer):
        empty_synchronizer.on_time_update(3.0)
        state = empty_synchronizer.snapshot()
        assert state.current_page_index is None
        assert state.highlighted_word_index is None
        assert state.current_time == 3.0

    def test_page_skip_is_disabled(self, empty_synchronizer):
        assert empty_synchronizer.can_skip_next is False
        assert empty_synchronizer.can_skip_previous is False
        with pytest.raises(ValueError):
            empty_synchronizer.skip_to_page(0)
        with pytest.raises(ValueError):
            empty_synchronizer.next_page()

    @pytest.mark.asyncio
    async def test_word_click_is_rejected(self, empty_synchronizer):
        with pytest.raises(ValueError):
            await empty_synchronizer.click_word(0)


class TestWordClick:
    """Test click-to-seek on words"""

    @pytest.mark.asyncio
    async def test_click_without_sequential_highlight(self, pages):
        config = SynchronizerConfig(sequential_highlight=False)
        synchronizer = PlaybackSynchronizer(pages, MediaPosition(), config)

        await synchronizer.click_word(2)

        assert synchronizer.walking is False
        assert synchronizer.highlighted_word_index == 2
        assert synchronizer.media.current_time == 1.0

    @pytest.mark.asyncio
    async def test_click_walks_then_commits(self, long_page):
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), FAST_WALK)
        synchronizer.on_time_update(0.1)

        await synchronizer.click_word(4)
        assert synchronizer.walking is True

        await synchronizer.wait_for_walk()

        assert synchronizer.walking is False
        assert synchronizer.highlighted_word_index == 4
        assert synchronizer.media.current_time == 2.0
        assert synchronizer.current_time == 2.0

    @pytest.mark.asyncio
    async def test_walk_visits_each_intervening_word(self, long_page):
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), FAST_WALK)
        synchronizer.on_time_update(2.1)
        seen = []

        async def fake_sleep(delay):
            seen.append(synchronizer.highlighted_word_index)

        with patch("app.services.playback_synchronizer.asyncio.sleep", fake_sleep):
            await synchronizer.click_word(1)
            await synchronizer.wait_for_walk()

        assert seen == [4, 3, 2]
        assert synchronizer.highlighted_word_index == 1
        assert synchronizer.media.current_time == 0.5

    @pytest.mark.asyncio
    async def test_media_position_is_committed_only_at_the_end(self, long_page):
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), FAST_WALK)
        positions = []

        async def fake_sleep(delay):
            positions.append(synchronizer.media.current_time)

        with patch("app.services.playback_synchronizer.asyncio.sleep", fake_sleep):
            await synchronizer.click_word(3)
            await synchronizer.wait_for_walk()

        assert positions == [0.0, 0.0, 0.0]
        assert synchronizer.media.current_time == 1.5

    @pytest.mark.asyncio
    async def test_time_updates_are_suppressed_while_walking(self, long_page):
        config = SynchronizerConfig(walk_min_delay=0.02, walk_max_delay=0.02)
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), config)
        synchronizer.on_time_update(0.1)

        await synchronizer.click_word(4)
        synchronizer.on_time_update(1.2)

        assert synchronizer.current_time == 1.2
        assert synchronizer.highlighted_word_index == 0

        await synchronizer.wait_for_walk()
        assert synchronizer.highlighted_word_index == 4

    @pytest.mark.asyncio
    async def test_new_click_cancels_walk_in_flight(self, long_page):
        config = SynchronizerConfig(walk_min_delay=0.01, walk_max_delay=0.01)
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), config)

        await synchronizer.click_word(4)
        first_walk = synchronizer._walk_task
        await asyncio.sleep(0.015)

        await synchronizer.click_word(0)
        await synchronizer.wait_for_walk()
        await asyncio.sleep(0)

        assert first_walk.done()
        assert synchronizer.highlighted_word_index == 0
        assert synchronizer.media.current_time == 0.0

    @pytest.mark.asyncio
    async def test_page_skip_cancels_walk(self, pages):
        config = SynchronizerConfig(walk_min_delay=0.01, walk_max_delay=0.01)
        synchronizer = PlaybackSynchronizer(pages, MediaPosition(), config)

        await synchronizer.click_word(2)
        synchronizer.skip_to_page(1)
        await asyncio.sleep(0.05)

        assert synchronizer.walking is False
        assert synchronizer.current_page_index == 1
        assert synchronizer.highlighted_word_index is None
        assert synchronizer.media.current_time == 1.5

    @pytest.mark.asyncio
    async def test_click_out_of_range(self, synchronizer):
        with pytest.raises(ValueError):
            await synchronizer.click_word(3)
        with pytest.raises(ValueError):
            await synchronizer.click_word(-1)

    @pytest.mark.asyncio
    async def test_close_cancels_walk(self, long_page):
        config = SynchronizerConfig(walk_min_delay=0.01, walk_max_delay=0.01)
        synchronizer = PlaybackSynchronizer(long_page, MediaPosition(), config)

        await synchronizer.click_word(4)
        synchronizer.close()
        await asyncio.sleep(0.05)

        assert synchronizer.walking is False
        assert synchronizer.media.current_time == 0.0


class TestWalkStepDelay:
    """Test the per-step delay of the highlight walk"""

    def test_delay_follows_start_time_gap(self):
        page = _page(1, ["a", "b"], [0.0, 0.08], [0.05, 0.1])
        assert walk_step_delay(page.word_timings(), 0, 1, 0.04, 0.12) == pytest.approx(0.08)

    def test_delay_is_clamped(self):
        page = _page(1, ["a", "b", "c"], [0.0, 0.01, 2.0], [0.01, 0.5, 2.5])
        timings = page.word_timings()
        assert walk_step_delay(timings, 0, 1, 0.04, 0.12) == 0.04
        assert walk_step_delay(timings, 1, 2, 0.04, 0.12) == 0.12
        assert walk_step_delay(timings, 2, 1, 0.04, 0.12) == 0.12


class TestPlayPause:
    """Test play/pause transitions"""

    def test_toggle_cycle(self, synchronizer):
        assert synchronizer.toggle_play() == PlayerStatus.PLAYING
        assert synchronizer.media.paused is False

        assert synchronizer.toggle_play() == PlayerStatus.PAUSED
        assert synchronizer.media.paused is True

        assert synchronizer.toggle_play() == PlayerStatus.PLAYING

    def test_space_bar_toggles(self, synchronizer):
        assert synchronizer.handle_key("Space") is True
        assert synchronizer.status == PlayerStatus.PLAYING

    def test_other_keys_are_ignored(self, synchronizer):
        assert synchronizer.handle_key("Enter") is False
        assert synchronizer.status == PlayerStatus.IDLE

    def test_toggle_does_not_touch_synchronization(self, synchronizer):
        synchronizer.on_time_update(0.6)
        synchronizer.toggle_play()
        assert synchronizer.highlighted_word_index == 1
        assert synchronizer.current_time == 0.6


def test_format_time():
    assert format_time(0) == "0:00"
    assert format_time(65.9) == "1:05"
    assert format_time(600) == "10:00"
    assert format_time(-4) == "0:00"
    assert format_time(float("nan")) == "0:00"
    assert format_time(float("inf")) == "0:00"
