import time
from unittest.mock import AsyncMock, MagicMock

from app.features.audit.services.page_preparation import (
    HAS_SCROLLABLE_CONTENT_JS,
    SCROLL_BY_JS,
    SCROLL_POSITION_JS,
    SCROLL_TO_TOP_JS,
    scroll_through_page,
)

FAST = dict(step_px=300, interval=0.001, max_seconds=0.5, max_stuck=5, settle_seconds=0)


class FakeScrollPage:
    """Simulates window scrolling over a document of ``height`` pixels."""

    def __init__(self, height=3000, viewport=1000, grows=False, frozen=False):
        self.height = height
        self.viewport = viewport
        self.grows = grows
        self.frozen = frozen
        self.offset = 0
        self.scroll_calls = 0
        self.scrolled_to_top = False
        self.evaluate = AsyncMock(side_effect=self._evaluate)

    def _evaluate(self, script, *args):
        if script == HAS_SCROLLABLE_CONTENT_JS:
            return self.height > self.viewport
        if script == SCROLL_POSITION_JS:
            return {"scrollTop": self.offset, "scrollHeight": self.height, "innerHeight": self.viewport}
        if script == SCROLL_BY_JS:
            self.scroll_calls += 1
            if not self.frozen:
                self.offset = min(self.offset + args[0], max(self.height - self.viewport, 0))
            if self.grows:
                self.height += args[0] * 2
            return None
        if script == SCROLL_TO_TOP_JS:
            self.offset = 0
            self.scrolled_to_top = True
            return None
        raise AssertionError(f"unexpected script: {script}")


class TestScrollThroughPage:
    async def test_scrolls_to_bottom_and_back_to_top(self):
        page = FakeScrollPage(height=3000, viewport=1000)

        await scroll_through_page(page, **FAST)

        # 2000px of overflow at 300px per step
        assert 7 <= page.scroll_calls <= 9
        assert page.scrolled_to_top is True
        assert page.offset == 0

    async def test_skips_pages_without_overflow(self):
        page = FakeScrollPage(height=800, viewport=1000)

        await scroll_through_page(page, **FAST)

        assert page.scroll_calls == 0
        assert page.scrolled_to_top is False

    async def test_stops_when_scroll_is_stuck(self):
        page = FakeScrollPage(height=50_000, viewport=1000, frozen=True)

        await scroll_through_page(page, **FAST)

        assert page.scroll_calls == FAST["max_stuck"] - 1

    async def test_infinite_page_stops_at_time_cap(self):
        page = FakeScrollPage(height=3000, viewport=1000, grows=True)
        options = dict(FAST, interval=0.01, max_seconds=0.3)

        started = time.monotonic()
        await scroll_through_page(page, **options)
        elapsed = time.monotonic() - started

        assert elapsed < 1.5
        assert page.scroll_calls > 5
        assert page.scrolled_to_top is True

    async def test_errors_are_swallowed(self):
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=RuntimeError("Target closed"))

        await scroll_through_page(page, **FAST)

    async def test_scroll_to_top_failure_is_swallowed(self):
        page = FakeScrollPage(height=2000, viewport=1000)
        original = page._evaluate

        def evaluate(script, *args):
            if script == SCROLL_TO_TOP_JS:
                raise RuntimeError("navigation in progress")
            return original(script, *args)

        page.evaluate = AsyncMock(side_effect=evaluate)

        await scroll_through_page(page, **FAST)

        assert page.scroll_calls > 0
