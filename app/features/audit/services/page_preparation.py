import asyncio
import time
from typing import Optional

from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

HAS_SCROLLABLE_CONTENT_JS = "return document.body.scrollHeight > window.innerHeight;"

SCROLL_POSITION_JS = """
return {
    scrollTop: document.documentElement.scrollTop || document.body.scrollTop || 0,
    scrollHeight: Math.max(
        document.body.scrollHeight,
        document.documentElement.scrollHeight,
        document.body.offsetHeight,
        document.documentElement.offsetHeight
    ),
    innerHeight: window.innerHeight
};
"""

SCROLL_BY_JS = "window.scrollBy(0, arguments[0]);"
SCROLL_TO_TOP_JS = "window.scrollTo(0, 0);"

# Offset change below this counts as "not moving"
STUCK_THRESHOLD_PX = 10
# Distance from the bottom that counts as reaching it
BOTTOM_MARGIN_PX = 50


async def scroll_through_page(
    page,
    step_px: Optional[int] = None,
    interval: Optional[float] = None,
    max_seconds: Optional[float] = None,
    max_stuck: Optional[int] = None,
    settle_seconds: Optional[float] = None,
) -> None:
    """
    Scroll down the page to make lazy-loaded content render, then go back up.

    Stops at the bottom of the document, after ``max_stuck`` consecutive
    steps without movement, or after ``max_seconds``, whichever comes first.
    Never raises.
    """
    step_px = step_px if step_px is not None else settings.SCROLL_STEP_PX
    interval = interval if interval is not None else settings.SCROLL_INTERVAL_SECONDS
    max_seconds = max_seconds if max_seconds is not None else settings.SCROLL_MAX_SECONDS
    max_stuck = max_stuck if max_stuck is not None else settings.SCROLL_MAX_STUCK
    settle_seconds = settle_seconds if settle_seconds is not None else settings.SCROLL_SETTLE_SECONDS

    try:
        try:
            scrollable = await page.evaluate(HAS_SCROLLABLE_CONTENT_JS)
        except Exception as e:
            logger.debug(f"Could not measure page height, assuming scrollable: {e}")
            scrollable = True

        if not scrollable:
            logger.info("Page has no scrollable content, skipping auto-scroll")
            return

        await _scroll_down(page, step_px, interval, max_seconds, max_stuck)

        # Let lazy-loads triggered by scrolling finish their fetches
        await asyncio.sleep(settle_seconds)

        try:
            await page.evaluate(SCROLL_TO_TOP_JS)
        except Exception as e:
            logger.warning(f"Could not scroll back to the top of the page: {e}")

    except Exception as e:
        logger.error(f"Error while scrolling through page: {e}")


async def _scroll_down(page, step_px: int, interval: float, max_seconds: float, max_stuck: int) -> None:
    started = time.monotonic()
    # Backstop for the clock check in case every evaluate returns instantly
    max_iterations = int(max_seconds / interval) + max_stuck + 1 if interval > 0 else 1000
    last_offset = 0
    stuck_count = 0

    for _ in range(max_iterations):
        if time.monotonic() - started > max_seconds:
            logger.info("Auto-scroll time limit reached")
            return

        position = await page.evaluate(SCROLL_POSITION_JS) or {}
        offset = position.get("scrollTop", 0) or 0
        height = position.get("scrollHeight", 0) or 0
        viewport = position.get("innerHeight", 0) or 0
        at_bottom = offset + viewport >= height - BOTTOM_MARGIN_PX

        if abs(offset - last_offset) < STUCK_THRESHOLD_PX:
            stuck_count += 1
            if stuck_count >= max_stuck:
                logger.info("Auto-scroll stopped moving, assuming end of content")
                return
        else:
            stuck_count = 0
        last_offset = offset

        await page.evaluate(SCROLL_BY_JS, step_px)

        if at_bottom:
            logger.info("Auto-scroll reached the bottom of the page")
            return

        await asyncio.sleep(interval)

    logger.info("Auto-scroll iteration limit reached")
