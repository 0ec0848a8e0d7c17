"""
Headless Chrome handling for scan sessions.

Selenium is synchronous, so every WebDriver call goes through
``asyncio.to_thread``; the event loop stays free for other attempts while a
browser is busy.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from app.features.audit.exceptions import ScanError
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

CHROME_ARGUMENTS = (
    "--headless=new",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--window-size=1920,1080",
)

_CHROMEDRIVER_PATH = None


def _resolve_driver_path() -> Optional[str]:
    global _CHROMEDRIVER_PATH
    if settings.CHROMEDRIVER_PATH:
        return settings.CHROMEDRIVER_PATH
    if settings.USE_WEBDRIVER_MANAGER:
        if _CHROMEDRIVER_PATH is None:
            _CHROMEDRIVER_PATH = ChromeDriverManager().install()
        return _CHROMEDRIVER_PATH
    return None


def build_driver() -> webdriver.Chrome:
    """Start one isolated Chrome instance with a minimal footprint."""
    chrome_options = Options()
    for argument in CHROME_ARGUMENTS:
        chrome_options.add_argument(argument)
    chrome_options.add_argument(f"--user-agent={settings.BROWSER_USER_AGENT}")
    # Return from get() on DOMContentLoaded; full load is awaited separately.
    chrome_options.page_load_strategy = "eager"

    driver_path = _resolve_driver_path()
    if driver_path:
        driver = webdriver.Chrome(service=Service(executable_path=driver_path), options=chrome_options)
    else:
        driver = webdriver.Chrome(options=chrome_options)

    driver.set_page_load_timeout(settings.NAVIGATION_TIMEOUT)
    driver.set_script_timeout(settings.EVALUATION_TIMEOUT)
    return driver


class BrowserPage:
    """Async facade over a single WebDriver window."""

    def __init__(self, driver):
        self.driver = driver

    async def goto(self, url: str) -> None:
        await asyncio.to_thread(self.driver.get, url)

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await asyncio.to_thread(self.driver.execute_script, script, *args)

    async def evaluate_async(self, script: str, *args: Any) -> Any:
        return await asyncio.to_thread(self.driver.execute_async_script, script, *args)

    async def navigation_status(self) -> Optional[int]:
        """HTTP status of the main document, if the browser exposes it."""
        status_code = await self.evaluate(
            "var entry = performance.getEntriesByType('navigation')[0];"
            "return entry && entry.responseStatus ? entry.responseStatus : null;"
        )
        return int(status_code) if status_code else None

    async def wait_for_load(self, timeout: float) -> None:
        """Wait for document.readyState == 'complete'. Raises TimeoutException."""

        def _wait():
            WebDriverWait(self.driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )

        await asyncio.to_thread(_wait)

    async def close(self) -> None:
        await asyncio.to_thread(self.driver.quit)


def _log_orphan_quit(quit_future: asyncio.Future) -> None:
    if quit_future.cancelled():
        return
    error = quit_future.exception()
    if error is not None:
        logger.error(f"Error while closing abandoned browser: {error}")
    else:
        logger.debug("Abandoned browser closed")


def _quit_orphaned_driver(launch: asyncio.Future) -> None:
    if launch.cancelled() or launch.exception() is not None:
        return
    driver = launch.result()
    logger.warning("Browser finished launching after its attempt was abandoned; closing it")
    quit_future = asyncio.get_running_loop().run_in_executor(None, driver.quit)
    quit_future.add_done_callback(_log_orphan_quit)


@asynccontextmanager
async def browser_session(
    driver_factory: Callable[[], Any] = build_driver,
) -> AsyncIterator[BrowserPage]:
    """
    Acquire a browser for one scan attempt and always release it.

    A failure while quitting is logged and swallowed so it never replaces the
    attempt's own outcome.
    """
    launch = asyncio.ensure_future(asyncio.to_thread(driver_factory))
    try:
        driver = await asyncio.shield(launch)
    except asyncio.CancelledError:
        # The launch thread cannot be interrupted; quit the browser once it is up.
        launch.add_done_callback(_quit_orphaned_driver)
        raise
    except Exception as e:
        raise ScanError(f"Could not start browser: {e}", stage="launching") from e

    page = BrowserPage(driver)
    try:
        yield page
    finally:
        logger.debug("Tearing down browser session")
        try:
            await page.close()
            logger.debug("Browser closed")
        except Exception as e:
            logger.error(f"Error while closing browser: {e}")
