from typing import Optional

import httpx

from app.features.audit.exceptions import UrlUnreachableError
from app.features.audit.schemas.audit import CheckUrlResponse
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

BLOCKED_STATUS_CODES = {403, 404}


def is_reachable_status(status_code: int) -> bool:
    return 200 <= status_code < 500 and status_code not in BLOCKED_STATUS_CODES


class UrlCheckService:
    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.URL_CHECK_TIMEOUT
        self.headers = {"User-Agent": user_agent or settings.BROWSER_USER_AGENT}
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=self.headers,
            transport=self.transport,
        )

    async def ensure_reachable(self, url: str) -> int:
        """
        GET the page before an audit is queued.

        Returns the status code, or raises UrlUnreachableError.
        """
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            logger.warning(f"Pre-check timed out for {url}")
            raise UrlUnreachableError(
                "Timed out while checking the URL. Please try again later."
            )
        except httpx.HTTPError as e:
            logger.warning(f"Pre-check could not connect to {url}: {e}")
            raise UrlUnreachableError(f"Could not connect to the URL: {e}")

        if not is_reachable_status(response.status_code):
            logger.warning(f"Pre-check for {url} returned {response.status_code}")
            raise UrlUnreachableError(
                f"The URL is not available. Response status: {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"Pre-check for {url} passed with status {response.status_code}")
        return response.status_code

    async def check_exists(self, raw_url: str) -> CheckUrlResponse:
        """Lightweight HEAD probe used by the request form."""
        is_valid, url, error = validate_url(raw_url)
        if not is_valid:
            return CheckUrlResponse(exists=False, url=url, status_code=400, error=error)

        try:
            async with self._client() as client:
                response = await client.head(url)
        except httpx.HTTPError as e:
            logger.warning(f"HEAD probe failed for {url}: {e}")
            return CheckUrlResponse(
                exists=False, url=url, status_code=404, error="No website exists at this address"
            )

        if response.is_success:
            return CheckUrlResponse(exists=True, url=url, status_code=response.status_code)

        return CheckUrlResponse(
            exists=False,
            url=url,
            status_code=response.status_code,
            error=f"The site responded with status {response.status_code}",
        )
