import asyncio
from typing import Optional

from app.features.audit.exceptions import (
    AuditFailedError,
    AuditTimeoutError,
    InvalidUrlError,
    ScanError,
)
from app.features.audit.schemas.audit import AuditResult
from app.features.audit.services.job_queue import AuditQueue
from app.features.audit.services.url_check import UrlCheckService
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)


class AuditService:
    """
    Outward-facing audit flow: pre-check the URL, then submit it to the
    queue, retrying failed attempts as fresh submissions.
    """

    def __init__(
        self,
        queue: AuditQueue,
        url_checker: Optional[UrlCheckService] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        request_timeout: Optional[float] = None,
    ):
        self.queue = queue
        self.url_checker = url_checker or UrlCheckService()
        self.max_retries = max_retries if max_retries is not None else settings.AUDIT_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.AUDIT_RETRY_DELAY_SECONDS
        self.request_timeout = (
            request_timeout if request_timeout is not None else settings.AUDIT_REQUEST_TIMEOUT
        )

    async def audit(self, url: str) -> AuditResult:
        is_valid, url, error = validate_url(url)
        if not is_valid:
            raise InvalidUrlError(error)

        await self.url_checker.ensure_reachable(url)

        try:
            return await asyncio.wait_for(self.run_with_retries(url), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            # Any attempt already running keeps going; its result is dropped.
            logger.error(f"Audit request for {url} timed out after {self.request_timeout}s")
            raise AuditTimeoutError(f"Audit did not finish within {self.request_timeout} seconds")

    async def run_with_retries(self, url: str) -> AuditResult:
        """
        Submit ``url`` up to ``max_retries`` times.

        Only ScanError is retried; QueueClosedError and anything unexpected
        propagate on the first occurrence.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.queue.submit(url)
            except ScanError as e:
                last_error = e
                logger.warning(f"Audit attempt {attempt}/{self.max_retries} for {url} failed: {e}")

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        raise AuditFailedError(
            f"Audit failed after {self.max_retries} attempts: {last_error}",
            attempts=self.max_retries,
            last_error=last_error,
        )
