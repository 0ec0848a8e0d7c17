"""
Bounded Job Queue

Admission control in front of the scan orchestrator. At most
``max_concurrent`` scan attempts run at once; everything else waits in
arrival order. A slot is handed to the next waiting entry as soon as an
attempt completes.

All state is touched from the event loop only (submit, dispatch,
completion), so no locking is needed.
"""
import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Dict, Set

from app.features.audit.exceptions import QueueClosedError
from app.features.audit.schemas.audit import AuditResult
from app.platform.logger import get_logger

logger = get_logger(__name__)

ScanFunction = Callable[[str], Awaitable[AuditResult]]


@dataclass(frozen=True)
class ScanRequest:
    url: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class QueueEntry:
    request: ScanRequest
    future: asyncio.Future


class AuditQueue:
    def __init__(self, scan_fn: ScanFunction, max_concurrent: int = 2):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.scan_fn = scan_fn
        self.max_concurrent = max_concurrent
        self._waiting: Deque[QueueEntry] = deque()
        self._running = 0
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def running(self) -> int:
        return self._running

    @property
    def waiting(self) -> int:
        return len(self._waiting)

    def stats(self) -> Dict[str, int]:
        return {
            "running": self._running,
            "waiting": len(self._waiting),
            "max_concurrent": self.max_concurrent,
        }

    def submit(self, url: str) -> "asyncio.Future[AuditResult]":
        """
        Queue a scan of ``url`` and return a future for its result.

        The scan's own failure is set on the future unchanged.
        """
        future = asyncio.get_running_loop().create_future()
        if self._closed:
            future.set_exception(QueueClosedError("Audit queue is shutting down"))
            return future

        entry = QueueEntry(request=ScanRequest(url=url), future=future)
        self._waiting.append(entry)
        logger.info(
            f"Queued audit for {url} (running: {self._running}, waiting: {len(self._waiting)})"
        )
        self._dispatch()
        return future

    def _dispatch(self) -> None:
        while self._running < self.max_concurrent and self._waiting:
            entry = self._waiting.popleft()
            if entry.future.done():
                # Submitter gave up while the entry was still waiting
                logger.info(f"Dropping abandoned audit for {entry.request.url}")
                continue

            self._running += 1
            task = asyncio.create_task(self._run(entry))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, entry: QueueEntry) -> None:
        url = entry.request.url
        waited = (datetime.now(timezone.utc) - entry.request.submitted_at).total_seconds()
        logger.info(f"Starting audit for {url} after {waited:.2f}s in queue")
        try:
            result = await self.scan_fn(url)
        except Exception as e:
            if not entry.future.done():
                entry.future.set_exception(e)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
            else:
                logger.info(f"Discarding result for {url}, submitter is gone")
        finally:
            self._running -= 1
            self._dispatch()

    async def shutdown(self) -> None:
        """Fail everything still waiting and let running attempts finish."""
        self._closed = True
        while self._waiting:
            entry = self._waiting.popleft()
            if not entry.future.done():
                entry.future.set_exception(QueueClosedError("Audit queue is shutting down"))
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Audit queue shut down")
