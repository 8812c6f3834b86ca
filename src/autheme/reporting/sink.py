"""Fire-and-forget reporting sink.

``ReportingSink.submit`` is called from the synchronous event path and
must return immediately. Payloads go onto a bounded ``asyncio.Queue``
drained by a single background worker task; the caller never awaits the
transport. There is no retry and no backpressure: when the queue is full,
or no event loop is running, the report is dropped. Transport failures
are logged only in verbose mode.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from autheme.reporting.http_client import DEFAULT_TIMEOUT, post_json

logger = logging.getLogger(__name__)

Transport = Callable[..., Awaitable[Any]]


class ReportingSink:
    """Bounded background delivery of run reports.

    Args:
        endpoint: Remote ingest URL.
        api_key: Bearer credential. The sink is disabled when empty.
        verbose: Log transport failures at WARNING instead of DEBUG.
        max_pending: Queue capacity; extra reports are dropped.
        timeout: Per-request timeout in seconds.
        transport: Coroutine function ``(url, payload, *, api_key,
            timeout)``. Defaults to ``post_json``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        verbose: bool = False,
        max_pending: int = 100,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Transport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._api_key = api_key
        self._verbose = verbose
        self._max_pending = max_pending
        self._timeout = timeout
        self._transport = transport or post_json
        self._queue: asyncio.Queue[dict[str, Any]] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.sent = 0
        self.failed = 0
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        """True when an API key is configured."""
        return bool(self._api_key)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        """Number of reports waiting for the worker."""
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Start the background worker on the running event loop.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._max_pending)
        self._worker = loop.create_task(
            self._run(self._queue), name="autheme-report-worker"
        )

    def submit(self, payload: dict[str, Any]) -> bool:
        """Queue a report for delivery without waiting for it.

        Starts the worker lazily when called inside a running event loop.
        Never raises.

        Returns:
            True if the report was queued, False if it was dropped.
        """
        if not self.enabled:
            return False
        if not self.running:
            try:
                self.start()
            except RuntimeError:
                self.dropped += 1
                logger.debug("No running event loop; report dropped")
                return False
        if self._queue is None:
            self.dropped += 1
            return False
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(
                "Report queue full (%d pending); report dropped", self._max_pending
            )
            return False
        return True

    async def _run(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        while True:
            payload = await queue.get()
            try:
                await self._transport(
                    self._endpoint,
                    payload,
                    api_key=self._api_key,
                    timeout=self._timeout,
                )
                self.sent += 1
            except Exception as exc:
                self.failed += 1
                if self._verbose:
                    logger.warning("[authe.me] API report failed: %s", exc)
                else:
                    logger.debug("Report failed: %s", exc)
            finally:
                queue.task_done()

    async def stop(self, *, drain: bool = False, timeout: float | None = None) -> None:
        """Stop the worker, optionally waiting for queued reports first.

        Args:
            drain: Wait until the queue is empty before cancelling.
            timeout: Upper bound in seconds for the drain wait.
        """
        if self._worker is None:
            return
        if drain and self._queue is not None and not self._worker.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.debug("Drain timed out with %d report(s) pending", self.pending)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
