"""RunMonitor - the run aggregation and trust scoring engine.

Single entry point for host integrations. Owns the run registry, the
scoring engine, the local presenter and the reporting sink, and runs the
periodic staleness sweep.

Event handling is synchronous end to end: ``handle`` never suspends, so
events for one session cannot interleave mid-mutation and the registry
needs no locks. The only asynchronous work is the detached report worker
and the maintenance task, both started by ``start()``.

Usage::

    monitor = RunMonitor(MonitorConfig.from_mapping(plugin_config))
    await monitor.start()
    ...
    monitor.handle_hook("after_tool_call", payload, ctx)
    monitor.handle_hook("agent_end", payload, ctx)   # -> TrustScore
    ...
    await monitor.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from autheme.config import MonitorConfig
from autheme.core.runs import (
    RunRecord,
    RunRegistry,
    on_message_scan,
    on_model_call,
    on_model_start,
    on_tool_call,
)
from autheme.core.trust import RunOutcome, TrustEngine, TrustScore
from autheme.events import (
    CanonicalEvent,
    ModelCallEnd,
    ModelCallStart,
    RunEnd,
    ToolCallEnd,
)
from autheme.ingest import coerce_event
from autheme.presentation import ScorePresenter
from autheme.reporting import ReportingSink, build_payload

logger = logging.getLogger(__name__)


class RunMonitor:
    """Aggregates host lifecycle events into scored runs.

    Args:
        config: Monitor configuration. Defaults to ``MonitorConfig()``.
        engine: Scoring engine. Defaults to ``TrustEngine()``.
        sink: Reporting sink. Defaults to one built from ``config``.
        presenter: Local presenter. Defaults to one built from ``config``.
        clock: Callable returning epoch seconds. Defaults to ``time.time``.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        engine: TrustEngine | None = None,
        sink: ReportingSink | None = None,
        presenter: ScorePresenter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or MonitorConfig()
        self.config.validate()
        self._clock = clock
        self.registry = RunRegistry(clock)
        self.engine = engine or TrustEngine()
        self.sink = sink or ReportingSink(
            self.config.endpoint,
            self.config.api_key,
            verbose=self.config.verbose,
            max_pending=self.config.max_pending_reports,
            timeout=self.config.report_timeout_seconds,
        )
        self.presenter = presenter or ScorePresenter(
            enabled=self.config.log_locally,
            verbose=self.config.verbose,
        )
        self._maintenance_task: asyncio.Task[None] | None = None

    # -- Event handling --

    def handle_hook(
        self, hook: str, payload: Any, context: Any = None
    ) -> TrustScore | None:
        """Coerce a raw host hook invocation and handle it.

        Returns:
            The trust score for run-end hooks, otherwise None.
        """
        event = coerce_event(hook, payload, context)
        if event is None:
            return None
        return self.handle(event)

    def handle(self, event: CanonicalEvent) -> TrustScore | None:
        """Apply one canonical event. Never raises.

        Returns:
            The trust score when ``event`` is a ``RunEnd`` and scoring
            succeeded, otherwise None.
        """
        try:
            return self._dispatch(event)
        except Exception:
            logger.warning(
                "[authe.me] %s hook error", event.kind.value, exc_info=True
            )
            return None

    def _dispatch(self, event: CanonicalEvent) -> TrustScore | None:
        ctx = event.context
        now = self._clock()
        record = self.registry.get_or_create(
            ctx.session_key, ctx.run_id, agent_id=ctx.agent_id, now=now
        )
        if record.agent_id is None:
            record.agent_id = ctx.agent_id
        allowed = self.config.allowed_tools

        if isinstance(event, ModelCallStart):
            started = event.timestamp / 1000 if event.timestamp is not None else None
            on_model_start(
                record, event.model,
                now=now, started_at=started, request_id=event.request_id,
            )
        elif isinstance(event, ModelCallEnd):
            on_model_call(
                record,
                event.model,
                event.total_tokens,
                event.cost,
                event.latency_ms,
                input_tokens=event.input_tokens,
                output_tokens=event.output_tokens,
                stop_reason=event.stop_reason,
                request_id=event.request_id,
                now=now,
            )
        elif isinstance(event, ToolCallEnd):
            action = on_tool_call(
                record,
                event.tool_name,
                event.duration_ms,
                event.error,
                allowed,
                params=event.params,
                result=event.result,
                now=now,
            )
            if not action.scope_match:
                self.presenter.violation(event.tool_name, allowed)
        elif isinstance(event, RunEnd):
            return self._finish(record, event, now)
        return None

    def _finish(self, record: RunRecord, event: RunEnd, now: float) -> TrustScore:
        outcome = RunOutcome(
            success=event.success,
            error=event.error,
            duration_ms=event.duration_ms,
        )
        try:
            on_message_scan(
                record, event.messages, self.config.allowed_tools, now=now
            )
            score = self.engine.compute_score(
                record,
                outcome,
                allowed_tools=self.config.allowed_tools,
                cost_threshold=self.config.cost_alert_threshold,
                latency_threshold=self.config.latency_alert_threshold,
            )
        finally:
            self.registry.remove(record.session_key)

        agent_id = record.agent_id or self.config.agent_id
        self.presenter.score(score, record, outcome, agent_id)
        if self.sink.enabled:
            self._report(record, score, outcome, agent_id, now)
        return score

    def _report(
        self,
        record: RunRecord,
        score: TrustScore,
        outcome: RunOutcome,
        agent_id: str,
        now: float,
    ) -> None:
        try:
            payload = build_payload(
                record, score, outcome, agent_id=agent_id, completed_at=now
            )
            self.sink.submit(payload)
        except Exception as exc:
            if self.config.verbose:
                logger.warning("[authe.me] API report failed: %s", exc)
            else:
                logger.debug("Report for run %s not submitted: %s", record.run_id, exc)

    # -- Maintenance --

    @property
    def active_runs(self) -> int:
        """Number of in-flight runs."""
        return len(self.registry)

    def sweep(self) -> list[str]:
        """Evict runs idle longer than the configured time-to-live.

        Returns:
            Session keys of the evicted runs.
        """
        evicted = self.registry.evict_stale(self.config.run_ttl_seconds)
        if evicted and self.config.verbose:
            logger.info(
                "[authe.me] Evicted %d abandoned run(s): %s",
                len(evicted), ", ".join(evicted),
            )
        return evicted

    async def _maintenance_loop(self) -> None:
        """Run the staleness sweep every ``sweep_interval_seconds``."""
        while True:
            await asyncio.sleep(self.config.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error("Maintenance sweep error: %s", e)

    # -- Lifecycle --

    @property
    def running(self) -> bool:
        task = self._maintenance_task
        return task is not None and not task.done()

    async def start(self) -> None:
        """Start the maintenance sweep and the report worker."""
        if self.running:
            return
        if self.sink.enabled:
            self.sink.start()
        self._maintenance_task = asyncio.create_task(
            self._maintenance_loop(), name="autheme-maintenance"
        )
        logger.debug("RunMonitor started")

    async def shutdown(
        self, *, drain: bool = False, timeout: float | None = None
    ) -> None:
        """Stop background tasks and drop all in-flight runs.

        Args:
            drain: Deliver queued reports before stopping the worker.
            timeout: Upper bound in seconds for the drain.
        """
        if self._maintenance_task is not None:
            self._maintenance_task.cancel()
            try:
                await self._maintenance_task
            except asyncio.CancelledError:
                pass
            self._maintenance_task = None
        await self.sink.stop(drain=drain, timeout=timeout)
        self.registry.clear()
        logger.debug("RunMonitor stopped")

    async def __aenter__(self) -> RunMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()
