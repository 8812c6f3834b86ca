"""Run registry: one in-flight run record per session.

The registry is the only shared mutable state in the monitor. It is owned
by exactly one ``RunMonitor`` and is never touched concurrently: every
host event is handled to completion synchronously, and the staleness sweep
runs on the same event loop between events.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from autheme.core.runs.models import RunRecord

logger = logging.getLogger(__name__)


def generate_run_id(now: float) -> str:
    """Build a run id from a timestamp, e.g. ``run_1718000000123``."""
    return f"run_{int(now * 1000)}"


class RunRegistry:
    """Mapping from session key to the single in-flight run record.

    Args:
        clock: Callable returning epoch seconds. Defaults to ``time.time``.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._runs: dict[str, RunRecord] = {}

    def get(self, session_key: str) -> RunRecord | None:
        """Return the record for a session, or None."""
        return self._runs.get(session_key)

    def get_or_create(
        self,
        session_key: str,
        run_id: str | None = None,
        *,
        agent_id: str | None = None,
        now: float | None = None,
    ) -> RunRecord:
        """Return the session's record, replacing it on a run-id change.

        A ``run_id`` of ``None`` matches whatever run is registered for the
        session. When the registered run has a different id, the old record
        is dropped wholesale; nothing is merged into the new one.

        Args:
            session_key: Session identity.
            run_id: Run identity carried by the event, if any.
            agent_id: Agent identifier recorded on a new record.
            now: Current epoch seconds. Defaults to the registry clock.

        Returns:
            The existing or freshly created record.
        """
        existing = self._runs.get(session_key)
        if existing is not None and (run_id is None or existing.run_id == run_id):
            return existing

        now = self._clock() if now is None else now
        if existing is not None:
            logger.debug(
                "Run %s replaced by %s for session %s (%d actions dropped)",
                existing.run_id, run_id, session_key, len(existing.actions),
            )
        record = RunRecord(
            session_key=session_key,
            run_id=run_id or generate_run_id(now),
            agent_id=agent_id,
            created_at=now,
            last_activity_at=now,
        )
        self._runs[session_key] = record
        return record

    def remove(self, session_key: str) -> RunRecord | None:
        """Delete and return a session's record, if present."""
        return self._runs.pop(session_key, None)

    def evict_stale(self, ttl: float, now: float | None = None) -> list[str]:
        """Remove every record idle for longer than ``ttl`` seconds.

        Args:
            ttl: Idle time-to-live in seconds.
            now: Current epoch seconds. Defaults to the registry clock.

        Returns:
            Session keys of the evicted records.
        """
        now = self._clock() if now is None else now
        stale = [
            key for key, record in self._runs.items()
            if record.is_stale(ttl, now)
        ]
        for key in stale:
            del self._runs[key]
        if stale:
            logger.debug("Evicted %d stale run(s): %s", len(stale), ", ".join(stale))
        return stale

    def clear(self) -> None:
        self._runs.clear()

    def __len__(self) -> int:
        return len(self._runs)

    def __contains__(self, session_key: object) -> bool:
        return session_key in self._runs
