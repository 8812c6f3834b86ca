"""Data models for in-flight runs: ActionKind, ActionRecord, RunRecord.

A ``RunRecord`` aggregates everything observed for one agent run: the
append-only action log and the counters the scoring engine reads. Records
are owned by a single ``RunRegistry`` and mutated only through the
accumulator functions in ``autheme.core.runs.accumulator``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# ActionKind
# ---------------------------------------------------------------------------


class ActionKind(str, Enum):
    """How an action entered the log.

    ``FALLBACK_TOOL`` marks a tool that was only discovered by scanning the
    completed message history (no real-time capture, zero duration).
    """

    MODEL_CALL = "llm_call"
    TOOL_CALL = "tool_call"
    FALLBACK_TOOL = "tool_mention"


# ---------------------------------------------------------------------------
# ActionRecord
# ---------------------------------------------------------------------------


@dataclass
class ActionRecord:
    """A single entry in a run's action log.

    Model-call fields and tool-call fields are mutually exclusive in
    practice; unused fields keep their defaults.

    Attributes:
        kind: Model call, tool call, or fallback tool mention.
        timestamp: Epoch seconds when the action was recorded.
        duration_ms: Latency of the call in milliseconds.
        model: Model name (model calls).
        input_tokens: Prompt tokens (model calls).
        output_tokens: Completion tokens (model calls).
        cost: Cost in currency units (model calls).
        stop_reason: Provider stop reason (model calls).
        tool_name: Tool name (tool calls and mentions).
        params: Tool parameters as captured from the host.
        result: Tool result as captured from the host.
        error: Tool error message, if the call failed.
        scope_match: Whether the tool is on the allow-list.
    """

    kind: ActionKind
    timestamp: float
    duration_ms: float = 0.0
    model: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    stop_reason: str | None = None
    tool_name: str | None = None
    params: Any = None
    result: Any = None
    error: str | None = None
    scope_match: bool = True

    @property
    def status(self) -> str:
        """``"error"`` if the call failed, otherwise ``"success"``."""
        return "error" if self.error else "success"


# ---------------------------------------------------------------------------
# RunRecord
# ---------------------------------------------------------------------------


@dataclass
class RunRecord:
    """Aggregated state of one in-flight run.

    Attributes:
        session_key: Session identity; the registry key.
        run_id: Run identity. A change discards the record.
        agent_id: Agent identifier from the first event, if any.
        created_at: Epoch seconds when the record was created.
        last_activity_at: Epoch seconds of the most recent mutation.
        actions: Append-only ordered action log.
        total_tokens: Sum of input and output tokens over model calls.
        total_cost: Sum of model-call costs.
        tool_calls: One tool name per observed tool call or mention.
        scope_violations: One tool name per out-of-scope call.
        latencies: Latency samples (ms) from tool and model calls.
        errors: Number of failed tool calls.
        pending_model_starts: Request key -> start time of an open model
            request. The key is ``("request", id)`` or ``("model", name)``.
    """

    session_key: str
    run_id: str
    created_at: float
    last_activity_at: float
    agent_id: str | None = None
    actions: list[ActionRecord] = field(default_factory=list)
    total_tokens: int = 0
    total_cost: float = 0.0
    tool_calls: list[str] = field(default_factory=list)
    scope_violations: list[str] = field(default_factory=list)
    latencies: list[float] = field(default_factory=list)
    errors: int = 0
    pending_model_starts: dict[tuple[str, str], float] = field(default_factory=dict)

    def touch(self, now: float) -> None:
        """Advance the last-activity time. Never moves backwards."""
        if now > self.last_activity_at:
            self.last_activity_at = now

    def is_stale(self, ttl: float, now: float) -> bool:
        """True when the run has been idle for longer than ``ttl`` seconds."""
        return now - self.last_activity_at > ttl

    @property
    def average_latency_ms(self) -> float:
        if not self.latencies:
            return 0.0
        return sum(self.latencies) / len(self.latencies)
