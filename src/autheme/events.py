"""Canonical lifecycle events consumed by the run monitor.

The host runtime reports four kinds of lifecycle events. The ingestion
adapter (``autheme.ingest``) coerces raw host payloads into exactly one of
the frozen dataclasses below, so the monitor and accumulator never inspect
untyped data.

- ``ModelCallStart`` -- a model request is about to be sent.
- ``ModelCallEnd``   -- a model response arrived (tokens, cost, latency).
- ``ToolCallEnd``    -- a tool invocation finished (result or error).
- ``RunEnd``         -- the agent run terminated (history, outcome).

Every event carries an ``EventContext`` identifying the agent and session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class EventKind(str, Enum):
    """Closed set of canonical event kinds."""

    MODEL_CALL_START = "model_call_start"
    MODEL_CALL_END = "model_call_end"
    TOOL_CALL_END = "tool_call_end"
    RUN_END = "run_end"


@dataclass(frozen=True)
class EventContext:
    """Identity bundle attached to every host event.

    Attributes:
        agent_id: Agent identifier. ``None`` falls back to the configured id.
        session_key: Session identity. One in-flight run per session.
        run_id: Run identity, when the host provides one.
    """

    agent_id: str | None = None
    session_key: str = "unknown"
    run_id: str | None = None


@dataclass(frozen=True)
class ModelCallStart:
    """A model request is starting.

    ``timestamp`` is the host-reported start time in epoch milliseconds.
    ``request_id`` pairs the start with its ``ModelCallEnd`` when the host
    runs overlapping requests against the same model.
    """

    context: EventContext
    model: str = "unknown"
    timestamp: float | None = None
    request_id: str | None = None

    kind = EventKind.MODEL_CALL_START


@dataclass(frozen=True)
class ModelCallEnd:
    """A model response was received.

    ``latency_ms`` is ``None`` when the host did not measure it; the
    accumulator then derives it from the matching ``ModelCallStart``.
    """

    context: EventContext
    model: str = "unknown"
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    latency_ms: float | None = None
    stop_reason: str | None = None
    request_id: str | None = None

    kind = EventKind.MODEL_CALL_END

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ToolCallEnd:
    """A tool invocation finished, successfully or with an error."""

    context: EventContext
    tool_name: str = "unknown"
    params: Any = None
    result: Any = None
    error: str | None = None
    duration_ms: float = 0.0

    kind = EventKind.TOOL_CALL_END


@dataclass(frozen=True)
class RunEnd:
    """The agent run terminated.

    Attributes:
        messages: Completed message history, scanned for tool mentions
            that real-time capture missed.
        success: Whether the run succeeded.
        error: Failure message, if any.
        duration_ms: Total wall-clock duration of the run.
    """

    context: EventContext
    messages: tuple[Any, ...] = field(default_factory=tuple)
    success: bool = True
    error: str | None = None
    duration_ms: float = 0.0

    kind = EventKind.RUN_END


CanonicalEvent = Union[ModelCallStart, ModelCallEnd, ToolCallEnd, RunEnd]
