"""Ingestion adapter: host hook payloads -> canonical events.

Host runtimes call plugin hooks with loosely typed payloads whose key style
varies between versions (``toolName`` vs ``tool_name``, ``usage.input`` vs
``inputTokens``). ``coerce_event`` is the single place where that data is
validated: it returns one of the frozen canonical events, or ``None`` for
hooks the monitor does not consume. It never raises; malformed fields fall
back to their defaults.

Hook names
----------
======================  =========================
Host hook               Canonical event
======================  =========================
``llm_input``           ``ModelCallStart``
``llm_output``          ``ModelCallEnd``
``after_tool_call``     ``ToolCallEnd``
``agent_end``           ``RunEnd``
======================  =========================

The canonical kind names (``model_call_start``, ...) are accepted as
aliases, which is what recorded event logs for ``autheme replay`` use.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from autheme.events import (
    CanonicalEvent,
    EventContext,
    EventKind,
    ModelCallEnd,
    ModelCallStart,
    RunEnd,
    ToolCallEnd,
)

logger = logging.getLogger(__name__)

HOOK_ALIASES: dict[str, EventKind] = {
    "llm_input": EventKind.MODEL_CALL_START,
    "before_model_call": EventKind.MODEL_CALL_START,
    "llm_output": EventKind.MODEL_CALL_END,
    "after_model_call": EventKind.MODEL_CALL_END,
    "after_tool_call": EventKind.TOOL_CALL_END,
    "agent_end": EventKind.RUN_END,
}
HOOK_ALIASES.update({kind.value: kind for kind in EventKind})


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_float(value: Any, default: float | None = 0.0) -> float | None:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _as_int(value: Any, default: int = 0) -> int:
    number = _as_float(value, None)
    return default if number is None else int(number)


def _as_str(value: Any, default: str | None = None) -> str | None:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def _as_bool(value: Any) -> bool | None:
    """Parse a boolean flag; None when the value is not recognizably one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return None
    if isinstance(value, int):
        return bool(value)
    return None


def _as_error(value: Any) -> str | None:
    """Normalize an error field: strings, ``{"message": ...}``, exceptions."""
    if value is None or value is False or value == "":
        return None
    if isinstance(value, Mapping):
        return _as_str(_first(value, "message", "error"), "unknown error")
    return _as_str(value, "unknown error")


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def coerce_context(context: Any) -> EventContext:
    """Build an ``EventContext`` from a host context bundle.

    Missing session keys map to ``"unknown"``, as the host does when a
    hook fires outside a session.
    """
    data = _mapping(context)
    return EventContext(
        agent_id=_as_str(_first(data, "agentId", "agent_id")),
        session_key=_as_str(
            _first(data, "sessionKey", "session_key", "sessionId"), "unknown"
        ),
        run_id=_as_str(_first(data, "runId", "run_id")),
    )


# ---------------------------------------------------------------------------
# Per-kind coercion
# ---------------------------------------------------------------------------


def _model_start(data: Mapping[str, Any], ctx: EventContext) -> ModelCallStart:
    return ModelCallStart(
        context=ctx,
        model=_as_str(_first(data, "model", "modelId"), "unknown"),
        timestamp=_as_float(_first(data, "timestamp", "ts"), None),
        request_id=_as_str(_first(data, "requestId", "request_id", "callId")),
    )


def _token_count(
    data: Mapping[str, Any],
    usage: Mapping[str, Any],
    keys: tuple[str, ...],
    usage_keys: tuple[str, ...],
) -> int:
    value = _first(data, *keys)
    if value is None:
        value = _first(usage, *usage_keys)
    return max(0, _as_int(value))


def _model_end(data: Mapping[str, Any], ctx: EventContext) -> ModelCallEnd:
    usage = _mapping(data.get("usage"))
    cost = _first(data, "cost", "costUsd", "cost_usd")
    if cost is None:
        cost = usage.get("cost")
    return ModelCallEnd(
        context=ctx,
        model=_as_str(_first(data, "model", "modelId"), "unknown"),
        input_tokens=_token_count(
            data, usage,
            ("inputTokens", "input_tokens"),
            ("input", "input_tokens", "prompt_tokens"),
        ),
        output_tokens=_token_count(
            data, usage,
            ("outputTokens", "output_tokens"),
            ("output", "output_tokens", "completion_tokens"),
        ),
        cost=max(0.0, _as_float(cost)),
        latency_ms=_as_float(_first(data, "latencyMs", "latency_ms", "durationMs"), None),
        stop_reason=_as_str(_first(data, "stopReason", "stop_reason")),
        request_id=_as_str(_first(data, "requestId", "request_id", "callId")),
    )


def _tool_end(data: Mapping[str, Any], ctx: EventContext) -> ToolCallEnd:
    return ToolCallEnd(
        context=ctx,
        tool_name=_as_str(_first(data, "toolName", "tool_name", "name"), "unknown"),
        params=_first(data, "params", "parameters", "input"),
        result=data.get("result"),
        error=_as_error(data.get("error")),
        duration_ms=max(0.0, _as_float(_first(data, "durationMs", "duration_ms"))),
    )


def _run_end(data: Mapping[str, Any], ctx: EventContext) -> RunEnd:
    messages = data.get("messages")
    if not isinstance(messages, (list, tuple)):
        messages = ()
    error = _as_error(data.get("error"))
    success = _as_bool(data.get("success"))
    if success is None:
        success = error is None
    return RunEnd(
        context=ctx,
        messages=tuple(messages),
        success=success,
        error=error,
        duration_ms=max(0.0, _as_float(_first(data, "durationMs", "duration_ms"))),
    )


_BUILDERS = {
    EventKind.MODEL_CALL_START: _model_start,
    EventKind.MODEL_CALL_END: _model_end,
    EventKind.TOOL_CALL_END: _tool_end,
    EventKind.RUN_END: _run_end,
}


def coerce_event(
    hook: str,
    payload: Any,
    context: Any = None,
) -> CanonicalEvent | None:
    """Translate one host hook invocation into a canonical event.

    Args:
        hook: Host hook name or canonical kind name.
        payload: Raw event payload. Non-mappings are treated as empty.
        context: Raw host context bundle (agent id, session key, run id).

    Returns:
        The canonical event, or None if the hook is not one the monitor
        consumes.
    """
    kind = HOOK_ALIASES.get(hook) if isinstance(hook, str) else None
    if kind is None:
        logger.debug("Ignoring unsupported hook %r", hook)
        return None
    return _BUILDERS[kind](_mapping(payload), coerce_context(context))
