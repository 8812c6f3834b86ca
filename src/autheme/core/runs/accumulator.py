"""Run state accumulation and message-history reconciliation.

Each function mutates one ``RunRecord`` synchronously and returns without
suspending, so two events for the same session can never interleave
mid-mutation. Counters only ever grow: negative inputs are clamped to zero.

Reconciliation
--------------
Real-time tool capture is not guaranteed: some hosts deliver
``after_tool_call`` only for a subset of tools. At run end the completed
message history is scanned for tool-use blocks, and every tool *name* not
already captured is added as a zero-duration ``FALLBACK_TOOL`` action.
Deduplication is by name within the run, not by call instance, so a tool
seen by both paths is counted once and repeated scans are idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from autheme.core.runs.models import ActionKind, ActionRecord, RunRecord

logger = logging.getLogger(__name__)

# Content block types that mark a tool invocation in message history.
TOOL_USE_BLOCK_TYPES: frozenset[str] = frozenset({"tool_use", "toolCall"})


def _non_negative(value: float | int) -> float:
    return value if value > 0 else 0


def scope_matches(tool_name: str, allowed_tools: Sequence[str]) -> bool:
    """Return True if a tool is permitted by the allow-list.

    An empty allow-list permits every tool; otherwise the exact name must
    be present.
    """
    return not allowed_tools or tool_name in allowed_tools


def on_tool_call(
    record: RunRecord,
    name: str,
    duration_ms: float,
    error: str | None = None,
    allowed_tools: Sequence[str] = (),
    *,
    params: Any = None,
    result: Any = None,
    now: float,
) -> ActionRecord:
    """Record a completed tool call.

    Appends the action, records a latency sample, counts a failure when
    ``error`` is set, and appends the name to ``scope_violations`` when it
    is outside the allow-list. The caller emits the real-time warning for
    out-of-scope calls based on ``ActionRecord.scope_match``.

    Returns:
        The appended action.
    """
    duration = _non_negative(duration_ms)
    in_scope = scope_matches(name, allowed_tools)
    action = ActionRecord(
        kind=ActionKind.TOOL_CALL,
        timestamp=now,
        duration_ms=duration,
        tool_name=name,
        params=params,
        result=result,
        error=error or None,
        scope_match=in_scope,
    )
    record.actions.append(action)
    record.tool_calls.append(name)
    record.latencies.append(duration)
    if action.error:
        record.errors += 1
    if not in_scope:
        record.scope_violations.append(name)
    record.touch(now)
    return action


def _start_key(model: str, request_id: str | None) -> tuple[str, str]:
    if request_id:
        return ("request", request_id)
    return ("model", model)


def on_model_start(
    record: RunRecord,
    model: str,
    *,
    now: float,
    started_at: float | None = None,
    request_id: str | None = None,
) -> None:
    """Remember when a model request started, for latency derivation.

    ``started_at`` is the host-reported start time in epoch seconds;
    the receipt time ``now`` is used when it is missing. Starts are keyed
    by ``request_id`` when the host supplies one, otherwise by model name,
    in which case overlapping requests to one model share a single slot
    and the later start wins.
    """
    key = _start_key(model, request_id)
    record.pending_model_starts[key] = now if started_at is None else started_at
    record.touch(now)


def on_model_call(
    record: RunRecord,
    model: str,
    tokens: int,
    cost: float,
    latency_ms: float | None,
    *,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
    stop_reason: str | None = None,
    request_id: str | None = None,
    now: float,
) -> ActionRecord:
    """Record a completed model call.

    Accumulates token and cost totals and records a latency sample. When
    ``latency_ms`` is None the latency is derived from the matching
    ``on_model_start`` call (same ``request_id``, or same model when no
    id is given), or 0 if the start was never observed.

    Returns:
        The appended action.
    """
    started = record.pending_model_starts.pop(_start_key(model, request_id), None)
    if latency_ms is None:
        latency_ms = (now - started) * 1000 if started is not None else 0.0
    latency = _non_negative(latency_ms)
    tokens = int(_non_negative(tokens))
    cost = _non_negative(cost)

    action = ActionRecord(
        kind=ActionKind.MODEL_CALL,
        timestamp=now,
        duration_ms=latency,
        model=model,
        input_tokens=int(_non_negative(input_tokens or 0)),
        output_tokens=int(_non_negative(output_tokens or 0)),
        cost=cost,
        stop_reason=stop_reason,
    )
    record.actions.append(action)
    record.total_tokens += tokens
    record.total_cost += cost
    record.latencies.append(latency)
    record.touch(now)
    return action


def extract_tool_mentions(messages: Iterable[Any]) -> list[str]:
    """Return tool names mentioned by assistant messages, in order.

    Only assistant messages whose ``content`` is a list of blocks are
    considered; a block counts when its ``type`` is a tool-use marker and
    it carries a non-empty string ``name``. Anything else is skipped.
    """
    names: list[str] = []
    for message in messages or ():
        if not isinstance(message, dict) or message.get("role") != "assistant":
            continue
        content = message.get("content")
        if not isinstance(content, list):
            continue
        for block in content:
            if not isinstance(block, dict):
                continue
            name = block.get("name")
            if block.get("type") in TOOL_USE_BLOCK_TYPES and isinstance(name, str) and name:
                names.append(name)
    return names


def on_message_scan(
    record: RunRecord,
    messages: Iterable[Any],
    allowed_tools: Sequence[str] = (),
    *,
    now: float,
) -> list[ActionRecord]:
    """Reconcile captured tool calls against the completed message history.

    For every mentioned tool name not already in ``record.tool_calls``,
    applies the scope check and appends a synthetic zero-duration action.
    Synthetic actions add no latency sample.

    Returns:
        The synthetic actions appended by this scan (empty when every
        mentioned tool was already known).
    """
    added: list[ActionRecord] = []
    for name in extract_tool_mentions(messages):
        if name in record.tool_calls:
            continue
        in_scope = scope_matches(name, allowed_tools)
        action = ActionRecord(
            kind=ActionKind.FALLBACK_TOOL,
            timestamp=now,
            tool_name=name,
            scope_match=in_scope,
        )
        record.actions.append(action)
        record.tool_calls.append(name)
        if not in_scope:
            record.scope_violations.append(name)
        added.append(action)

    if added:
        logger.debug(
            "Message scan added %d tool(s) to run %s: %s",
            len(added), record.run_id, ", ".join(a.tool_name for a in added),
        )
        record.touch(now)
    return added
