"""Run report payload construction.

Builds the JSON document submitted to the remote ingest endpoint. Tool
inputs and outputs are captured verbatim from the host and may be large,
so each one is bounded by ``SUMMARY_BYTE_BUDGET``: anything whose JSON form
exceeds the budget is replaced by a size marker instead of being dropped.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from autheme.core.runs.models import ActionKind, ActionRecord, RunRecord
from autheme.core.trust.engine import round_half_up
from autheme.core.trust.models import RunOutcome, TrustScore

SUMMARY_BYTE_BUDGET: int = 10_000


def truncate_summary(value: Any, budget: int = SUMMARY_BYTE_BUDGET) -> Any:
    """Return ``value`` if its JSON form fits ``budget`` bytes, else a marker.

    Values that are not JSON-serializable are serialized via ``str``.
    Values that cannot be encoded at all (circular references, NaN or
    infinite floats, lone surrogates) are replaced by an
    ``unserializable`` marker.

    Returns:
        The original value, or ``{"truncated": True, "size_bytes": n}``.
    """
    if value is None:
        return None
    try:
        serialized = json.dumps(
            value, default=str, ensure_ascii=False, allow_nan=False
        )
        size = len(serialized.encode("utf-8"))
    except (TypeError, ValueError):
        return {"unserializable": True, "type": type(value).__name__}
    if size > budget:
        return {"truncated": True, "size_bytes": size}
    return json.loads(serialized)


def iso_timestamp(epoch_seconds: float) -> str:
    """Format epoch seconds as an ISO-8601 UTC timestamp with millis."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def action_to_dict(action: ActionRecord) -> dict[str, Any]:
    """Serialize one action log entry for the report."""
    data: dict[str, Any] = {
        "type": action.kind.value,
        "timestamp": iso_timestamp(action.timestamp),
        "status": action.status,
        "duration_ms": round_half_up(action.duration_ms),
    }
    if action.kind is ActionKind.MODEL_CALL:
        data.update({
            "model": action.model,
            "input_tokens": action.input_tokens,
            "output_tokens": action.output_tokens,
            "cost": action.cost,
            "stop_reason": action.stop_reason,
        })
    else:
        data.update({
            "tool_name": action.tool_name,
            "input": truncate_summary(action.params),
            "output": truncate_summary(
                action.error if action.error else action.result
            ),
            "scope_violation": not action.scope_match,
        })
    return data


def build_payload(
    record: RunRecord,
    score: TrustScore,
    outcome: RunOutcome,
    *,
    agent_id: str,
    completed_at: float,
) -> dict[str, Any]:
    """Build the report payload for one scored run.

    Args:
        record: The aggregated run record.
        score: Its computed trust score.
        outcome: The terminal outcome reported by the host.
        agent_id: Agent identifier to report under.
        completed_at: Epoch seconds when the run ended.

    Returns:
        A JSON-serializable dictionary.
    """
    return {
        "agent_id": agent_id,
        "session_key": record.session_key,
        "run_id": record.run_id,
        "started_at": iso_timestamp(record.created_at),
        "completed_at": iso_timestamp(completed_at),
        "success": outcome.success,
        "error": outcome.error,
        "duration_ms": round_half_up(outcome.duration_ms),
        "actions": [action_to_dict(a) for a in record.actions],
        "trust_score": score.as_dict(),
        "summary": {
            "total_tokens": record.total_tokens,
            "total_cost": round(record.total_cost, 6),
            "tool_calls": len(record.tool_calls),
            "scope_violations": len(record.scope_violations),
            "errors": record.errors,
            "avg_latency_ms": round_half_up(record.average_latency_ms),
        },
    }
