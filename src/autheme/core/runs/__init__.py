"""In-flight run tracking: registry, records, and accumulation.

Submodules:
    models       -- ActionKind, ActionRecord, RunRecord
    registry     -- RunRegistry (lookup-or-create, remove, TTL eviction)
    accumulator  -- Per-event mutations and message-history reconciliation

All public names are re-exported here so that callers can write
``from autheme.core.runs import RunRegistry``.
"""

from autheme.core.runs.models import ActionKind, ActionRecord, RunRecord
from autheme.core.runs.registry import RunRegistry, generate_run_id
from autheme.core.runs.accumulator import (
    extract_tool_mentions,
    on_message_scan,
    on_model_call,
    on_model_start,
    on_tool_call,
    scope_matches,
)

__all__ = [
    "ActionKind",
    "ActionRecord",
    "RunRecord",
    "RunRegistry",
    "extract_tool_mentions",
    "generate_run_id",
    "on_message_scan",
    "on_model_call",
    "on_model_start",
    "on_tool_call",
    "scope_matches",
]
