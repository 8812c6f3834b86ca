"""Tests for run accumulation and message-history reconciliation."""

from __future__ import annotations

import pytest

from autheme.core.runs import (
    ActionKind,
    extract_tool_mentions,
    on_message_scan,
    on_model_call,
    on_model_start,
    on_tool_call,
    scope_matches,
)


def _assistant(*blocks: dict) -> dict:
    return {"role": "assistant", "content": list(blocks)}


def _tool_use(name: str, block_type: str = "tool_use") -> dict:
    return {"type": block_type, "name": name, "input": {}}


class TestScopeMatches:
    def test_empty_allow_list_permits_all(self) -> None:
        assert scope_matches("anything", ())

    def test_exact_name_required(self) -> None:
        assert scope_matches("read_file", ["read_file"])
        assert not scope_matches("read", ["read_file"])
        assert not scope_matches("Read_File", ["read_file"])


class TestOnToolCall:
    def test_in_scope_call(self, make_record, clock) -> None:
        record = make_record()
        action = on_tool_call(
            record, "read", 120, None, ["read"],
            params={"path": "a"}, result="ok", now=clock.now + 5,
        )
        assert action.kind is ActionKind.TOOL_CALL
        assert action.scope_match
        assert action.status == "success"
        assert record.actions == [action]
        assert record.tool_calls == ["read"]
        assert record.latencies == [120]
        assert record.scope_violations == []
        assert record.errors == 0
        assert record.last_activity_at == clock.now + 5

    def test_violation_recorded(self, make_record, clock) -> None:
        record = make_record()
        action = on_tool_call(record, "shell_exec", 10, None, ["read"], now=clock.now)
        assert not action.scope_match
        assert record.scope_violations == ["shell_exec"]
        assert record.tool_calls == ["shell_exec"]

    def test_error_counted(self, make_record, clock) -> None:
        record = make_record()
        action = on_tool_call(record, "read", 10, "ENOENT", now=clock.now)
        assert action.status == "error"
        assert record.errors == 1

    def test_empty_error_is_success(self, make_record, clock) -> None:
        record = make_record()
        on_tool_call(record, "read", 10, "", now=clock.now)
        assert record.errors == 0

    def test_negative_duration_clamped(self, make_record, clock) -> None:
        record = make_record()
        on_tool_call(record, "read", -50, now=clock.now)
        assert record.latencies == [0]

    def test_activity_never_moves_backwards(self, make_record, clock) -> None:
        record = make_record()
        on_tool_call(record, "read", 1, now=clock.now + 10)
        on_tool_call(record, "read", 1, now=clock.now + 3)
        assert record.last_activity_at == clock.now + 10


class TestOnModelCall:
    def test_totals_accumulate(self, make_record, clock) -> None:
        record = make_record()
        on_model_call(record, "claude", 1500, 0.02, 800, now=clock.now)
        action = on_model_call(
            record, "claude", 500, 0.01, 1200,
            input_tokens=400, output_tokens=100, stop_reason="end_turn",
            now=clock.now,
        )
        assert record.total_tokens == 2000
        assert record.total_cost == pytest.approx(0.03)
        assert record.latencies == [800, 1200]
        assert action.kind is ActionKind.MODEL_CALL
        assert action.input_tokens == 400
        assert action.stop_reason == "end_turn"
        assert record.tool_calls == []

    def test_latency_derived_from_start(self, make_record, clock) -> None:
        record = make_record()
        on_model_start(record, "claude", now=clock.now)
        on_model_call(record, "claude", 10, 0.0, None, now=clock.now + 2.5)
        assert record.latencies == [2500.0]
        assert record.pending_model_starts == {}

    def test_overlapping_requests_keyed_by_request_id(self, make_record, clock) -> None:
        record = make_record()
        on_model_start(record, "claude", now=clock.now, request_id="a")
        on_model_start(record, "claude", now=clock.now + 1, request_id="b")
        on_model_call(record, "claude", 10, 0.0, None, request_id="a", now=clock.now + 2)
        on_model_call(record, "claude", 10, 0.0, None, request_id="b", now=clock.now + 4)
        assert record.latencies == [2000.0, 3000.0]
        assert record.pending_model_starts == {}

    def test_same_model_without_request_id_shares_slot(self, make_record, clock) -> None:
        record = make_record()
        on_model_start(record, "claude", now=clock.now)
        on_model_start(record, "claude", now=clock.now + 1)
        on_model_call(record, "claude", 10, 0.0, None, now=clock.now + 2)
        on_model_call(record, "claude", 10, 0.0, None, now=clock.now + 3)
        assert record.latencies == [1000.0, 0.0]

    def test_host_start_time_preferred(self, make_record, clock) -> None:
        record = make_record()
        on_model_start(record, "claude", now=clock.now + 1, started_at=clock.now)
        on_model_call(record, "claude", 10, 0.0, None, now=clock.now + 3)
        assert record.latencies == [3000.0]

    def test_missing_start_gives_zero_latency(self, make_record, clock) -> None:
        record = make_record()
        on_model_call(record, "claude", 10, 0.0, None, now=clock.now)
        assert record.latencies == [0.0]

    def test_negative_inputs_clamped(self, make_record, clock) -> None:
        record = make_record()
        on_model_call(record, "m", -10, -1.0, -5, now=clock.now)
        assert record.total_tokens == 0
        assert record.total_cost == 0
        assert record.latencies == [0]


class TestExtractToolMentions:
    def test_assistant_blocks_only(self) -> None:
        messages = [
            {"role": "user", "content": [_tool_use("user_tool")]},
            _assistant({"type": "text", "text": "hi"}, _tool_use("read")),
            _assistant(_tool_use("write", block_type="toolCall")),
            {"role": "assistant", "content": "plain text"},
            "garbage",
            _assistant({"type": "tool_use", "name": ""}, {"type": "tool_use"}),
        ]
        assert extract_tool_mentions(messages) == ["read", "write"]

    def test_none_history(self) -> None:
        assert extract_tool_mentions(None) == []


class TestOnMessageScan:
    def test_adds_missed_tools_once(self, make_record, clock) -> None:
        record = make_record()
        on_tool_call(record, "read", 10, now=clock.now)
        messages = [
            _assistant(_tool_use("read"), _tool_use("web_search")),
            _assistant(_tool_use("web_search")),
        ]
        added = on_message_scan(record, messages, now=clock.now)

        assert [a.tool_name for a in added] == ["web_search"]
        assert added[0].kind is ActionKind.FALLBACK_TOOL
        assert added[0].duration_ms == 0
        assert record.tool_calls == ["read", "web_search"]

    def test_fallback_adds_no_latency_sample(self, make_record, clock) -> None:
        record = make_record()
        on_message_scan(record, [_assistant(_tool_use("read"))], now=clock.now)
        assert record.latencies == []

    def test_fallback_applies_scope(self, make_record, clock) -> None:
        record = make_record()
        added = on_message_scan(
            record, [_assistant(_tool_use("shell_exec"))], ["read"], now=clock.now
        )
        assert not added[0].scope_match
        assert record.scope_violations == ["shell_exec"]

    def test_repeated_scan_is_idempotent(self, make_record, clock) -> None:
        record = make_record()
        messages = [_assistant(_tool_use("a"), _tool_use("b"))]
        on_message_scan(record, messages, ["a"], now=clock.now)
        snapshot = (list(record.tool_calls), list(record.scope_violations),
                    len(record.actions))

        assert on_message_scan(record, messages, ["a"], now=clock.now) == []
        assert (record.tool_calls, record.scope_violations,
                len(record.actions)) == snapshot

    def test_nothing_added_leaves_activity_untouched(self, make_record, clock) -> None:
        record = make_record()
        on_message_scan(record, [], now=clock.now + 100)
        assert record.last_activity_at == clock.now
