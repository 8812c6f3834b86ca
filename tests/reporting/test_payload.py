"""Tests for report payload construction and summary truncation."""

from __future__ import annotations

import json

import pytest

from autheme.core.runs import on_message_scan, on_model_call, on_tool_call
from autheme.core.trust import RunOutcome, TrustEngine
from autheme.reporting import SUMMARY_BYTE_BUDGET, build_payload, truncate_summary
from autheme.reporting.payload import iso_timestamp


class TestTruncateSummary:
    def test_none(self) -> None:
        assert truncate_summary(None) is None

    def test_small_value_passes_through(self) -> None:
        assert truncate_summary({"path": "README.md"}) == {"path": "README.md"}

    def test_oversized_value_replaced_by_marker(self) -> None:
        big = "x" * (SUMMARY_BYTE_BUDGET + 1)
        marker = truncate_summary(big)
        assert marker == {"truncated": True, "size_bytes": SUMMARY_BYTE_BUDGET + 3}

    def test_value_at_budget_is_kept(self) -> None:
        exact = "x" * (SUMMARY_BYTE_BUDGET - 2)
        assert truncate_summary(exact) == exact

    def test_size_counts_utf8_bytes(self) -> None:
        marker = truncate_summary("é" * 6, budget=10)
        assert marker == {"truncated": True, "size_bytes": 14}

    def test_non_json_types_stringified(self) -> None:
        assert truncate_summary({"when": object}) == {"when": str(object)}

    def test_circular_value(self) -> None:
        loop: list = []
        loop.append(loop)
        assert truncate_summary(loop) == {"unserializable": True, "type": "list"}

    def test_lone_surrogate(self) -> None:
        assert truncate_summary({"text": "abc\ud800def"}) == {
            "unserializable": True, "type": "dict",
        }

    @pytest.mark.parametrize("number", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_float(self, number: float) -> None:
        assert truncate_summary({"x": number}) == {
            "unserializable": True, "type": "dict",
        }


class TestIsoTimestamp:
    def test_utc_millis(self) -> None:
        assert iso_timestamp(1_700_000_000.25) == "2023-11-14T22:13:20.250Z"


class TestBuildPayload:
    def _payload(self, make_record, clock) -> dict:
        record = make_record(agent_id="support-bot")
        on_model_call(
            record, "claude", 1500, 0.0123, 800,
            input_tokens=1200, output_tokens=300, stop_reason="tool_use",
            now=clock.now,
        )
        on_tool_call(
            record, "read_file", 120.4, None, ["read_file"],
            params={"path": "README.md"}, result={"content": "x" * 20_000},
            now=clock.now,
        )
        on_tool_call(
            record, "shell_exec", 89.6, "denied", ["read_file"],
            params={"command": "ls"}, now=clock.now,
        )
        on_message_scan(
            record,
            [{"role": "assistant", "content": [{"type": "tool_use", "name": "web"}]}],
            ["read_file"],
            now=clock.now,
        )
        outcome = RunOutcome(success=True, duration_ms=2063.5)
        score = TrustEngine().compute_score(
            record, outcome, allowed_tools=["read_file"]
        )
        return build_payload(
            record, score, outcome, agent_id="support-bot", completed_at=clock.now + 2
        )

    def test_top_level_fields(self, make_record, clock) -> None:
        payload = self._payload(make_record, clock)
        assert payload["agent_id"] == "support-bot"
        assert payload["session_key"] == "test-session"
        assert payload["run_id"] == "test-run"
        assert payload["started_at"] == "2023-11-14T22:13:20.000Z"
        assert payload["completed_at"] == "2023-11-14T22:13:22.000Z"
        assert payload["success"] is True
        assert payload["error"] is None
        assert payload["duration_ms"] == 2064
        assert payload["trust_score"]["dimensions"]["scope_adherence"] == 33

    def test_summary(self, make_record, clock) -> None:
        summary = self._payload(make_record, clock)["summary"]
        assert summary == {
            "total_tokens": 1500,
            "total_cost": 0.0123,
            "tool_calls": 3,
            "scope_violations": 2,
            "errors": 1,
            "avg_latency_ms": 337,
        }

    def test_actions(self, make_record, clock) -> None:
        model, read, shell, web = self._payload(make_record, clock)["actions"]
        assert model["type"] == "llm_call"
        assert model["model"] == "claude"
        assert model["input_tokens"] == 1200
        assert model["stop_reason"] == "tool_use"

        assert read["type"] == "tool_call"
        assert read["duration_ms"] == 120
        assert read["input"] == {"path": "README.md"}
        assert read["output"]["truncated"] is True
        assert read["scope_violation"] is False

        assert shell["status"] == "error"
        assert shell["output"] == "denied"
        assert shell["scope_violation"] is True

        assert web["type"] == "tool_mention"
        assert web["duration_ms"] == 0

    def test_json_serializable(self, make_record, clock) -> None:
        payload = self._payload(make_record, clock)
        assert json.loads(json.dumps(payload)) == payload

    def test_unencodable_tool_values_keep_report_deliverable(
        self, make_record, clock
    ) -> None:
        record = make_record()
        on_tool_call(
            record, "calc", 5, None, (),
            params={"x": float("nan")}, result="bad \udc80 byte", now=clock.now,
        )
        outcome = RunOutcome()
        score = TrustEngine().compute_score(record, outcome)
        payload = build_payload(
            record, score, outcome, agent_id="bot", completed_at=clock.now
        )

        action = payload["actions"][0]
        assert action["input"] == {"unserializable": True, "type": "dict"}
        assert action["output"] == {"unserializable": True, "type": "str"}
        json.dumps(payload, allow_nan=False, ensure_ascii=False).encode("utf-8")
