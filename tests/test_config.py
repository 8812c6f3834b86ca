"""Tests for MonitorConfig defaults, validation, and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from autheme.config import (
    DEFAULT_ENDPOINT,
    MonitorConfig,
    load_config,
)
from autheme.exceptions import ConfigError


class TestDefaults:
    def test_defaults(self) -> None:
        config = MonitorConfig()
        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.api_key == ""
        assert config.agent_id == "default"
        assert config.allowed_tools == ()
        assert config.cost_alert_threshold == 0.50
        assert config.latency_alert_threshold == 30000
        assert config.log_locally is True
        assert config.verbose is False
        assert config.run_ttl_seconds == 600
        assert config.sweep_interval_seconds == 60
        assert not config.reporting_enabled

    def test_api_key_enables_reporting(self) -> None:
        assert MonitorConfig(api_key="ak_1").reporting_enabled


class TestFromMapping:
    def test_plugin_keys(self) -> None:
        config = MonitorConfig.from_mapping({
            "apiKey": "ak_live",
            "agentId": "support-bot",
            "allowedTools": ["read_file", "write_file"],
            "costAlertThreshold": 0.75,
            "latencyAlertThreshold": 20000,
            "logLocally": False,
            "verbose": True,
        })
        assert config.api_key == "ak_live"
        assert config.agent_id == "support-bot"
        assert config.allowed_tools == ("read_file", "write_file")
        assert config.cost_alert_threshold == 0.75
        assert config.latency_alert_threshold == 20000
        assert config.log_locally is False
        assert config.verbose is True

    def test_snake_case_keys(self) -> None:
        config = MonitorConfig.from_mapping({"run_ttl_seconds": 30, "agent_id": 7})
        assert config.run_ttl_seconds == 30
        assert config.agent_id == "7"

    def test_unknown_and_null_keys_ignored(self) -> None:
        config = MonitorConfig.from_mapping({"colour": "blue", "apiKey": None})
        assert config == MonitorConfig()

    def test_none_is_defaults(self) -> None:
        assert MonitorConfig.from_mapping(None) == MonitorConfig()

    def test_single_tool_string(self) -> None:
        config = MonitorConfig.from_mapping({"allowedTools": "read_file"})
        assert config.allowed_tools == ("read_file",)

    @pytest.mark.parametrize(("raw", "expected"), [("yes", True), ("off", False), (0, False)])
    def test_boolean_strings(self, raw, expected) -> None:
        assert MonitorConfig.from_mapping({"verbose": raw}).verbose is expected

    def test_bad_boolean(self) -> None:
        with pytest.raises(ConfigError, match="boolean"):
            MonitorConfig.from_mapping({"logLocally": "sometimes"})

    @pytest.mark.parametrize(
        "bad",
        [
            {"costAlertThreshold": 0},
            {"latencyAlertThreshold": -1},
            {"costAlertThreshold": "cheap"},
            {"sweepIntervalSeconds": True},
            {"maxPendingReports": 0},
            {"allowedTools": [1, 2]},
            {"allowedTools": 5},
        ],
    )
    def test_invalid_values(self, bad) -> None:
        with pytest.raises(ConfigError):
            MonitorConfig.from_mapping(bad)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            MonitorConfig.from_mapping(["apiKey"])  # type: ignore[arg-type]

    def test_with_overrides_validates(self) -> None:
        config = MonitorConfig().with_overrides(verbose=True)
        assert config.verbose
        with pytest.raises(ConfigError):
            config.with_overrides(run_ttl_seconds=0)


class TestLoadConfig:
    def test_no_file(self) -> None:
        assert load_config(None, env={}) == MonitorConfig()

    def test_yaml_section(self, tmp_path: Path) -> None:
        path = tmp_path / "autheme.yaml"
        path.write_text(
            "other_plugin:\n  x: 1\n"
            "autheme:\n"
            "  apiKey: ak_file\n"
            "  allowedTools: [read_file]\n",
            encoding="utf-8",
        )
        config = load_config(path, env={})
        assert config.api_key == "ak_file"
        assert config.allowed_tools == ("read_file",)

    def test_flat_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"costAlertThreshold": 1.25}', encoding="utf-8")
        assert load_config(path, env={}).cost_alert_threshold == 1.25

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path, env={}) == MonitorConfig()

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        path = tmp_path / "autheme.yaml"
        path.write_text("apiKey: ak_file\n", encoding="utf-8")
        config = load_config(path, env={
            "AUTHEME_API_KEY": "ak_env",
            "AUTHEME_ENDPOINT": "http://localhost:9000/ingest",
        })
        assert config.api_key == "ak_env"
        assert config.endpoint == "http://localhost:9000/ingest"

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUTHEME_API_KEY", "ak_proc")
        assert load_config().api_key == "ak_proc"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "missing.yaml", env={})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("autheme: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path, env={})

    def test_non_mapping_document(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(path, env={})

    def test_non_mapping_section(self, tmp_path: Path) -> None:
        path = tmp_path / "section.yaml"
        path.write_text("autheme: 3\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="section"):
            load_config(path, env={})
