"""Monitor configuration: defaults, validation, and file/env loading.

The host runtime hands plugin configuration over as a loosely typed mapping
using camelCase keys (``apiKey``, ``allowedTools``, ...). ``MonitorConfig``
accepts those keys as well as their snake_case equivalents, so the same
document works for the host plugin and for ``autheme replay --config``.

Example config file:

.. code-block:: yaml

    autheme:
      apiKey: ak_live_123
      allowedTools: [read_file, write_file]
      costAlertThreshold: 0.75
      latencyAlertThreshold: 20000
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from autheme.exceptions import ConfigError

DEFAULT_ENDPOINT: str = "https://dashboard.authe.me/v1/runs/ingest"
DEFAULT_COST_THRESHOLD: float = 0.50
DEFAULT_LATENCY_THRESHOLD_MS: float = 30000.0
DEFAULT_RUN_TTL_SECONDS: float = 600.0
DEFAULT_SWEEP_INTERVAL_SECONDS: float = 60.0

# Environment variables that override file values.
ENV_API_KEY: str = "AUTHEME_API_KEY"
ENV_ENDPOINT: str = "AUTHEME_ENDPOINT"

# Top-level section name inside a shared config document.
_SECTION: str = "autheme"

# camelCase plugin keys -> dataclass field names.
_KEY_ALIASES: dict[str, str] = {
    "apiKey": "api_key",
    "agentId": "agent_id",
    "allowedTools": "allowed_tools",
    "costAlertThreshold": "cost_alert_threshold",
    "latencyAlertThreshold": "latency_alert_threshold",
    "logLocally": "log_locally",
    "runTtlSeconds": "run_ttl_seconds",
    "sweepIntervalSeconds": "sweep_interval_seconds",
    "maxPendingReports": "max_pending_reports",
    "reportTimeoutSeconds": "report_timeout_seconds",
}

_POSITIVE_FIELDS = (
    "cost_alert_threshold",
    "latency_alert_threshold",
    "run_ttl_seconds",
    "sweep_interval_seconds",
    "report_timeout_seconds",
)


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration surface of the run monitor.

    Attributes:
        endpoint: Remote ingest URL for run reports.
        api_key: Bearer credential. Reporting is disabled when empty.
        agent_id: Fallback agent identifier when the host context has none.
        allowed_tools: Tool allow-list. Empty means unrestricted.
        cost_alert_threshold: Run cost (currency units) above which the
            cost dimension is penalized.
        latency_alert_threshold: Per-call latency in milliseconds above
            which a call counts as slow.
        log_locally: Emit scores and real-time warnings through logging.
        verbose: Log transport failures and per-run summaries.
        run_ttl_seconds: Idle time after which a run is considered abandoned.
        sweep_interval_seconds: Period of the staleness sweep.
        max_pending_reports: Capacity of the report queue.
        report_timeout_seconds: HTTP timeout per report.
    """

    endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    agent_id: str = "default"
    allowed_tools: tuple[str, ...] = field(default_factory=tuple)
    cost_alert_threshold: float = DEFAULT_COST_THRESHOLD
    latency_alert_threshold: float = DEFAULT_LATENCY_THRESHOLD_MS
    log_locally: bool = True
    verbose: bool = False
    run_ttl_seconds: float = DEFAULT_RUN_TTL_SECONDS
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    max_pending_reports: int = 100
    report_timeout_seconds: float = 10.0

    @property
    def reporting_enabled(self) -> bool:
        """True when an API key is configured."""
        return bool(self.api_key)

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range.

        Raises:
            ConfigError: If a threshold or interval is not a positive
                number, or the report queue capacity is below 1.
        """
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(
                    f"'{name}' must be numeric, got {type(value).__name__}"
                )
            if value <= 0:
                raise ConfigError(f"'{name}' must be positive, got {value}")
        if not isinstance(self.max_pending_reports, int) or self.max_pending_reports < 1:
            raise ConfigError(
                f"'max_pending_reports' must be a positive integer, "
                f"got {self.max_pending_reports!r}"
            )
        if not all(isinstance(t, str) for t in self.allowed_tools):
            raise ConfigError("'allowed_tools' must contain only strings")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> MonitorConfig:
        """Build a validated config from a plugin-style mapping.

        Unknown keys are ignored. Both camelCase plugin keys and
        snake_case field names are accepted.

        Raises:
            ConfigError: If the mapping is not a mapping or a value is invalid.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value

        if "allowed_tools" in kwargs:
            tools = kwargs["allowed_tools"]
            if isinstance(tools, str):
                tools = [tools]
            try:
                kwargs["allowed_tools"] = tuple(tools)
            except TypeError:
                raise ConfigError("'allowed_tools' must be a list of tool names")
        for name in ("log_locally", "verbose"):
            if name in kwargs:
                kwargs[name] = _as_bool(kwargs[name], name)
        for name in ("endpoint", "api_key", "agent_id"):
            if name in kwargs:
                kwargs[name] = str(kwargs[name])

        config = cls(**kwargs)
        config.validate()
        return config

    def with_overrides(self, **changes: Any) -> MonitorConfig:
        """Return a validated copy with the given fields replaced."""
        config = replace(self, **changes)
        config.validate()
        return config


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigError(f"'{name}' must be a boolean, got {value!r}")


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> MonitorConfig:
    """Load configuration from an optional YAML/JSON file plus environment.

    JSON is a subset of YAML, so both formats go through ``yaml.safe_load``.
    When the document has a top-level ``autheme`` section, only that
    section is used. ``AUTHEME_API_KEY`` and ``AUTHEME_ENDPOINT`` override
    the file values.

    Args:
        path: Config file path. ``None`` means defaults only.
        env: Environment mapping. Defaults to ``os.environ``.

    Returns:
        A validated ``MonitorConfig``.

    Raises:
        ConfigError: If the file cannot be read or parsed, or holds
            invalid values.
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        section = raw.get(_SECTION, raw)
        if not isinstance(section, dict):
            raise ConfigError(f"'{_SECTION}' section in {config_path} must be a mapping")
        data.update(section)

    if env.get(ENV_API_KEY):
        data["api_key"] = env[ENV_API_KEY]
    if env.get(ENV_ENDPOINT):
        data["endpoint"] = env[ENV_ENDPOINT]

    return MonitorConfig.from_mapping(data)
