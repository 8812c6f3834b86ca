"""Shared fixtures for autheme tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from autheme.core.runs import RunRecord

EPOCH: float = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = EPOCH) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at a fixed epoch until advanced."""
    return FakeClock()


@pytest.fixture
def make_record() -> Callable[..., RunRecord]:
    """Factory for run records with counters preset via keyword overrides."""

    def _make(**overrides: Any) -> RunRecord:
        fields: dict[str, Any] = {
            "session_key": "test-session",
            "run_id": "test-run",
            "created_at": EPOCH,
            "last_activity_at": EPOCH,
        }
        fields.update(overrides)
        return RunRecord(**fields)

    return _make


@pytest.fixture(autouse=True)
def _no_env_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials from leaking into config loading."""
    monkeypatch.delenv("AUTHEME_API_KEY", raising=False)
    monkeypatch.delenv("AUTHEME_ENDPOINT", raising=False)
