"""Trust data models: severities, dimensions, flags, weights, and scores.

Defines the core data structures for run trust scoring:

- ``Severity``        -- Flag severity (info, warning, critical).
- ``Dimension``       -- The four scored dimensions.
- ``TrustFlag``       -- A human-actionable explanation of a deduction.
- ``RunOutcome``      -- How the run ended (success, error, duration).
- ``ScoreWeights``    -- Weights for the overall composite.
- ``DimensionScores`` -- Integer dimension scores in [0, 100].
- ``TrustScore``      -- Overall score plus dimensions and flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from autheme.exceptions import ScoringError


# ---------------------------------------------------------------------------
# Severity and Dimension
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Flag severity. String values are part of the report wire format."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Dimension(str, Enum):
    """Scored trust dimensions. String values are part of the wire format."""

    RELIABILITY = "reliability"
    SCOPE_ADHERENCE = "scope_adherence"
    COST_EFFICIENCY = "cost_efficiency"
    LATENCY_EFFICIENCY = "latency_efficiency"


SCORE_MIN: int = 0
SCORE_MAX: int = 100


# ---------------------------------------------------------------------------
# TrustFlag
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrustFlag:
    """A structured explanation attached to a scoring deduction.

    Attributes:
        severity: How serious the deduction is.
        dimension: The dimension the deduction applies to.
        message: Human-readable description.
        action: Suggested remediation, if any.
    """

    severity: Severity
    dimension: Dimension
    message: str
    action: str | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "severity": self.severity.value,
            "dimension": self.dimension.value,
            "message": self.message,
        }
        if self.action:
            data["action"] = self.action
        return data


# ---------------------------------------------------------------------------
# RunOutcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunOutcome:
    """Terminal state of a run as reported by the host.

    Attributes:
        success: Whether the run completed successfully.
        error: Failure message, if the host supplied one.
        duration_ms: Total run duration in milliseconds.
    """

    success: bool = True
    error: str | None = None
    duration_ms: float = 0.0


# ---------------------------------------------------------------------------
# ScoreWeights
# ---------------------------------------------------------------------------


WEIGHT_SUM_EPSILON: float = 1e-6


@dataclass(frozen=True)
class ScoreWeights:
    """Weights for the overall composite score.

    Reliability and scope adherence count 30% each, cost and latency
    efficiency 20% each. Weights must be non-negative and sum to 1.0 so
    that the overall score stays in [0, 100] without clamping.
    """

    reliability: float = 0.30
    scope_adherence: float = 0.30
    cost_efficiency: float = 0.20
    latency_efficiency: float = 0.20

    def validate(self) -> None:
        """Raise ScoringError if weights are negative or don't sum to 1.0."""
        total = 0.0
        for dimension in Dimension:
            value = getattr(self, dimension.value)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ScoringError(
                    f"Weight '{dimension.value}' must be numeric, "
                    f"got {type(value).__name__}"
                )
            if value < 0.0:
                raise ScoringError(
                    f"Weight '{dimension.value}' must be non-negative, got {value}"
                )
            total += value
        if abs(total - 1.0) > WEIGHT_SUM_EPSILON:
            raise ScoringError(
                f"Weights must sum to 1.0 (within epsilon={WEIGHT_SUM_EPSILON}), "
                f"got sum={total}"
            )


# ---------------------------------------------------------------------------
# DimensionScores and TrustScore
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DimensionScores:
    """Per-dimension integer scores, each in [0, 100]."""

    reliability: int = SCORE_MAX
    scope_adherence: int = SCORE_MAX
    cost_efficiency: int = SCORE_MAX
    latency_efficiency: int = SCORE_MAX

    def as_dict(self) -> dict[str, int]:
        return {
            "reliability": self.reliability,
            "scope_adherence": self.scope_adherence,
            "cost_efficiency": self.cost_efficiency,
            "latency_efficiency": self.latency_efficiency,
        }


@dataclass(frozen=True)
class TrustScore:
    """Composite trust score for one completed run.

    Attributes:
        overall: Weighted composite in [0, 100].
        dimensions: The four dimension scores.
        flags: Explanations for every deduction, in scoring order
            (reliability, scope, cost, latency).
    """

    overall: int
    dimensions: DimensionScores
    flags: tuple[TrustFlag, ...] = field(default_factory=tuple)

    @property
    def max_severity(self) -> Severity | None:
        """Return the most severe flag severity, or None without flags."""
        order = [Severity.INFO, Severity.WARNING, Severity.CRITICAL]
        if not self.flags:
            return None
        return max((f.severity for f in self.flags), key=order.index)

    def flags_for(self, dimension: Dimension) -> list[TrustFlag]:
        """Return the flags attached to one dimension."""
        return [f for f in self.flags if f.dimension == dimension]

    def as_dict(self) -> dict[str, Any]:
        """Return the score block as it appears in reports and JSON output."""
        return {
            "overall": self.overall,
            "dimensions": self.dimensions.as_dict(),
            "flags": [f.as_dict() for f in self.flags],
        }
