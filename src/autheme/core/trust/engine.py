"""Trust score computation engine.

Turns an aggregated run record and its outcome into a ``TrustScore``:
four integer dimension scores, a weighted overall score, and flags that
explain every deduction.

Trust Score Model:
    T = w_r * reliability + w_s * scope + w_c * cost + w_l * latency

Dimension formulas (all rounded half-up, all in [0, 100]):
    reliability = 100 if the run succeeded else 0
    scope       = (1 - violations / max(tool_calls, 1)) * 100
    cost        = 100 / (cost / threshold)          when cost > threshold
    latency     = (1 - slow / max(samples, 1)) * 100
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from autheme.core.runs.models import RunRecord
from .models import (
    SCORE_MAX,
    SCORE_MIN,
    Dimension,
    DimensionScores,
    RunOutcome,
    ScoreWeights,
    Severity,
    TrustFlag,
    TrustScore,
)

# Rate above which scope and latency flags escalate to critical.
CRITICAL_RATE: float = 0.5

# Cost overage factor above which the cost flag escalates to critical.
CRITICAL_COST_OVERAGE: float = 3.0

# A run longer than this multiple of the latency threshold gets a warning.
RUN_DURATION_FACTOR: float = 2.0

_ACTION_RELIABILITY = "Check model provider status or reduce prompt complexity"
_ACTION_COST = (
    "Review token usage: consider shorter prompts or a cheaper model for subtasks"
)
_ACTION_LATENCY = "Check model provider latency or reduce prompt size"
_ACTION_DURATION = "Consider breaking into smaller agent tasks"


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero.

    Goes through the decimal repr of the float so that values such as
    ``87.5`` round to 88 rather than to the nearest even integer.
    """
    if not isinstance(value, Decimal):
        value = Decimal(repr(float(value)))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _clamp(score: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, score))


def _format_number(value: float) -> str:
    """Format a configured threshold the way a user wrote it (0.5, 30000)."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


class TrustEngine:
    """Deterministic trust scoring for completed runs.

    The engine is stateless: ``compute_score`` reads the record and never
    mutates it, so the same inputs always produce the same score.

    Args:
        weights: Weights for the overall composite. If None, uses the
            default weights (0.30, 0.30, 0.20, 0.20).

    Raises:
        ScoringError: If the weights are invalid.
    """

    def __init__(self, weights: ScoreWeights | None = None) -> None:
        self._weights = weights or ScoreWeights()
        self._weights.validate()

    @property
    def weights(self) -> ScoreWeights:
        """Return the configured weights."""
        return self._weights

    # -- Dimensions --

    def score_reliability(
        self, outcome: RunOutcome
    ) -> tuple[int, list[TrustFlag]]:
        """Score 100 on success, 0 with one critical flag on failure."""
        if outcome.success:
            return SCORE_MAX, []
        return SCORE_MIN, [
            TrustFlag(
                severity=Severity.CRITICAL,
                dimension=Dimension.RELIABILITY,
                message=f"Run failed: {outcome.error or 'unknown error'}",
                action=_ACTION_RELIABILITY,
            )
        ]

    def score_scope(
        self,
        tool_calls: Sequence[str],
        violations: Sequence[str],
        allowed_tools: Sequence[str],
    ) -> tuple[int, list[TrustFlag]]:
        """Score scope adherence from the violation rate.

        One flag is emitted per distinct violating tool, in first-seen
        order. Every flag gets the same severity, derived from the
        aggregate violation rate of the run.
        """
        if not allowed_tools or not violations:
            return SCORE_MAX, []

        rate = len(violations) / max(len(tool_calls), 1)
        score = _clamp(round_half_up(max(0.0, (1 - rate) * 100)))
        severity = Severity.CRITICAL if rate > CRITICAL_RATE else Severity.WARNING
        flags = [
            TrustFlag(
                severity=severity,
                dimension=Dimension.SCOPE_ADHERENCE,
                message=f'Tool "{tool}" not in allowed list',
                action=(
                    f'Add "{tool}" to allowedTools config or investigate '
                    f"why it was called"
                ),
            )
            for tool in dict.fromkeys(violations)
        ]
        return score, flags

    def score_cost(
        self, total_cost: float, threshold: float
    ) -> tuple[int, list[TrustFlag]]:
        """Score cost efficiency from the overage factor.

        A missing cost (None or negative) counts as zero.
        """
        cost = total_cost if total_cost and total_cost > 0 else 0.0
        if cost <= threshold:
            return SCORE_MAX, []

        overage = cost / threshold
        score = _clamp(round_half_up(max(0.0, 100 / overage)))
        severity = (
            Severity.CRITICAL if overage > CRITICAL_COST_OVERAGE else Severity.WARNING
        )
        return score, [
            TrustFlag(
                severity=severity,
                dimension=Dimension.COST_EFFICIENCY,
                message=(
                    f"Run cost ${cost:.4f} "
                    f"(threshold: ${_format_number(threshold)})"
                ),
                action=_ACTION_COST,
            )
        ]

    def score_latency(
        self,
        latencies: Sequence[float],
        threshold: float,
        run_duration_ms: float,
    ) -> tuple[int, list[TrustFlag]]:
        """Score latency efficiency from the share of slow calls.

        A run whose total duration exceeds twice the threshold gets an
        additional warning, independent of the per-call samples.
        """
        flags: list[TrustFlag] = []
        score = SCORE_MAX
        limit = _format_number(threshold)

        slow = sum(1 for sample in latencies if sample > threshold)
        if slow:
            rate = slow / max(len(latencies), 1)
            score = _clamp(round_half_up(max(0.0, (1 - rate) * 100)))
            flags.append(
                TrustFlag(
                    severity=(
                        Severity.CRITICAL if rate > CRITICAL_RATE else Severity.WARNING
                    ),
                    dimension=Dimension.LATENCY_EFFICIENCY,
                    message=f"{slow}/{len(latencies)} calls exceeded {limit}ms",
                    action=_ACTION_LATENCY,
                )
            )

        if run_duration_ms > threshold * RUN_DURATION_FACTOR:
            flags.append(
                TrustFlag(
                    severity=Severity.WARNING,
                    dimension=Dimension.LATENCY_EFFICIENCY,
                    message=(
                        f"Total run took {_format_number(run_duration_ms)}ms "
                        f"(threshold: {limit}ms per call)"
                    ),
                    action=_ACTION_DURATION,
                )
            )
        return score, flags

    # -- Composite --

    def compute_overall(self, dimensions: DimensionScores) -> int:
        """Weighted sum of the dimension scores, rounded half-up."""
        w = self._weights
        total = (
            Decimal(repr(w.reliability)) * dimensions.reliability
            + Decimal(repr(w.scope_adherence)) * dimensions.scope_adherence
            + Decimal(repr(w.cost_efficiency)) * dimensions.cost_efficiency
            + Decimal(repr(w.latency_efficiency)) * dimensions.latency_efficiency
        )
        return _clamp(round_half_up(total))

    def compute_score(
        self,
        record: RunRecord,
        outcome: RunOutcome,
        *,
        allowed_tools: Sequence[str] = (),
        cost_threshold: float = 0.50,
        latency_threshold: float = 30000.0,
    ) -> TrustScore:
        """Compute the full trust score for a completed run.

        Args:
            record: The aggregated run record. Not mutated.
            outcome: How the run ended.
            allowed_tools: Tool allow-list; empty means unrestricted.
            cost_threshold: Cost alert threshold in currency units.
            latency_threshold: Per-call latency alert threshold in ms.

        Returns:
            A ``TrustScore`` with flags ordered by dimension.
        """
        reliability, rel_flags = self.score_reliability(outcome)
        scope, scope_flags = self.score_scope(
            record.tool_calls, record.scope_violations, allowed_tools
        )
        cost, cost_flags = self.score_cost(record.total_cost, cost_threshold)
        latency, latency_flags = self.score_latency(
            record.latencies, latency_threshold, outcome.duration_ms
        )
        dimensions = DimensionScores(
            reliability=reliability,
            scope_adherence=scope,
            cost_efficiency=cost,
            latency_efficiency=latency,
        )
        return TrustScore(
            overall=self.compute_overall(dimensions),
            dimensions=dimensions,
            flags=tuple(rel_flags + scope_flags + cost_flags + latency_flags),
        )
