"""Trust scoring for completed agent runs.

Submodules:
    models  -- Severity, Dimension, TrustFlag, RunOutcome, ScoreWeights,
               DimensionScores, TrustScore
    engine  -- TrustEngine (dimension formulas and weighted composite)

All public names are re-exported here so that callers can write
``from autheme.core.trust import TrustEngine``.
"""

from autheme.core.trust.models import (
    Dimension,
    DimensionScores,
    RunOutcome,
    ScoreWeights,
    Severity,
    TrustFlag,
    TrustScore,
)
from autheme.core.trust.engine import TrustEngine, round_half_up

__all__ = [
    "Dimension",
    "DimensionScores",
    "RunOutcome",
    "ScoreWeights",
    "Severity",
    "TrustEngine",
    "TrustFlag",
    "TrustScore",
    "round_half_up",
]
