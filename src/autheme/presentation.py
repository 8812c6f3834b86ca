"""Local presentation of trust scores through ``logging``.

The host gives plugins a logger, not a terminal, so scores and real-time
scope warnings are emitted as plain log lines. ``format_score`` and
``format_violation`` are pure and return the lines; ``ScorePresenter``
writes them.

Icon Mapping:
    critical = red circle, warning = yellow circle, info = blue circle
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from autheme.core.runs.models import RunRecord
from autheme.core.trust.models import RunOutcome, Severity, TrustScore

logger = logging.getLogger(__name__)

PREFIX: str = "[authe.me]"

_SEVERITY_ICONS: dict[Severity, str] = {
    Severity.CRITICAL: "\U0001F534",
    Severity.WARNING: "\U0001F7E1",
    Severity.INFO: "\U0001F535",
}


def severity_icon(severity: Severity) -> str:
    """Return the icon for a given severity."""
    return _SEVERITY_ICONS.get(severity, "\U0001F535")


def format_score(score: TrustScore) -> list[str]:
    """Format a score headline plus one line per flag (and remediation)."""
    d = score.dimensions
    dims = (
        f"reliability={d.reliability} | scope={d.scope_adherence} | "
        f"cost={d.cost_efficiency} | latency={d.latency_efficiency}"
    )
    lines = [f"{PREFIX} Trust Score: {score.overall}  ({dims})"]
    for flag in score.flags:
        lines.append(
            f"{severity_icon(flag.severity)} [{flag.dimension.value}] {flag.message}"
        )
        if flag.action:
            lines.append(f"   -> {flag.action}")
    return lines


def format_violation(tool_name: str, allowed_tools: Sequence[str]) -> str:
    """Format the real-time warning for an out-of-scope tool call."""
    return (
        f"{PREFIX} {severity_icon(Severity.CRITICAL)} Tool \"{tool_name}\" "
        f"not in allowed list [{', '.join(allowed_tools)}]"
    )


def format_run_summary(
    record: RunRecord, outcome: RunOutcome, agent_id: str
) -> str:
    """Format the verbose one-line run summary."""
    return (
        f"{PREFIX} agent={agent_id} session={record.session_key} "
        f"run={record.run_id} tools={len(record.tool_calls)} "
        f"violations={len(record.scope_violations)} errors={record.errors} "
        f"tokens={record.total_tokens} cost={record.total_cost:.4f} "
        f"duration={outcome.duration_ms:g}ms"
    )


class ScorePresenter:
    """Writes scores and scope warnings to a logger.

    Args:
        enabled: When False, nothing is written (``logLocally`` off).
        verbose: Add a per-run summary line after the score.
        log: Logger to write to. Defaults to this module's logger.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        verbose: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.enabled = enabled
        self.verbose = verbose
        self._log = log or logger

    def violation(self, tool_name: str, allowed_tools: Sequence[str]) -> None:
        if self.enabled:
            self._log.warning(format_violation(tool_name, allowed_tools))

    def score(
        self,
        score: TrustScore,
        record: RunRecord,
        outcome: RunOutcome,
        agent_id: str,
    ) -> None:
        if not self.enabled:
            return
        for line in format_score(score):
            self._log.info(line)
        if self.verbose:
            self._log.info(format_run_summary(record, outcome, agent_id))
