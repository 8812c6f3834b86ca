"""``autheme replay <events-file>`` -- Score a recorded event log.

Reads a JSON or YAML event log, feeds every entry through the ingestion
adapter and a ``RunMonitor``, and renders the trust score of every run
that reached its end event. When an API key is configured, reports are
submitted exactly as they would be live and the queue is drained before
the command exits.

Event log format::

    - hook: after_tool_call
      context: {agentId: support-bot, sessionKey: s-1}
      payload: {toolName: read_file, durationMs: 120}
    - hook: agent_end
      context: {agentId: support-bot, sessionKey: s-1}
      payload: {success: true, durationMs: 2063, messages: []}

A mapping with an ``events`` list is accepted as well.

Exit Codes:
    0 -- At least one run was scored.
    2 -- Unreadable or malformed log, invalid config, or no completed run.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml

from autheme.config import MonitorConfig, load_config
from autheme.core.trust import TrustScore
from autheme.exceptions import AuthemeError, EventError
from autheme.ingest import coerce_context
from autheme.monitor import RunMonitor


@dataclass(frozen=True)
class RecordedEvent:
    """One entry of a recorded event log."""

    hook: str
    payload: Any
    context: Any


def load_event_log(path: Path) -> list[RecordedEvent]:
    """Parse a JSON/YAML event log.

    Raises:
        EventError: If the file cannot be read or is not a list of
            entries with a string ``hook``.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise EventError(f"Cannot read event log {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise EventError(f"Invalid event log {path}: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("events")
    if not isinstance(raw, list):
        raise EventError(f"Event log {path} must contain a list of events")

    events: list[RecordedEvent] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict) or not isinstance(entry.get("hook"), str):
            raise EventError(
                f"Event #{index} in {path} must be a mapping with a 'hook' name"
            )
        events.append(
            RecordedEvent(
                hook=entry["hook"],
                payload=entry.get("payload") or {},
                context=entry.get("context") or {},
            )
        )
    return events


async def replay_events(
    events: list[RecordedEvent],
    config: MonitorConfig,
) -> list[tuple[str, TrustScore]]:
    """Run recorded events through a monitor.

    Returns:
        ``(session_key, score)`` for every completed run, in log order.
    """
    results: list[tuple[str, TrustScore]] = []
    monitor = RunMonitor(config)
    await monitor.start()
    try:
        for event in events:
            score = monitor.handle_hook(event.hook, event.payload, event.context)
            if score is not None:
                results.append((coerce_context(event.context).session_key, score))
    finally:
        await monitor.shutdown(drain=True, timeout=config.report_timeout_seconds)
    return results


def _fail(message: str, output_format: str) -> NoReturn:
    if output_format == "json":
        click.echo(json.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}")
    sys.exit(2)


@click.command("replay")
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML/JSON config file (plugin keys or snake_case).",
)
@click.option(
    "--allow", "allowed",
    multiple=True,
    help="Allowed tool name. Repeat to allow several; overrides the config.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option("--verbose", is_flag=True, help="Log scores, warnings and report failures.")
def replay_command(
    events_file: str,
    config_path: str | None,
    allowed: tuple[str, ...],
    output_format: str,
    verbose: bool,
) -> None:
    """Score the runs recorded in EVENTS_FILE.

    Exit code 0 when at least one run was scored, 2 otherwise.
    """
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        config = load_config(config_path)
        overrides: dict[str, Any] = {"log_locally": verbose}
        if verbose:
            overrides["verbose"] = True
        if allowed:
            overrides["allowed_tools"] = tuple(allowed)
        config = config.with_overrides(**overrides)
        events = load_event_log(Path(events_file))
    except AuthemeError as exc:
        _fail(str(exc), output_format)

    results = asyncio.run(replay_events(events, config))
    if not results:
        _fail(f"No completed runs in {events_file}", output_format)

    if output_format == "json":
        click.echo(json.dumps([
            {"session_key": session, "trust_score": score.as_dict()}
            for session, score in results
        ], indent=2))
    else:
        from autheme.cli.output import print_trust_score

        for session, score in results:
            print_trust_score(score, title=f"Session {session}")
    sys.exit(0)
