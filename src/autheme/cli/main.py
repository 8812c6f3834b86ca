"""autheme CLI -- Trust scoring for agent runs.

Entry point for the ``autheme`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    demo    -- Score built-in simulated agent sessions.
    replay  -- Score the runs recorded in a JSON/YAML event log.

Usage::

    autheme demo                          # All scenarios
    autheme demo violation                # One scenario
    autheme replay ./events.yaml --allow read_file --allow write_file
    autheme replay ./events.json --config autheme.yaml --format json
"""

from __future__ import annotations

import click

from autheme import __version__
from autheme.cli.demo_cmd import demo_command
from autheme.cli.replay_cmd import replay_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """autheme: Trust scoring and observability for agent runs.

    Aggregates agent lifecycle events into runs and scores each run on
    reliability, scope adherence, cost efficiency, and latency.
    """


# Register all subcommands
cli.add_command(demo_command)
cli.add_command(replay_command)
