"""CLI entry point for mintbatch."""

from __future__ import annotations

import click

from mintbatch.cli.commands import cache_status, export_failed, list_actions, run


@click.group()
def cli() -> None:
    """Resumable batch actions over many accounts."""


cli.add_command(run)
cli.add_command(cache_status)
cli.add_command(export_failed)
cli.add_command(list_actions)
