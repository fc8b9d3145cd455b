"""CLI command implementations for mintbatch."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from mintbatch.core.exceptions import MintBatchError
from mintbatch.core.report import format_batch_report
from mintbatch.models.action_context import ActionContext
from mintbatch.models.config import BatchSettings
from mintbatch.models.new_value import NewValue
from mintbatch.models.outcome import OutcomeStatus
from mintbatch.utils.logger import configure_logging

# Exit code for a completed run in which at least one target failed.
EXIT_TARGETS_FAILED = 2


def _get_settings(**overrides: Any) -> BatchSettings:
    """Load settings from the environment and .env, then apply CLI overrides."""
    provided = {key: value for key, value in overrides.items() if value is not None}
    try:
        return BatchSettings(**provided)
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


def _load_cache(cache_file: str) -> Any:
    from mintbatch.services.progress_cache import ProgressCache

    try:
        return ProgressCache.load(cache_file)
    except MintBatchError as exc:
        raise click.ClickException(str(exc)) from exc


@click.command()
@click.argument("action_name")
@click.option("--targets", default=None, type=str, help="Comma-separated target addresses")
@click.option(
    "--target-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="JSON array of target addresses",
)
@click.option("--cache-file", default=None, type=str, help="Progress cache path")
@click.option(
    "--failed-only", is_flag=True, help="Retry only the failures recorded in the cache file"
)
@click.option("--concurrency", default=None, type=int, help="Operations in flight")
@click.option("--rate-limit", default=None, type=int, help="Operations admitted per period")
@click.option("--retries", default=None, type=int, help="Maximum attempts per target")
@click.option("--new-value", default=None, type=str, help="KIND=VALUE applied to every target")
@click.option("--rpc-url", default=None, type=str, help="RPC endpoint")
@click.option("--keypair", default=None, type=str, help="Signing keypair path")
@click.option("--payer", default=None, type=str, help="Optional fee payer keypair path")
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def run(
    action_name: str,
    targets: str | None,
    target_file: str | None,
    cache_file: str | None,
    failed_only: bool,
    concurrency: int | None,
    rate_limit: int | None,
    retries: int | None,
    new_value: str | None,
    rpc_url: str | None,
    keypair: str | None,
    payer: str | None,
    output_format: str,
) -> None:
    """Apply ACTION_NAME to every target, resuming from the cache file."""
    settings = _get_settings(
        cache_file=cache_file,
        concurrency=concurrency,
        rate_limit=rate_limit,
        retries=retries,
        rpc_url=rpc_url,
        keypair_path=keypair,
        payer_path=payer,
    )
    configure_logging(settings.log_level, json_output=settings.log_json)

    from mintbatch.core.target_list import parse_target_text
    from mintbatch.services.action_registry import resolve_action
    from mintbatch.services.batch_runner import run_batch

    try:
        parsed_value = NewValue.parse(new_value) if new_value else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--new-value") from exc

    context = ActionContext(
        client=settings.rpc_url,
        keypair=settings.keypair_path,
        payer=settings.payer_path,
        new_value=parsed_value,
    )

    try:
        action = resolve_action(action_name)
        click.echo(f"[INFO] Running {action.name} (cache: {settings.cache_file})...", err=True)
        report = asyncio.run(
            run_batch(
                action,
                context,
                settings,
                targets=parse_target_text(targets) if targets is not None else None,
                target_file=target_file,
                failed_only=failed_only,
            )
        )
    except MintBatchError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        click.echo(
            f"\n[WARN] Interrupted. Completed targets are saved in {settings.cache_file}.",
            err=True,
        )
        raise SystemExit(130) from None

    if output_format == "json":
        click.echo(report.model_dump_json(indent=2))
    else:
        click.echo(format_batch_report(report))

    if not report.ok:
        raise SystemExit(EXIT_TARGETS_FAILED)


@click.command()
@click.option("--cache-file", default=None, type=str, help="Progress cache path")
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def cache_status(cache_file: str | None, output_format: str) -> None:
    """Show what a progress cache has recorded."""
    settings = _get_settings(cache_file=cache_file)
    configure_logging(settings.log_level, json_output=settings.log_json)
    cache = _load_cache(settings.cache_file)

    if output_format == "json":
        click.echo(json.dumps(cache.to_dict(), indent=2, sort_keys=True))
        return

    summary = cache.summary()
    click.echo(f"\n[INFO] {settings.cache_file}")
    for key, value in summary.items():
        click.echo(f"  {key}: {value}")
    failed = cache.targets(OutcomeStatus.FAILURE)
    if failed:
        click.echo(f"  Failures ({len(failed)}):")
        for target in failed[:10]:
            entry = cache.get(target)
            click.echo(f"    - {target}: {entry.error if entry else ''}")
        if len(failed) > 10:
            click.echo(f"    ... and {len(failed) - 10} more")


@click.command()
@click.option("--cache-file", default=None, type=str, help="Progress cache path")
@click.option(
    "--output",
    required=True,
    type=click.Path(dir_okay=False),
    help="Where to write the JSON target list",
)
def export_failed(cache_file: str | None, output: str) -> None:
    """Write the failed targets of a cache as a JSON target list."""
    from mintbatch.services.progress_cache import atomic_write_json

    settings = _get_settings(cache_file=cache_file)
    configure_logging(settings.log_level, json_output=settings.log_json)
    cache = _load_cache(settings.cache_file)

    failed = cache.targets(OutcomeStatus.FAILURE)
    atomic_write_json(Path(output), failed)
    click.echo(f"[SUCCESS] Wrote {len(failed)} failed targets to {output}")


@click.command()
def list_actions() -> None:
    """List registered action names."""
    from mintbatch.services.action_registry import available_actions

    names = available_actions()
    if not names:
        click.echo("[INFO] No actions registered; pass an import path like package.module:Action")
        return
    for name in names:
        click.echo(name)
