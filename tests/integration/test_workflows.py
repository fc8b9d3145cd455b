"""Integration tests for end-to-end batch workflows.

Exercise run_batch and the CLI across loader, cache, limiter, retry policy and
runner. Only the action is a test double.
"""

from __future__ import annotations

import asyncio
import json
import sys
import types
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from mintbatch.cli import cli
from mintbatch.core.exceptions import CacheCorruptError, InvalidInputError
from mintbatch.services.batch_runner import run_batch
from mintbatch.services.progress_cache import ProgressCache
from mintbatch.utils.retry import RetryPolicy
from tests.fakes import ScriptedAction

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from mintbatch.models.action_context import ActionContext
    from mintbatch.models.config import BatchSettings


# ---------------------------------------------------------------------------
# run_batch
# ---------------------------------------------------------------------------


class TestRunBatch:
    def test_fresh_run_then_resume_from_cache(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
    ) -> None:
        first = make_action(fail_times={"B": -1})
        report = asyncio.run(run_batch(first, context, settings, targets=["A", "B", "C"]))
        assert report.failed == 1
        assert first.attempts_for("B") == settings.retries

        # No explicit targets: the cache file itself supplies them.
        second = make_action()
        report = asyncio.run(run_batch(second, context, settings))
        assert second.calls == ["B"]
        assert report.skipped == 2
        assert report.ok

    def test_failed_only_run(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
    ) -> None:
        asyncio.run(
            run_batch(make_action(fail_times={"C": -1}), context, settings, targets=["A", "B", "C"])
        )
        retry = make_action()
        report = asyncio.run(run_batch(retry, context, settings, failed_only=True))
        assert retry.calls == ["C"]
        assert report.total == 1

    def test_retry_delay_cap_from_settings(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
    ) -> None:
        capped = settings.model_copy(update={"retry_base_delay": 30.0, "retry_max_delay": 0.001})
        action = make_action(fail_times={"A": -1})
        with patch("mintbatch.services.batch_runner.RetryPolicy", wraps=RetryPolicy) as policy_cls:
            report = asyncio.run(run_batch(action, context, capped, targets=["A"]))
        assert policy_cls.call_args.kwargs["max_delay"] == 0.001
        assert action.attempts_for("A") == capped.retries
        assert report.failed == 1

    def test_failed_only_with_explicit_targets_rejected(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
    ) -> None:
        action = make_action()
        with pytest.raises(InvalidInputError, match="failed_only"):
            asyncio.run(run_batch(action, context, settings, targets=["A"], failed_only=True))
        assert action.calls == []

    def test_target_file(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
        tmp_path: Path,
    ) -> None:
        mint_list = tmp_path / "mints.json"
        mint_list.write_text(json.dumps(["M1", "M2", "M1"]), encoding="utf-8")
        action = make_action()
        report = asyncio.run(run_batch(action, context, settings, target_file=mint_list))
        assert sorted(action.calls) == ["M1", "M2"]
        assert report.total == 2

    def test_no_targets_and_no_cache(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
        cache_path: Path,
    ) -> None:
        action = make_action()
        with pytest.raises(InvalidInputError, match="does not exist"):
            asyncio.run(run_batch(action, context, settings))
        assert action.calls == []
        assert not cache_path.exists()

    def test_corrupt_cache_aborts_before_work(
        self,
        make_action: Callable[..., ScriptedAction],
        context: ActionContext,
        settings: BatchSettings,
        cache_path: Path,
    ) -> None:
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text('{"A": {"status": ', encoding="utf-8")
        action = make_action()
        with pytest.raises(CacheCorruptError):
            asyncio.run(run_batch(action, context, settings, targets=["A", "B"]))
        assert action.calls == []
        assert cache_path.read_text(encoding="utf-8") == '{"A": {"status": '


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_action() -> Iterator[ScriptedAction]:
    """Expose a fresh scripted action at cli_actions:action for the CLI to import."""
    action = ScriptedAction(name="update-uri")
    module = types.ModuleType("cli_actions")
    module.action = action  # type: ignore[attr-defined]
    sys.modules["cli_actions"] = module
    yield action
    del sys.modules["cli_actions"]


@pytest.fixture
def cli_env(clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CLI retries instant."""
    monkeypatch.setenv("MINTBATCH_RETRY_BASE_DELAY", "0.001")
    monkeypatch.setenv("MINTBATCH_RETRY_BACKOFF_FACTOR", "1.0")
    monkeypatch.setenv("MINTBATCH_RATE_LIMIT", "1000")


class TestCli:
    def test_run_success(self, cli_action: ScriptedAction, cli_env: None, cache_path: Path) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "cli_actions:action",
                "--targets",
                "A,B,C",
                "--cache-file",
                str(cache_path),
                "--new-value",
                "uri=https://arweave.net/new",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "[SUCCESS] update-uri" in result.output
        assert sorted(cli_action.calls) == ["A", "B", "C"]
        assert cli_action.contexts[0].new_value is not None
        assert cli_action.contexts[0].new_value.value == "https://arweave.net/new"
        entry = ProgressCache.load(cache_path).get("A")
        assert entry is not None and entry.new_value is not None

    def test_run_with_failures_exits_2(
        self, cli_action: ScriptedAction, cli_env: None, cache_path: Path
    ) -> None:
        cli_action.fail_times = {"B": -1}
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "cli_actions:action",
                "--targets",
                "A,B",
                "--cache-file",
                str(cache_path),
                "--retries",
                "2",
                "--output-format",
                "json",
            ],
        )
        assert result.exit_code == 2
        report = json.loads(result.stdout)
        assert report["failed"] == 1
        assert report["failures"][0]["target"] == "B"
        assert cli_action.attempts_for("B") == 2

    def test_run_unknown_action(self, cli_env: None, cache_path: Path) -> None:
        result = CliRunner().invoke(
            cli, ["run", "burn-all", "--targets", "A", "--cache-file", str(cache_path)]
        )
        assert result.exit_code == 1
        assert "unknown action" in result.output

    def test_run_invalid_concurrency(self, cli_env: None, cache_path: Path) -> None:
        result = CliRunner().invoke(
            cli,
            ["run", "x:y", "--targets", "A", "--cache-file", str(cache_path), "--concurrency", "0"],
        )
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_run_failed_only_with_targets_exits_1(
        self, cli_action: ScriptedAction, cli_env: None, cache_path: Path
    ) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "cli_actions:action",
                "--targets",
                "A",
                "--cache-file",
                str(cache_path),
                "--failed-only",
            ],
        )
        assert result.exit_code == 1
        assert "failed_only" in result.output
        assert cli_action.calls == []

    def test_run_bad_new_value(
        self, cli_action: ScriptedAction, cli_env: None, cache_path: Path
    ) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "cli_actions:action",
                "--targets",
                "A",
                "--cache-file",
                str(cache_path),
                "--new-value",
                "no-separator",
            ],
        )
        assert result.exit_code == 2
        assert "KIND=VALUE" in result.output
        assert cli_action.calls == []

    def test_cache_status_and_export_failed(
        self, cli_action: ScriptedAction, cli_env: None, cache_path: Path, tmp_path: Path
    ) -> None:
        cli_action.fail_times = {"B": -1, "C": -1}
        runner = CliRunner()
        runner.invoke(
            cli,
            ["run", "cli_actions:action", "--targets", "A,B,C", "--cache-file", str(cache_path)],
        )

        status = runner.invoke(cli, ["cache-status", "--cache-file", str(cache_path)])
        assert status.exit_code == 0, status.output
        assert "entries: 3" in status.output
        assert "failed: 2" in status.output
        assert "- B:" in status.output

        as_json = runner.invoke(
            cli, ["cache-status", "--cache-file", str(cache_path), "--output-format", "json"]
        )
        assert set(json.loads(as_json.stdout)) == {"A", "B", "C"}

        output = tmp_path / "failed.json"
        exported = runner.invoke(
            cli, ["export-failed", "--cache-file", str(cache_path), "--output", str(output)]
        )
        assert exported.exit_code == 0, exported.output
        assert json.loads(output.read_text(encoding="utf-8")) == ["B", "C"]

    def test_cache_status_corrupt(self, cli_env: None, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("not json", encoding="utf-8")
        result = CliRunner().invoke(cli, ["cache-status", "--cache-file", str(bad)])
        assert result.exit_code == 1
        assert "corrupt" in result.output

    def test_list_actions_empty(self, cli_env: None) -> None:
        result = CliRunner().invoke(cli, ["list-actions"])
        assert result.exit_code == 0
        assert "No actions registered" in result.output
