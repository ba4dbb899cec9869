from __future__ import annotations

from pathlib import Path

import os

import pytest
from click.testing import CliRunner

from featurerun.cli import EXIT_FAILED, EXIT_INTERRUPTED, EXIT_OK, EXIT_USAGE, cli


def invoke(*args: str):
    return CliRunner().invoke(cli, list(args), obj={}, env={"FEATURERUN_ENV": None})


def selected(output: str) -> set[str]:
    names = {"smoke check", "regression check", "ignored check"}
    return {n for n in names if f"PASSED: {n}" in output}


@pytest.mark.parametrize(
    "command, expected",
    [
        (["run-all"], {"smoke check", "regression check", "ignored check"}),
        (["run-parallel"], {"smoke check", "regression check"}),
        (["run-smoke"], {"smoke check"}),
        (["run-regression"], {"regression check"}),
        (["run", "--tags", "@regression,@ignore", "--tags", "not @smoke"], {"regression check", "ignored check"}),
    ],
)
def test_suites_select_expected_scenarios(features_dir: Path, command, expected):
    result = invoke("--features-dir", str(features_dir), "--dry-run", *command)
    assert result.exit_code == EXIT_OK, result.output
    assert selected(result.output) == expected


def test_parallel_suites_default_to_five_workers(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--dry-run", "run-regression")
    assert "Workers: 5" in result.output
    assert "Tags: @regression" in result.output

    result = invoke("--features-dir", str(features_dir), "--dry-run", "run-parallel", "--workers", "3")
    assert "Workers: 3" in result.output
    assert "Tags: ~@ignore" in result.output


def test_passing_command_exits_zero(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--command", "test {line} -gt 0", "run-all")
    assert result.exit_code == EXIT_OK, result.output
    assert "Passed:  3" in result.output


def test_failing_command_exits_one_and_reports(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--command", "echo 'expected 200' >&2; exit 1", "run-smoke")
    assert result.exit_code == EXIT_FAILED
    assert "Failed:  1" in result.output
    assert "FAILURES" in result.output
    assert "dashboard.feature:4: smoke check" in result.output
    assert "Error: exit=1" in result.output


def test_missing_features_dir_exits_two(tmp_path: Path):
    result = invoke("--features-dir", str(tmp_path / "missing"), "--command", "exit 0", "run-all")
    assert result.exit_code == EXIT_USAGE
    assert "Feature discovery failed" in result.output
    assert "PASSED" not in result.output
    assert "RUN STARTED" not in result.output


def test_invalid_tag_expression_exits_two(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "run", "--tags", "smoke")
    assert result.exit_code == EXIT_USAGE
    assert "Invalid tag expression" in result.output


def test_unknown_environment_exits_two(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--env", "perf", "run-all")
    assert result.exit_code == EXIT_USAGE
    assert "Invalid configuration" in result.output


def test_custom_environment_with_base_url(features_dir: Path):
    result = invoke(
        "--features-dir", str(features_dir),
        "--env", "perf",
        "--base-url", "http://perf.local/api",
        "--command", 'test "$FEATURERUN_BASE_URL" = http://perf.local/api',
        "run-smoke",
    )
    assert result.exit_code == EXIT_OK, result.output
    assert "Environment: perf" in result.output


def test_no_matches_exits_zero(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "run", "--tags", "@nothing")
    assert result.exit_code == EXIT_OK
    assert "No scenarios matched." in result.output


def test_list_prints_plan_without_running(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--command", "exit 1", "list", "--suite", "parallel")
    assert result.exit_code == EXIT_OK, result.output
    assert "Selection: ~@ignore" in result.output
    assert "smoke check" in result.output
    assert "regression check" in result.output
    assert "ignored check" not in result.output
    assert "2 scenario(s) in 2 feature(s)" in result.output


def test_fail_fast_skips_remaining(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--fail-fast", "--command", "exit 1", "run-all")
    assert result.exit_code == EXIT_FAILED
    assert "Failed:  1" in result.output
    assert "Skipped: 2" in result.output


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root can read any directory")
def test_unreadable_features_dir_exits_two(features_dir: Path):
    features_dir.chmod(0o000)
    try:
        result = invoke("--features-dir", str(features_dir), "--command", "exit 0", "run-all")
    finally:
        features_dir.chmod(0o755)
    assert result.exit_code == EXIT_USAGE
    assert "Feature discovery failed" in result.output
    assert "not readable" in result.output
    assert "RUN STARTED" not in result.output


def test_extra_variables_reach_the_command(features_dir: Path):
    result = invoke(
        "--features-dir", str(features_dir),
        "--var", "AUTH_TOKEN=secret",
        "--command", 'test "$AUTH_TOKEN" = secret',
        "run-smoke",
    )
    assert result.exit_code == EXIT_OK, result.output
    assert "Passed:  1" in result.output


def test_malformed_variable_exits_two(features_dir: Path):
    result = invoke("--features-dir", str(features_dir), "--var", "AUTH_TOKEN", "run-all")
    assert result.exit_code == EXIT_USAGE
    assert "Invalid configuration" in result.output


def test_env_option_beats_environment_variable(features_dir: Path):
    result = CliRunner().invoke(
        cli,
        ["--features-dir", str(features_dir), "--env", "staging", "--dry-run", "run-smoke"],
        obj={},
        env={"FEATURERUN_ENV": "perf"},
    )
    assert result.exit_code == EXIT_OK, result.output
    assert "Environment: staging" in result.output


@pytest.mark.parametrize("command", [["run-all"], ["run-parallel"], ["list"]])
def test_ctrl_c_during_discovery_exits_130(features_dir: Path, monkeypatch, command):
    def interrupt(self, root):
        raise KeyboardInterrupt

    monkeypatch.setattr("featurerun.cli.SpecLoader.load", interrupt)
    result = invoke("--features-dir", str(features_dir), "--dry-run", *command)
    assert result.exit_code == EXIT_INTERRUPTED
    assert "Interrupted by user" in result.output
