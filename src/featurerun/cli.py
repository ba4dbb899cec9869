# cli.py
from __future__ import annotations

import sys
import threading
from typing import Optional, Sequence

import click

from featurerun.config import ConfigError, load_config, parse_vars
from featurerun.executor import CommandExecutor, DryRunExecutor
from featurerun.loader import DiscoveryError, SpecLoader
from featurerun.runner import ExecutionCoordinator
from featurerun.suites import DEFAULT_PARALLEL_WORKERS, SUITES, Suite, get_suite
from featurerun.tags import InvalidTagExpressionError, TagExpression, select
from featurerun.ui.console import Console, get_console, set_console


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _fail(title: str, err: Exception, suggestion: Optional[str] = None) -> None:
    console = get_console()
    console.print_error(title, str(err), suggestion=suggestion)
    if console.debug:
        console.print_exception(err)
    sys.exit(EXIT_USAGE)


def _prepare(ctx: click.Context, expr_source: Suite | Sequence[str]):
    """
    Resolve config, tag expression, collaborator and selection.
    Every fatal problem exits with EXIT_USAGE before anything runs.
    """
    opts = ctx.obj
    console = get_console()

    try:
        config = load_config(
            env=opts["env"],
            base_url=opts["base_url"],
            features_dir=opts["features_dir"],
            command=opts["command"],
            timeout=opts["timeout"],
            extra_env=parse_vars(opts["variables"]),
        )
    except ConfigError as e:
        _fail("Invalid configuration", e)

    try:
        if isinstance(expr_source, Suite):
            expr = expr_source.expression()
        else:
            expr = TagExpression.parse(*expr_source)
    except InvalidTagExpressionError as e:
        _fail(
            "Invalid tag expression",
            e,
            suggestion="Use @tag to require a tag and ~@tag (or 'not @tag') to exclude one:\n"
                       "  featurerun run --tags @smoke --tags ~@ignore",
        )

    if opts["dry_run"]:
        collaborator = DryRunExecutor()
    else:
        collaborator = CommandExecutor(
            config.command,
            env=config.child_env(),
            timeout=config.timeout,
        )
    console.print_debug(f"command={config.command!r} base_url={config.base_url}")

    try:
        specs = SpecLoader().load(config.features_dir)
        # materialize so discovery errors abort before the first scenario runs
        selection = list(select(specs, expr, collaborator))
    except DiscoveryError as e:
        _fail(
            "Feature discovery failed",
            e,
            suggestion="Point --features-dir (or FEATURERUN_FEATURES_DIR) at a directory of .feature files.",
        )

    return config, expr, collaborator, selection


def _execute(ctx: click.Context, suite: Suite, expr_source: Suite | Sequence[str] | None = None) -> None:
    console = get_console()
    try:
        _run_suite(ctx, suite, expr_source if expr_source is not None else suite)
    except KeyboardInterrupt:
        # Ctrl-C outside the coordinator's wait loop (discovery, parsing)
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)


def _run_suite(ctx: click.Context, suite: Suite, expr_source: Suite | Sequence[str]) -> None:
    console = get_console()
    opts = ctx.obj

    config, expr, collaborator, selection = _prepare(ctx, expr_source)

    console.print_run_started(
        suite=suite.name,
        features_dir=config.features_dir,
        tags=str(expr),
        workers=suite.workers,
        env=config.env,
    )

    if not selection:
        console.print_info("No scenarios matched.")
        sys.exit(EXIT_OK)

    coordinator = ExecutionCoordinator(
        collaborator,
        workers=suite.workers,
        timeout=config.timeout,
        fail_fast=opts["fail_fast"],
        console=console,
    )
    result = coordinator.run(selection, cancel=threading.Event())

    console.print_results(result)

    if coordinator.interrupted:
        sys.exit(EXIT_INTERRUPTED)
    sys.exit(EXIT_OK if result.ok else EXIT_FAILED)


def _workers_option(func):
    return click.option(
        "--workers",
        default=DEFAULT_PARALLEL_WORKERS,
        show_default=True,
        type=click.IntRange(min=1),
        help="Number of parallel workers",
    )(func)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option("--quiet", is_flag=True, default=False, help="Only print the final summary")
@click.option("--features-dir", default=None, help="Directory of .feature files [env: FEATURERUN_FEATURES_DIR]")
@click.option("--env", "env_name", default=None, help="Target environment: dev, qa, staging, prod [env: FEATURERUN_ENV]")
@click.option("--base-url", default=None, help="Override the environment's API base URL [env: FEATURERUN_BASE_URL]")
@click.option("--command", default=None, help="Per-scenario command template [env: FEATURERUN_COMMAND]")
@click.option("--timeout", default=None, type=float, help="Per-scenario timeout in seconds [env: FEATURERUN_TIMEOUT]")
@click.option(
    "--var",
    "variables",
    multiple=True,
    metavar="KEY=VALUE",
    help="Extra variable exported to every scenario command (repeatable)",
)
@click.option("--dry-run", is_flag=True, default=False, help="Select scenarios and mark them passed without running")
@click.option("--fail-fast/--no-fail-fast", default=False, help="Stop dispatching scenarios after the first failure")
@click.pass_context
def cli(ctx, debug, quiet, features_dir, env_name, base_url, command, timeout, variables, dry_run, fail_fast):
    """featurerun — tag-aware, parallel runner for .feature API tests."""
    console = Console(debug=debug, quiet=quiet)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj.update(
        debug=debug,
        features_dir=features_dir,
        env=env_name,
        base_url=base_url,
        command=command,
        timeout=timeout,
        variables=variables,
        dry_run=dry_run,
        fail_fast=fail_fast,
    )


@cli.command("run-all")
@click.pass_context
def run_all(ctx):
    """Run every scenario, one at a time."""
    _execute(ctx, SUITES["all"])


@cli.command("run-parallel")
@_workers_option
@click.pass_context
def run_parallel(ctx, workers):
    """Run everything not tagged @ignore in parallel."""
    _execute(ctx, SUITES["parallel"].with_workers(workers))


@cli.command("run-smoke")
@click.pass_context
def run_smoke(ctx):
    """Run @smoke scenarios, one at a time."""
    _execute(ctx, SUITES["smoke"])


@cli.command("run-regression")
@_workers_option
@click.pass_context
def run_regression(ctx, workers):
    """Run @regression scenarios in parallel."""
    _execute(ctx, SUITES["regression"].with_workers(workers))


@cli.command("run")
@click.option("--tags", "tags", multiple=True, help="Tag expression, e.g. @smoke or ~@ignore (repeatable)")
@click.option("--workers", default=1, show_default=True, type=click.IntRange(min=1), help="Number of parallel workers")
@click.pass_context
def run(ctx, tags, workers):
    """Run scenarios matching an ad-hoc tag expression."""
    suite = Suite("custom", tags=tuple(tags), workers=workers, parallel=True)
    _execute(ctx, suite, tuple(tags))


@cli.command("list")
@click.option("--tags", "tags", multiple=True, help="Tag expression (repeatable)")
@click.option("--suite", "suite_name", default=None, type=click.Choice(sorted(SUITES)), help="Use a named suite's tags")
@click.pass_context
def list_scenarios(ctx, tags, suite_name):
    """Print the scenarios a run would select, without running them."""
    console = get_console()
    source = get_suite(suite_name) if suite_name else tuple(tags)
    try:
        _config, expr, _collaborator, selection = _prepare(ctx, source)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)

    console.print_header(f"Selection: {expr}")
    console.print_plan(selection)
    total = sum(len(chosen) for _spec, chosen in selection)
    console.print_info(f"\n{total} scenario(s) in {len(selection)} feature(s)")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
