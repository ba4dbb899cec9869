"""Console output formatting utilities for featurerun."""

from __future__ import annotations

import sys
import threading
from typing import Iterable, Optional

from ..model import RunResult, ScenarioOutcome, Status


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, quiet: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            quiet: If True, suppress per-scenario progress lines
        """
        self.debug = debug
        self.quiet = quiet
        # workers print concurrently
        self._lock = threading.Lock()

    def _print(self, *args, **kwargs) -> None:
        with self._lock:
            print(*args, **kwargs)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._print(f"\n{title}")
        self._print("-" * len(title))

    def print_run_started(
        self,
        suite: str,
        features_dir: str,
        tags: str,
        workers: int,
        env: str,
    ) -> None:
        """Print run start information."""
        self._print("\nRUN STARTED")
        self._print(f"Suite: {suite}")
        self._print(f"Features: {features_dir}")
        self._print(f"Tags: {tags}")
        self._print(f"Workers: {workers}")
        self._print(f"Environment: {env}")
        self._print()

    def print_plan(self, selection: Iterable) -> None:
        """Print the selected scenarios per feature."""
        for spec, scenarios in selection:
            self._print(f"{spec.path} ({spec.name})")
            for s in scenarios:
                tags = " ".join(f"@{t}" for t in sorted(s.tags))
                self._print(f"  {s.line}: {s.name}" + (f"  [{tags}]" if tags else ""))

    def print_scenario_start(self, worker: str, scenario_id: str, name: str) -> None:
        if not self.quiet:
            self._print(f"[{worker}] ▶ {name} ({scenario_id})")

    def print_scenario_result(self, scenario_id: str, outcome: ScenarioOutcome) -> None:
        if not self.quiet:
            self._print(f"{outcome.status.upper()}: {outcome.name or scenario_id} ({outcome.duration:.2f}s)")

    def print_failure(self, scenario_id: str, outcome: ScenarioOutcome) -> None:
        """
        Print one failed/errored/timed-out scenario.

        Only the first line of the detail is shown unless debug is on.
        """
        self._print(f"  {scenario_id}: {outcome.name}")
        self._print(f"    Status: {outcome.status}")
        detail = outcome.detail or "Unknown error"
        if self.debug:
            for line in detail.splitlines():
                self._print(f"    {line}")
        else:
            self._print(f"    Error: {detail.splitlines()[0]}")

    def print_results(self, result: RunResult) -> None:
        """Print final results summary."""
        counts = result.counts()
        self._print("\n" + "=" * 40)
        self._print("RESULTS")
        self._print("=" * 40)
        self._print(f"  Passed:  {counts[Status.PASSED]}")
        self._print(f"  Failed:  {result.failed}")
        if counts[Status.ERROR] or counts[Status.TIMEOUT]:
            self._print(f"    (errors: {counts[Status.ERROR]}, timeouts: {counts[Status.TIMEOUT]})")
        self._print(f"  Skipped: {counts[Status.SKIPPED]}")

        failures = result.failures()
        if failures:
            self._print("\nFAILURES")
            for scenario_id, outcome in failures:
                self.print_failure(scenario_id, outcome)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        with self._lock:
            print(f"\nERROR: {title}", file=sys.stderr)
            print(f"{message}", file=sys.stderr)
            if details:
                for detail in details:
                    print(f"  {detail}", file=sys.stderr)
            if suggestion:
                print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
