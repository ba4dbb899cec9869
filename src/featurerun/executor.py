# executor.py
from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

from .model import Scenario, Spec
from .runner import ExecutionError, ScenarioTimeoutError


TOOL_HINTS = {
    "karate": "Install the Karate standalone launcher or fix PATH.",
    "java": "Install a Java runtime (17+) or fix PATH.",
    "mvn": "Install Maven or fix PATH.",
    "behave": "Install behave (e.g., pip install behave).",
    "pytest": "Install pytest (e.g., pip install pytest pytest-bdd).",
}

DEFAULT_COMMAND = "karate {path}:{line}"

# keep failure output short enough to print
OUTPUT_TAIL = 4000


@dataclass(frozen=True)
class Outcome:
    """What the step-execution framework reports for one scenario."""
    passed: bool
    detail: str = ""


class StepExecutor(Protocol):
    """The external framework that actually performs steps (HTTP calls, assertions)."""

    def execute(self, scenario: Scenario) -> Outcome: ...

    def discover_tags(self, spec: Spec) -> frozenset[str]: ...


class BaseExecutor:
    def execute(self, scenario: Scenario) -> Outcome:
        raise NotImplementedError

    def discover_tags(self, spec: Spec) -> frozenset[str]:
        tags: set[str] = set(spec.tags)
        for s in spec.scenarios:
            tags |= s.tags
        return frozenset(tags)


class DryRunExecutor(BaseExecutor):
    """Marks every scenario as passed without running it."""

    def execute(self, scenario: Scenario) -> Outcome:
        return Outcome(passed=True, detail="dry run")


class CommandExecutor(BaseExecutor):
    """
    Runs one shell command per scenario.

    The command is a template; available fields:
      {path}  feature file path (shell-quoted)
      {line}  scenario line
      {name}  scenario name (shell-quoted)
      {tags}  comma-separated @tags (shell-quoted)
    """

    def __init__(
        self,
        command: str = DEFAULT_COMMAND,
        *,
        env: Optional[Dict[str, str]] = None,
        cwd: str | Path | None = None,
        timeout: Optional[float] = None,
    ):
        self.command = command
        self.env = dict(env or {})
        self.cwd = Path(cwd) if cwd is not None else None
        self.timeout = timeout

    def render(self, scenario: Scenario) -> str:
        tags = ",".join(f"@{t}" for t in sorted(scenario.tags))
        try:
            return self.command.format(
                path=shlex.quote(scenario.spec_path),
                line=scenario.line,
                name=shlex.quote(scenario.name),
                tags=shlex.quote(tags),
            )
        except (KeyError, IndexError) as e:
            raise ExecutionError(
                scenario=scenario.id,
                message=f"Bad command template {self.command!r}",
                details={"field": str(e)},
            ) from e

    def execute(self, scenario: Scenario) -> Outcome:
        cmd = self.render(scenario)

        env = os.environ.copy()
        env.update(self.env)

        try:
            proc = subprocess.run(
                cmd,
                shell=True,
                cwd=str(self.cwd) if self.cwd else None,
                env=env,
                text=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ScenarioTimeoutError(scenario=scenario.id, timeout=float(e.timeout)) from e
        except OSError as e:
            raise ExecutionError(
                scenario=scenario.id,
                message=f"Could not start command: {e}",
                details={"cmd": cmd},
            ) from e

        # shell reports a missing program as 127
        if proc.returncode == 127:
            tool = cmd.split()[0] if cmd.split() else cmd
            raise ExecutionError(
                scenario=scenario.id,
                message=f"Command not found: {tool}",
                details={"hint": TOOL_HINTS.get(tool, f"Install {tool} or fix PATH.")},
            )

        if proc.returncode != 0:
            output = (proc.stdout[-OUTPUT_TAIL:] + proc.stderr[-OUTPUT_TAIL:]).strip()
            detail = f"exit={proc.returncode}: {cmd}"
            if output:
                detail = f"{detail}\n{output}"
            return Outcome(passed=False, detail=detail)

        return Outcome(passed=True)
