# runner.py
from __future__ import annotations

import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from .model import RunResult, Scenario, ScenarioOutcome, Spec, Status
from .ui.console import Console, get_console


# how often the dispatch loop wakes up to notice cancellation
POLL_INTERVAL = 0.1


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

@dataclass
class ExecutionError(Exception):
    """A scenario could not be executed (collaborator crashed, bad command, ...)."""
    scenario: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"ExecutionError: {self.message}", f"scenario={self.scenario}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class ScenarioTimeoutError(Exception):
    scenario: str
    timeout: float

    def __str__(self) -> str:
        return f"TimeoutError: scenario exceeded {self.timeout:g}s\nscenario={self.scenario}"


Selection = Iterable[Tuple[Spec, Sequence[Scenario]]]


# ----------------------------------------------------------------------
# Coordinator
# ----------------------------------------------------------------------

class ExecutionCoordinator:
    """
    Runs selected scenarios on a fixed pool of `workers` threads.

    Each scenario goes through collaborator.execute(); failures, crashes and
    timeouts are recorded per scenario and never stop the siblings.
    """

    def __init__(
        self,
        collaborator,
        *,
        workers: int = 1,
        timeout: Optional[float] = None,
        fail_fast: bool = False,
        console: Optional[Console] = None,
    ):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self.collaborator = collaborator
        self.workers = workers
        self.timeout = timeout
        self.fail_fast = fail_fast
        self.console = console or get_console()
        self.interrupted = False

    # ---- per-scenario execution (runs on a pool thread) ----

    def _call(self, scenario: Scenario, worker: str):
        if self.timeout is None:
            return self.collaborator.execute(scenario)

        box: Dict[str, object] = {}

        def target() -> None:
            try:
                box["outcome"] = self.collaborator.execute(scenario)
            except BaseException as e:  # handed back to the worker below
                box["error"] = e

        # the collaborator call is blocking and cannot be interrupted; if it
        # overruns, it is abandoned on a daemon thread and the worker moves on
        t = threading.Thread(target=target, name=f"{worker}-call", daemon=True)
        t.start()
        t.join(self.timeout)
        if t.is_alive():
            raise ScenarioTimeoutError(scenario=scenario.id, timeout=self.timeout)
        if "error" in box:
            raise box["error"]  # type: ignore[misc]
        return box["outcome"]

    def _run_scenario(self, scenario: Scenario, result: RunResult) -> ScenarioOutcome:
        worker = threading.current_thread().name
        result.log_dispatch(worker, scenario.id)
        self.console.print_scenario_start(worker, scenario.id, scenario.name)

        start = time.monotonic()
        try:
            outcome = self._call(scenario, worker)
            status = Status.PASSED if outcome.passed else Status.FAILED
            detail = outcome.detail if not outcome.passed else ""
        except ScenarioTimeoutError as e:
            status, detail = Status.TIMEOUT, str(e)
        except ExecutionError as e:
            status, detail = Status.ERROR, str(e)
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # includes SystemExit from frameworks that call sys.exit in-process
            err = ExecutionError(
                scenario=scenario.id,
                message=f"{type(e).__name__}: {e}",
            )
            status, detail = Status.ERROR, str(err)

        recorded = ScenarioOutcome(
            status=status,
            detail=detail,
            duration=time.monotonic() - start,
            name=scenario.name,
        )
        result.record(scenario.id, recorded)
        self.console.print_scenario_result(scenario.id, recorded)
        return recorded

    # ---- public API ----

    def run(self, selection: Selection, cancel: Optional[threading.Event] = None) -> RunResult:
        scenarios: List[Scenario] = [s for _spec, chosen in selection for s in chosen]
        ids = [s.id for s in scenarios]
        if len(set(ids)) != len(ids):
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            raise ValueError(f"Duplicate scenario ids in selection: {dupes}")

        cancel = cancel or threading.Event()
        result = RunResult()
        pending: Deque[Scenario] = deque(scenarios)
        in_flight: Dict[Future, Scenario] = {}

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="worker") as pool:
            while pending or in_flight:
                # schedule up to `workers` scenarios
                while pending and len(in_flight) < self.workers and not cancel.is_set():
                    scenario = pending.popleft()
                    fut = pool.submit(self._run_scenario, scenario, result)
                    in_flight[fut] = scenario

                if not in_flight:
                    break

                try:
                    done, _ = wait(list(in_flight), timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    self.interrupted = True
                    cancel.set()
                    self.console.print_info("\nInterrupted: waiting for running scenarios to finish")
                    continue

                for fut in done:
                    scenario = in_flight.pop(fut)
                    try:
                        outcome = fut.result()
                    except Exception as e:
                        # only reachable if recording itself failed
                        self.console.print_exception(e)
                        cancel.set()
                        continue
                    if self.fail_fast and not outcome.ok:
                        cancel.set()

        for scenario in pending:
            result.record(
                scenario.id,
                ScenarioOutcome(status=Status.SKIPPED, detail="cancelled", name=scenario.name),
            )

        result.close()
        return result


def run_scenarios(
    selection: Selection,
    collaborator,
    *,
    workers: int = 1,
    timeout: Optional[float] = None,
    fail_fast: bool = False,
    cancel: Optional[threading.Event] = None,
) -> RunResult:
    """Functional shortcut around ExecutionCoordinator."""
    coordinator = ExecutionCoordinator(
        collaborator,
        workers=workers,
        timeout=timeout,
        fail_fast=fail_fast,
    )
    return coordinator.run(selection, cancel=cancel)
