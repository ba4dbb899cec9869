# model.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class StepRef:
    """A single step line inside a scenario. Opaque to the runner."""
    keyword: str
    text: str
    line: int


@dataclass(frozen=True)
class Scenario:
    """
    A runnable scenario: name + tags + steps.

    `tags` already include everything inherited from the feature, the rule
    and (for outline rows) the examples block. Tags are stored without '@'.
    """
    name: str
    spec_path: str
    line: int
    tags: frozenset[str] = frozenset()
    steps: Tuple[StepRef, ...] = ()

    @property
    def id(self) -> str:
        return f"{self.spec_path}:{self.line}"


@dataclass(frozen=True)
class Spec:
    """A parsed feature file."""
    path: str
    name: str
    scenarios: Tuple[Scenario, ...] = ()
    tags: frozenset[str] = frozenset()


class Status:
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"

    # outcomes that make a run fail
    FAILING = (FAILED, ERROR, TIMEOUT)


@dataclass(frozen=True)
class ScenarioOutcome:
    status: str
    detail: str = ""
    duration: float = 0.0
    name: str = ""

    @property
    def ok(self) -> bool:
        return self.status == Status.PASSED


@dataclass
class RunResult:
    """
    Aggregated outcome of a run.

    Append-only while the run is in progress (record() is serialized by a
    lock); close() freezes it. Reading before close is allowed but only the
    coordinator does that.
    """
    _outcomes: Dict[str, ScenarioOutcome] = field(default_factory=dict)
    _log: List[Tuple[str, str]] = field(default_factory=list)  # (worker, scenario_id)
    _closed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, scenario_id: str, outcome: ScenarioOutcome) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("RunResult is closed")
            if scenario_id in self._outcomes:
                raise ValueError(f"Outcome already recorded for {scenario_id}")
            self._outcomes[scenario_id] = outcome

    def log_dispatch(self, worker: str, scenario_id: str) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("RunResult is closed")
            self._log.append((worker, scenario_id))

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def log(self) -> Tuple[Tuple[str, str], ...]:
        """Dispatch log as (worker, scenario_id) pairs."""
        return tuple(self._log)

    @property
    def outcomes(self) -> Mapping[str, ScenarioOutcome]:
        return MappingProxyType(self._outcomes)

    def get(self, scenario_id: str) -> Optional[ScenarioOutcome]:
        return self._outcomes.get(scenario_id)

    def worker_log(self, worker: str) -> List[str]:
        """Scenario ids dispatched to one worker, in dispatch order."""
        return [sid for w, sid in self._log if w == worker]

    def counts(self) -> Dict[str, int]:
        out = {s: 0 for s in (Status.PASSED, Status.FAILED, Status.ERROR, Status.TIMEOUT, Status.SKIPPED)}
        for outcome in self._outcomes.values():
            out[outcome.status] += 1
        return out

    def failures(self) -> List[Tuple[str, ScenarioOutcome]]:
        return [(sid, o) for sid, o in self._outcomes.items() if o.status in Status.FAILING]

    @property
    def passed(self) -> int:
        return self.counts()[Status.PASSED]

    @property
    def failed(self) -> int:
        return len(self.failures())

    @property
    def skipped(self) -> int:
        return self.counts()[Status.SKIPPED]

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def __len__(self) -> int:
        return len(self._outcomes)

    def __contains__(self, scenario_id: object) -> bool:
        return scenario_id in self._outcomes
