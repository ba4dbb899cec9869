# suites.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .tags import TagExpression


DEFAULT_PARALLEL_WORKERS = 5


@dataclass(frozen=True)
class Suite:
    """A named run preset: which tags to select and how many workers to use."""
    name: str
    tags: Tuple[str, ...] = ()
    workers: int = 1
    parallel: bool = False  # True -> workers can be overridden with --workers

    def expression(self) -> TagExpression:
        return TagExpression.parse(*self.tags)

    def with_workers(self, workers: Optional[int]) -> "Suite":
        if workers is None or not self.parallel:
            return self
        return Suite(name=self.name, tags=self.tags, workers=workers, parallel=self.parallel)


SUITES: Dict[str, Suite] = {
    "all": Suite("all"),
    "parallel": Suite("parallel", tags=("~@ignore",), workers=DEFAULT_PARALLEL_WORKERS, parallel=True),
    "smoke": Suite("smoke", tags=("@smoke",)),
    "regression": Suite("regression", tags=("@regression",), workers=DEFAULT_PARALLEL_WORKERS, parallel=True),
}


def get_suite(name: str) -> Suite:
    try:
        return SUITES[name]
    except KeyError:
        raise KeyError(f"Unknown suite {name!r}. Known suites: {sorted(SUITES)}") from None
