# tags.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .model import Scenario, Spec


@dataclass
class InvalidTagExpressionError(Exception):
    expression: str
    message: str

    def __str__(self) -> str:
        return f"Invalid tag expression {self.expression!r}: {self.message}"


_TAG_RE = re.compile(r"^[^\s@~,]+$")


def _check_tag(tag: str, expression: str) -> str:
    if not isinstance(tag, str) or not _TAG_RE.match(tag):
        raise InvalidTagExpressionError(expression, f"bad tag {tag!r}")
    return tag


@dataclass(frozen=True)
class TagExpression:
    """
    Include/exclude tag filter.

    A scenario matches when it carries at least one `required` tag (or
    `required` is empty) and none of the `excluded` tags.
    """
    required: frozenset[str] = frozenset()
    excluded: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        required = frozenset(self.required)
        excluded = frozenset(self.excluded)
        shown = self._render(required, excluded)
        for t in required | excluded:
            _check_tag(t, shown)
        both = required & excluded
        if both:
            raise InvalidTagExpressionError(shown, f"tags both required and excluded: {sorted(both)}")
        # normalize whatever iterable was passed in
        object.__setattr__(self, "required", required)
        object.__setattr__(self, "excluded", excluded)

    @classmethod
    def parse(cls, *expressions: str) -> "TagExpression":
        """
        Parse Karate / cucumber-jvm style expressions.

            TagExpression.parse("@smoke")
            TagExpression.parse("~@ignore")
            TagExpression.parse("@smoke,@regression", "not @wip")
        """
        required: set[str] = set()
        excluded: set[str] = set()

        for expr in expressions:
            tokens = [t for t in re.split(r"[,\s]+", expr.strip()) if t]
            negate_next = False
            for token in tokens:
                if token == "not":
                    if negate_next:
                        raise InvalidTagExpressionError(expr, "'not' must be followed by a tag")
                    negate_next = True
                    continue

                negated = negate_next
                negate_next = False
                if token.startswith("~"):
                    if negated:
                        raise InvalidTagExpressionError(expr, f"double negation in {token!r}")
                    negated = True
                    token = token[1:]

                if not token.startswith("@") or len(token) < 2:
                    raise InvalidTagExpressionError(expr, f"expected @tag, got {token!r}")
                tag = _check_tag(token[1:], expr)
                (excluded if negated else required).add(tag)

            if negate_next:
                raise InvalidTagExpressionError(expr, "'not' must be followed by a tag")

        return cls(required=frozenset(required), excluded=frozenset(excluded))

    @property
    def empty(self) -> bool:
        return not self.required and not self.excluded

    @staticmethod
    def _render(required: Iterable[str], excluded: Iterable[str]) -> str:
        parts = [",".join(f"@{t}" for t in sorted(required))] if required else []
        parts += [f"~@{t}" for t in sorted(excluded)]
        return " ".join(parts)

    def __str__(self) -> str:
        return self._render(self.required, self.excluded) or "(all)"


# ----------------------------------------------------------------------
# Filtering
# ----------------------------------------------------------------------

def matches(expr: TagExpression, scenario: Scenario) -> bool:
    if expr.required and expr.required.isdisjoint(scenario.tags):
        return False
    return expr.excluded.isdisjoint(scenario.tags)


def select_scenarios(expr: TagExpression, spec: Spec) -> List[Scenario]:
    return [s for s in spec.scenarios if matches(expr, s)]


def select(
    specs: Iterable[Spec],
    expr: TagExpression,
    collaborator: Optional[object] = None,
) -> Iterator[Tuple[Spec, List[Scenario]]]:
    """
    Yield (spec, matching scenarios) for every spec with at least one match.

    If a collaborator is given, its discover_tags(spec) is used to drop whole
    specs that cannot satisfy `required` before looking at scenarios.
    """
    for spec in specs:
        if collaborator is not None and expr.required:
            if expr.required.isdisjoint(collaborator.discover_tags(spec)):
                continue
        chosen = select_scenarios(expr, spec)
        if chosen:
            yield spec, chosen
