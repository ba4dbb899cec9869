from __future__ import annotations

import pytest

from featurerun.suites import SUITES, get_suite
from featurerun.tags import TagExpression


def test_presets_match_the_four_runner_modes():
    assert SUITES["all"].expression() == TagExpression()
    assert SUITES["all"].workers == 1
    assert SUITES["parallel"].expression() == TagExpression(excluded=frozenset({"ignore"}))
    assert SUITES["parallel"].workers == 5
    assert SUITES["smoke"].expression() == TagExpression(required=frozenset({"smoke"}))
    assert SUITES["smoke"].workers == 1
    assert SUITES["regression"].expression() == TagExpression(required=frozenset({"regression"}))
    assert SUITES["regression"].workers == 5


def test_worker_override_only_applies_to_parallel_suites():
    assert get_suite("regression").with_workers(2).workers == 2
    assert get_suite("regression").with_workers(None).workers == 5
    assert get_suite("smoke").with_workers(8).workers == 1


def test_unknown_suite():
    with pytest.raises(KeyError, match="Unknown suite"):
        get_suite("nightly")
