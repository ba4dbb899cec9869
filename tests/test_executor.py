from __future__ import annotations

import pytest

from featurerun.executor import CommandExecutor, DryRunExecutor
from featurerun.model import Scenario, Spec
from featurerun.runner import ExecutionError, ScenarioTimeoutError


SCENARIO = Scenario(
    name="driver's license check",
    spec_path="drivers/drivers.feature",
    line=7,
    tags=frozenset({"smoke", "drivers"}),
)


def test_render_quotes_fields():
    ex = CommandExecutor("karate {path}:{line} --name {name} --tags {tags}")
    assert ex.render(SCENARIO) == (
        "karate drivers/drivers.feature:7 --name 'driver'\"'\"'s license check' --tags @drivers,@smoke"
    )


def test_bad_template_is_an_execution_error():
    with pytest.raises(ExecutionError) as exc:
        CommandExecutor("karate {feature}").render(SCENARIO)
    assert exc.value.scenario == SCENARIO.id


def test_zero_exit_passes():
    assert CommandExecutor("test {line} -eq 7").execute(SCENARIO).passed


def test_non_zero_exit_fails_with_output():
    outcome = CommandExecutor("echo 'status 500' >&2; exit 3").execute(SCENARIO)
    assert not outcome.passed
    assert outcome.detail.startswith("exit=3")
    assert "status 500" in outcome.detail


def test_environment_is_exported(tmp_path):
    (tmp_path / "karate-config.js").write_text("function fn() { return {}; }")
    ex = CommandExecutor(
        'test "$FEATURERUN_ENV" = qa && test -f karate-config.js',
        env={"FEATURERUN_ENV": "qa"},
        cwd=tmp_path,
    )
    assert ex.execute(SCENARIO).passed


def test_missing_tool_is_an_execution_error():
    with pytest.raises(ExecutionError) as exc:
        CommandExecutor("featurerun-no-such-tool {path}").execute(SCENARIO)
    assert "Command not found: featurerun-no-such-tool" in str(exc.value)
    assert "hint=" in str(exc.value)


def test_subprocess_timeout_is_a_scenario_timeout():
    with pytest.raises(ScenarioTimeoutError) as exc:
        CommandExecutor("exec sleep 5", timeout=0.2).execute(SCENARIO)
    assert exc.value.timeout == pytest.approx(0.2)


def test_dry_run_and_tag_discovery():
    spec = Spec(path="a.feature", name="a", scenarios=(SCENARIO,), tags=frozenset({"api"}))
    dry = DryRunExecutor()
    assert dry.execute(SCENARIO).passed
    assert dry.discover_tags(spec) == frozenset({"api", "smoke", "drivers"})
