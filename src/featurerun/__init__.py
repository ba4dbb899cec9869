
from .loader import SpecLoader, DiscoveryError, load_specs
from .tags import TagExpression, InvalidTagExpressionError, matches, select, select_scenarios
from .runner import ExecutionCoordinator, ExecutionError, ScenarioTimeoutError, run_scenarios
from .executor import CommandExecutor, DryRunExecutor, Outcome
from .model import Spec, Scenario, StepRef, ScenarioOutcome, RunResult, Status

__all__ = [
    "SpecLoader", "DiscoveryError", "load_specs",
    "TagExpression", "InvalidTagExpressionError", "matches", "select", "select_scenarios",
    "ExecutionCoordinator", "ExecutionError", "ScenarioTimeoutError", "run_scenarios",
    "CommandExecutor", "DryRunExecutor", "Outcome",
    "Spec", "Scenario", "StepRef", "ScenarioOutcome", "RunResult", "Status",
]
