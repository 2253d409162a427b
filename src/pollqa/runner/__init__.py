"""
Scenario execution and per-scenario pass/fail results.
"""

from pollqa.runner.scenario_runner import (
    FailureKind,
    ScenarioResult,
    ScenarioRunner,
    ScenarioStatus,
    classify_failure,
    run_scenarios,
)

__all__ = [
    "FailureKind",
    "ScenarioResult",
    "ScenarioRunner",
    "ScenarioStatus",
    "classify_failure",
    "run_scenarios",
]
