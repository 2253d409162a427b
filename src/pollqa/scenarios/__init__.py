"""
Scenario orchestration over a moderator/attendee session pair.
"""

from pollqa.scenarios.context import ScenarioContext, open_scenario_context
from pollqa.scenarios.polling import SCENARIOS, PollingScenarios, ScenarioFn

__all__ = [
    "SCENARIOS",
    "PollingScenarios",
    "ScenarioContext",
    "ScenarioFn",
    "open_scenario_context",
]
