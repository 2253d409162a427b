"""
pollqa: dual-session end-to-end scenarios for live meeting polls.

Drives a moderator and an attendee browser session against one meeting and
asserts that poll state converges on both.
"""

__version__ = "1.0.0"

from pollqa.actions import ChoiceOp, StartPollOptions
from pollqa.assertions import ConvergenceAssertions, Found, TimedOut, poll_until
from pollqa.config import PollQASettings, WaitPolicy, load_settings
from pollqa.errors import (
    AssertionMismatch,
    ConvergenceTimeout,
    ScenarioFailure,
    SessionSetupError,
)
from pollqa.runner import ScenarioResult, ScenarioRunner, ScenarioStatus, run_scenarios
from pollqa.scenarios import SCENARIOS, PollingScenarios, ScenarioContext
from pollqa.session import JoinIdentity, MeetingSession, SessionHandle, SessionRole

__all__ = [
    "AssertionMismatch",
    "ChoiceOp",
    "ConvergenceAssertions",
    "ConvergenceTimeout",
    "Found",
    "JoinIdentity",
    "MeetingSession",
    "PollQASettings",
    "PollingScenarios",
    "SCENARIOS",
    "ScenarioContext",
    "ScenarioFailure",
    "ScenarioResult",
    "ScenarioRunner",
    "ScenarioStatus",
    "SessionHandle",
    "SessionRole",
    "SessionSetupError",
    "StartPollOptions",
    "TimedOut",
    "WaitPolicy",
    "__version__",
    "load_settings",
    "poll_until",
    "run_scenarios",
]
