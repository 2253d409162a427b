"""
Scenario runner.

Runs named polling scenarios and reports exactly one pass/fail result per
scenario, with:
- Failure classification (timeout, mismatch, setup, error)
- Shared or per-scenario session pairs
- Screenshot capture of both sessions on failure
"""

from __future__ import annotations

import re
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Sequence

import structlog
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from pollqa.assertions.convergence import ConvergenceAssertions
from pollqa.config import PollQASettings, load_settings
from pollqa.errors import AssertionMismatch, ConvergenceTimeout, SessionSetupError
from pollqa.scenarios.context import ScenarioContext, open_scenario_context
from pollqa.scenarios.polling import SCENARIOS, PollingScenarios

if TYPE_CHECKING:
    from playwright.async_api import Browser

logger = structlog.get_logger(__name__)

ContextFactory = Callable[
    ["Browser", PollQASettings], AbstractAsyncContextManager[ScenarioContext]
]

BROWSER_ARGS = [
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
    "--no-sandbox",
]


class ScenarioStatus(StrEnum):
    """Outcome of one scenario."""

    PASSED = "passed"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Why a scenario failed."""

    TIMEOUT = "timeout"
    MISMATCH = "mismatch"
    SETUP = "setup"
    ERROR = "error"


@dataclass
class ScenarioResult:
    """Result of a single scenario run."""

    name: str
    status: ScenarioStatus
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    failure_kind: FailureKind | None = None
    screenshots: dict[str, str] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.PASSED

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "status": str(self.status),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "failure_kind": str(self.failure_kind) if self.failure_kind else None,
            "screenshots": self.screenshots,
        }


def classify_failure(error: BaseException) -> FailureKind:
    """Map an exception raised while driving a scenario to a failure kind."""
    match error:
        case SessionSetupError():
            return FailureKind.SETUP
        case ConvergenceTimeout() | PlaywrightTimeoutError():
            return FailureKind.TIMEOUT
        case AssertionMismatch():
            return FailureKind.MISMATCH
        case _:
            return FailureKind.ERROR


class ScenarioRunner:
    """
    Executes polling scenarios against a browser.

    Usage:
        runner = ScenarioRunner(browser, settings)
        results = await runner.run(["create-poll", "stop-poll"])
    """

    def __init__(
        self,
        browser: Browser,
        settings: PollQASettings,
        context_factory: ContextFactory = open_scenario_context,
    ) -> None:
        self._browser = browser
        self._settings = settings
        self._context_factory = context_factory
        self._scenarios = PollingScenarios(ConvergenceAssertions(settings), settings)
        self._log = logger.bind(component="scenario_runner")

    async def run(
        self,
        names: Sequence[str] | None = None,
        isolate: bool = False,
    ) -> list[ScenarioResult]:
        """
        Run scenarios in order.

        Args:
            names: Scenario names (default: all, in registry order)
            isolate: Open a fresh session pair per scenario instead of sharing one

        Returns:
            One ScenarioResult per requested scenario

        Raises:
            KeyError: If a name is not a known scenario (before anything runs)
        """
        names = list(names) if names else list(SCENARIOS)
        unknown = [name for name in names if name not in SCENARIOS]
        if unknown:
            raise KeyError(f"Unknown scenario(s): {', '.join(unknown)}")

        if isolate:
            results = []
            for name in names:
                results.extend(await self._run_batch([name]))
            return results
        return await self._run_batch(names)

    async def _run_batch(self, names: list[str]) -> list[ScenarioResult]:
        """Run ``names`` against one session pair."""
        results: list[ScenarioResult] = []
        started_at = datetime.now(UTC)
        try:
            async with self._context_factory(self._browser, self._settings) as ctx:
                for i, name in enumerate(names):
                    results.append(await self._run_one(name, ctx, reset=i > 0))
        except Exception as e:
            # Scenario errors are caught in _run_one; anything here comes from the pair.
            self._log.error("Session setup failed", error=str(e))
            for name in names[len(results):]:
                results.append(self._failed(name, started_at, e))
        return results

    async def _run_one(
        self,
        name: str,
        ctx: ScenarioContext,
        reset: bool = False,
    ) -> ScenarioResult:
        result = ScenarioResult(
            name=name,
            status=ScenarioStatus.PASSED,
            started_at=datetime.now(UTC),
        )
        self._log.info("Starting scenario", scenario=name)

        try:
            if reset:
                # A shared pair may still hold the previous scenario's live poll.
                await self._scenarios.ensure_no_live_poll(ctx)
            await SCENARIOS[name](self._scenarios, ctx)
        except Exception as e:
            result.status = ScenarioStatus.FAILED
            result.error = str(e)
            result.failure_kind = classify_failure(e)
            self._log.error(
                "Scenario failed",
                scenario=name,
                failure_kind=str(result.failure_kind),
                error=str(e),
            )
            if self._settings.screenshot_on_failure:
                await self._capture_failure_screenshots(name, ctx, result)

        _finish(result)
        self._log.info(
            "Scenario completed",
            scenario=name,
            status=str(result.status),
            duration_ms=result.duration_ms,
        )
        return result

    def _failed(self, name: str, started_at: datetime, error: Exception) -> ScenarioResult:
        result = ScenarioResult(
            name=name,
            status=ScenarioStatus.FAILED,
            started_at=started_at,
            error=str(error),
            failure_kind=FailureKind.SETUP,
        )
        _finish(result)
        return result

    async def _capture_failure_screenshots(
        self,
        name: str,
        ctx: ScenarioContext,
        result: ScenarioResult,
    ) -> None:
        """Capture a screenshot of each session."""
        safe_name = re.sub(r"[^\w\-_]", "_", name)
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        artifact_dir = Path(self._settings.artifacts_dir)
        try:
            artifact_dir.mkdir(parents=True, exist_ok=True)
        except OSError as dir_error:
            self._log.warning(
                "Failed to create artifacts directory",
                path=str(artifact_dir),
                error=str(dir_error),
            )
            return

        for session in (ctx.moderator, ctx.attendee):
            path = artifact_dir / f"failure_{safe_name}_{session.role}_{timestamp}.png"
            try:
                await session.screenshot(path)
            except Exception as ss_error:
                self._log.warning(
                    "Failed to capture failure screenshot",
                    role=str(session.role),
                    error=str(ss_error),
                )
                continue
            result.screenshots[str(session.role)] = str(path)
            self._log.info("Captured failure screenshot", path=str(path))


def _finish(result: ScenarioResult) -> None:
    result.finished_at = datetime.now(UTC)
    result.duration_ms = int((result.finished_at - result.started_at).total_seconds() * 1000)


async def run_scenarios(
    names: Sequence[str] | None = None,
    settings: PollQASettings | None = None,
    isolate: bool = False,
) -> list[ScenarioResult]:
    """Launch Chromium, run scenarios, and close the browser."""
    settings = settings or load_settings()
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=settings.headless,
            slow_mo=settings.slow_mo_ms,
            args=BROWSER_ARGS,
        )
        try:
            return await ScenarioRunner(browser, settings).run(names, isolate=isolate)
        finally:
            await browser.close()
