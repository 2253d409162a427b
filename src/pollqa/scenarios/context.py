"""
Scenario context: the moderator/attendee session pair one scenario drives.
"""

from __future__ import annotations

import contextlib
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator

import structlog

from pollqa.errors import SessionSetupError
from pollqa.session.handle import MeetingSession, SessionHandle
from pollqa.session.identity import JoinIdentity

if TYPE_CHECKING:
    from playwright.async_api import Browser

    from pollqa.config import PollQASettings

logger = structlog.get_logger(__name__)

MODERATOR_NAME = "Moderator"
ATTENDEE_NAME = "Attendee"


@dataclass(frozen=True, slots=True)
class ScenarioContext:
    """Two sessions in the same meeting, exclusively owned by one scenario run."""

    moderator: SessionHandle
    attendee: SessionHandle

    def __post_init__(self) -> None:
        if self.moderator.meeting_id is None:
            raise SessionSetupError("Moderator has not joined a meeting", role="moderator")
        if self.attendee.meeting_id != self.moderator.meeting_id:
            raise SessionSetupError(
                "Attendee joined a different meeting than the moderator",
                role="attendee",
                expected=self.moderator.meeting_id,
                actual=self.attendee.meeting_id,
            )


@asynccontextmanager
async def open_scenario_context(
    browser: Browser,
    settings: PollQASettings,
) -> AsyncIterator[ScenarioContext]:
    """
    Join a fresh meeting as moderator, then as attendee, each in its own browser context.

    Usage:
        async with open_scenario_context(browser, settings) as ctx:
            await scenarios.create_poll(ctx)
    """
    browser_contexts = []
    try:
        sessions = []
        for is_moderator in (True, False):
            browser_context = await browser.new_context(
                viewport={"width": 1280, "height": 720},
                ignore_https_errors=True,
            )
            browser_contexts.append(browser_context)
            page = await browser_context.new_page()
            page.set_default_timeout(settings.element_wait_ms)

            identity = (
                JoinIdentity(full_name=MODERATOR_NAME)
                if is_moderator
                else JoinIdentity(full_name=ATTENDEE_NAME, meeting_id=sessions[0].meeting_id)
            )
            session = MeetingSession(page, settings)
            sessions.append(await session.init(is_moderator, True, identity))

        ctx = ScenarioContext(moderator=sessions[0], attendee=sessions[1])
        logger.info("Scenario sessions ready", meeting_id=ctx.moderator.meeting_id)
        yield ctx
    finally:
        for browser_context in reversed(browser_contexts):
            with contextlib.suppress(Exception):
                await browser_context.close()
