"""
Polling scenarios.

Each scenario is a fixed, strictly sequential script over a moderator and an
attendee session. Whenever a step on one session depends on an effect of
the other, a convergence assertion sits between them.

Observed poll lifecycle per meeting:
    NoPoll -> Authoring -> Live -> (Cancelled -> NoPoll) | (Published -> Restartable)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from pollqa import elements as e
from pollqa.actions.polling import (
    ChoiceOp,
    StartPollOptions,
    answer_first_option,
    answer_free_text,
    author_free_text_poll,
    cancel_active_poll,
    manage_choice,
    open_poll_authoring,
    publish_results,
    start_authored_poll,
    start_poll,
)
from pollqa.actions.presentation import upload_presentation

if TYPE_CHECKING:
    from pollqa.assertions.convergence import ConvergenceAssertions
    from pollqa.config import PollQASettings
    from pollqa.scenarios.context import ScenarioContext

logger = structlog.get_logger(__name__)


class PollingScenarios:
    """One coroutine per polling scenario, each taking a ``ScenarioContext``."""

    def __init__(
        self,
        assertions: ConvergenceAssertions,
        settings: PollQASettings,
        new_option_text: str = e.NEW_OPTION_TEXT,
    ) -> None:
        self._assert = assertions
        self._settings = settings
        self.new_option_text = new_option_text
        self._log = logger.bind(component="polling_scenarios")

    async def _await_whiteboard(self, ctx: ScenarioContext) -> None:
        await self._assert.expect_present(
            ctx.moderator, e.WHITEBOARD, self._settings.element_wait_longer_ms
        )

    async def _upload_question_slide(self, ctx: ScenarioContext) -> None:
        await upload_presentation(ctx.moderator, e.QUESTION_SLIDE_FILE, self._settings)

    async def create_poll(self, ctx: ScenarioContext) -> None:
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator)
        await self._assert.expect_present(ctx.moderator, e.POLL_MENU_BUTTON)

    async def anonymous_poll(self, ctx: ScenarioContext) -> None:
        """
        An attendee's answer to an anonymous poll is never attributed.

        The attribution check is a single snapshot taken right after the
        answer, not a wait: it must prove the indicator is absent, not that
        it eventually goes away.
        """
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator, StartPollOptions(anonymous=True))
        await answer_first_option(ctx.attendee)
        await self._assert.snapshot_absence(ctx.moderator, e.RECEIVED_ANSWER)

    async def quick_poll(self, ctx: ScenarioContext) -> None:
        await self._await_whiteboard(ctx)
        await self._upload_question_slide(ctx)
        await start_poll(ctx.moderator, StartPollOptions(quick_poll=True))
        await self._assert.expect_present(ctx.moderator, e.POLL_MENU_BUTTON)
        await self._assert.expect_present(ctx.attendee, e.POLLING_CONTAINER)

    async def full_response_cycle(self, ctx: ScenarioContext) -> None:
        """Free-text question, attendee answer, moderator sees it, publish, restart offered."""
        await self._await_whiteboard(ctx)
        await open_poll_authoring(ctx.moderator)
        await author_free_text_poll(ctx.moderator, e.POLL_QUESTION)
        await start_authored_poll(ctx.moderator)

        await self._assert.expect_present(ctx.attendee, e.POLLING_CONTAINER)
        await answer_free_text(ctx.attendee, e.ANSWER_MESSAGE)
        # Submitted answers close the attendee's poll.
        await self._assert.expect_absent(ctx.attendee, e.POLLING_CONTAINER)

        await self._assert.expect_text(ctx.moderator, e.RECEIVED_ANSWER, e.ANSWER_MESSAGE)
        await publish_results(ctx.moderator)
        await self._assert.expect_present(ctx.moderator, e.RESTART_POLL)
        await self._assert.expect_absent(ctx.moderator, e.PUBLISH_POLLING_LABEL)
        await self._assert.expect_present(ctx.moderator, e.POLL_RESULTS)

    async def stop_poll(self, ctx: ScenarioContext) -> None:
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator)
        await self._assert.expect_present(ctx.attendee, e.POLLING_CONTAINER)
        await cancel_active_poll(ctx.moderator)
        await self._assert.expect_absent(ctx.moderator, e.POLL_MENU_BUTTON)
        await self._assert.expect_absent(ctx.attendee, e.POLLING_CONTAINER)

    async def results_visible_in_chat(self, ctx: ScenarioContext) -> None:
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator, StartPollOptions(publish=True))
        await ctx.moderator.wait_and_click(e.CHAT_BUTTON)
        await self._assert.expect_present(ctx.moderator, e.CHAT_POLL_MESSAGE_TEXT)
        await self._assert.expect_present(ctx.attendee, e.CHAT_POLL_MESSAGE_TEXT)

    async def results_visible_on_shared_surface(self, ctx: ScenarioContext) -> None:
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator, StartPollOptions(publish=True))
        await self._assert.expect_present(ctx.moderator, e.POLL_RESULTS)
        await self._assert.expect_present(ctx.attendee, e.POLL_RESULTS)

    async def results_after_surface_change(self, ctx: ScenarioContext) -> None:
        """Results still render after the presentation is replaced mid-poll."""
        await self._await_whiteboard(ctx)
        await start_poll(ctx.moderator)
        await self._upload_question_slide(ctx)
        await publish_results(ctx.moderator)
        await self._assert.expect_present(ctx.moderator, e.POLL_RESULTS)

    async def manage_response_choices(self, ctx: ScenarioContext) -> None:
        """
        Add, delete and edit the last choice across three activations.

        Attendee option counts must move by +1, -1 and 0 relative to the
        authored count, and after add/edit the last rendered option carries
        the new text.
        """
        await self._await_whiteboard(ctx)
        await self.start_new_poll(ctx)
        initial_count = await self._assert.read_count(ctx.moderator, e.POLL_OPTION_ITEM)
        self._log.info("Authored choice count", count=initial_count)

        # Add
        await manage_choice(ctx.moderator, ChoiceOp.APPEND, self.new_option_text)
        await start_authored_poll(ctx.moderator)
        await self._expect_attendee_options(ctx, initial_count + 1)
        await self.check_last_option_text(ctx)

        # Delete
        await self.start_new_poll(ctx)
        await manage_choice(ctx.moderator, ChoiceOp.DELETE_LAST)
        await start_authored_poll(ctx.moderator)
        await self._expect_attendee_options(ctx, initial_count - 1)

        # Edit
        await self.start_new_poll(ctx)
        await manage_choice(ctx.moderator, ChoiceOp.EDIT_LAST, self.new_option_text)
        await start_authored_poll(ctx.moderator)
        await self._expect_attendee_options(ctx, initial_count)
        await self.check_last_option_text(ctx)

    async def start_new_poll(self, ctx: ScenarioContext) -> None:
        """
        Open a fresh authoring pane, cancelling a poll left live by an earlier step.

        A no-op guard when nothing is live. When a poll is live, the
        attendee's poll must be gone before authoring starts again.
        """
        await self.ensure_no_live_poll(ctx)
        await open_poll_authoring(ctx.moderator)

    async def ensure_no_live_poll(self, ctx: ScenarioContext) -> None:
        """Cancel the live poll, if any, and wait until the attendee no longer shows it."""
        if await ctx.moderator.check_element(e.POLL_MENU_BUTTON):
            self._log.info("Cancelling leftover live poll")
            await cancel_active_poll(ctx.moderator)
            await self._assert.expect_absent(ctx.attendee, e.POLLING_CONTAINER)

    async def _expect_attendee_options(self, ctx: ScenarioContext, expected: int) -> None:
        await self._assert.expect_count(
            ctx.attendee,
            e.POLL_ANSWER_OPTION_BUTTON,
            expected,
            container=e.POLLING_CONTAINER,
        )

    async def check_last_option_text(self, ctx: ScenarioContext) -> None:
        """The last rendered attendee option carries the last authored text."""
        await self._assert.expect_present(ctx.attendee, e.POLLING_CONTAINER)
        await self._assert.expect_text(
            ctx.attendee,
            e.POLL_ANSWER_OPTION_BUTTON,
            self.new_option_text,
            index=-1,
        )


ScenarioFn = Callable[[PollingScenarios, "ScenarioContext"], Awaitable[None]]

SCENARIOS: dict[str, ScenarioFn] = {
    "create-poll": PollingScenarios.create_poll,
    "anonymous-poll": PollingScenarios.anonymous_poll,
    "quick-poll": PollingScenarios.quick_poll,
    "full-response-cycle": PollingScenarios.full_response_cycle,
    "stop-poll": PollingScenarios.stop_poll,
    "results-visible-in-chat": PollingScenarios.results_visible_in_chat,
    "results-visible-on-shared-surface": PollingScenarios.results_visible_on_shared_surface,
    "results-after-surface-change": PollingScenarios.results_after_surface_change,
    "manage-response-choices": PollingScenarios.manage_response_choices,
}
