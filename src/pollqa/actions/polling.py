"""
Reusable polling actions.

Each action is the shortest sequence of session primitives that reaches a
semantic state. Actions never retry or swallow failures: a primitive that
times out ends the scenario.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from pollqa import elements as e

if TYPE_CHECKING:
    from pollqa.session.handle import SessionHandle

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StartPollOptions:
    """How a poll gets started."""

    anonymous: bool = False
    """Hide per-respondent attribution from the moderator."""

    quick_poll: bool = False
    """Use the presentation's one-step quick poll instead of manual authoring."""

    publish: bool = False
    """Publish results right after the poll goes live."""


class ChoiceOp(StrEnum):
    """Edits on the authored answer-choice list."""

    APPEND = "append"
    EDIT_LAST = "edit_last"
    DELETE_LAST = "delete_last"


async def open_poll_authoring(session: SessionHandle) -> None:
    """Open the poll authoring pane with letter alternatives, without starting it."""
    logger.debug("Opening poll authoring", role=str(session.role))
    await session.wait_and_click(e.ACTIONS)
    await session.wait_and_click(e.POLLING)
    await session.wait_for_selector(e.POLL_PANE_TITLE)
    await session.wait_and_click(e.POLL_LETTER_ALTERNATIVES)
    await session.wait_for_selector(e.POLL_OPTION_ITEM)


async def start_authored_poll(session: SessionHandle) -> None:
    """Start the poll currently open in the authoring pane."""
    await session.wait_and_click(e.START_POLL)


async def start_poll(
    session: SessionHandle,
    options: StartPollOptions | None = None,
) -> None:
    """
    Make a poll live for attendees.

    Postcondition: the moderator's live-poll management pane is rendered
    (and, with ``publish``, results have been published).
    """
    options = options or StartPollOptions()
    logger.info(
        "Starting poll",
        role=str(session.role),
        anonymous=options.anonymous,
        quick_poll=options.quick_poll,
        publish=options.publish,
    )

    if options.quick_poll:
        await session.wait_and_click(e.QUICK_POLL)
    else:
        await open_poll_authoring(session)
        if options.anonymous:
            await session.wait_for_selector(e.ANONYMOUS_POLL)
            await session.get_locator(e.ANONYMOUS_POLL).set_checked(True)
        await start_authored_poll(session)

    await session.wait_for_selector(e.POLL_MENU_BUTTON)
    if options.publish:
        await publish_results(session)


async def author_free_text_poll(session: SessionHandle, question: str) -> None:
    """Type a question and switch the open authoring pane to free-text responses."""
    await session.type(e.POLL_QUESTION_AREA, question)
    await session.wait_and_click(e.USER_RESPONSE_BUTTON)


async def publish_results(session: SessionHandle) -> None:
    """Publish the live poll's results."""
    logger.info("Publishing poll results", role=str(session.role))
    await session.wait_and_click(e.PUBLISH_POLLING_LABEL)


async def cancel_active_poll(session: SessionHandle) -> None:
    """Cancel the live poll. Attendee-side removal is checked by the caller."""
    logger.info("Cancelling live poll", role=str(session.role))
    await session.wait_and_click(e.CANCEL_POLL_BUTTON)


async def manage_choice(
    session: SessionHandle,
    op: ChoiceOp,
    text: str | None = None,
) -> None:
    """
    Edit the authored choice list. The last choice is always the one touched.

    Raises:
        ValueError: If ``op`` writes text and none is given
    """
    if op in (ChoiceOp.APPEND, ChoiceOp.EDIT_LAST) and text is None:
        raise ValueError(f"Choice operation {op} requires text")

    logger.debug("Editing poll choices", role=str(session.role), op=str(op), text=text)
    match op:
        case ChoiceOp.APPEND:
            await session.wait_and_click(e.ADD_POLL_ITEM)
            await _fill_last_choice(session, text)
        case ChoiceOp.EDIT_LAST:
            await _fill_last_choice(session, text)
        case ChoiceOp.DELETE_LAST:
            await session.wait_for_selector(e.DELETE_POLL_OPTION)
            await session.get_locator(e.DELETE_POLL_OPTION).last.click()
        case _:
            raise ValueError(f"Unknown choice operation: {op}")


async def _fill_last_choice(session: SessionHandle, text: str | None) -> None:
    await session.wait_for_selector(e.POLL_OPTION_ITEM)
    await session.get_locator(e.POLL_OPTION_ITEM).last.fill(text)


async def answer_first_option(session: SessionHandle) -> None:
    """Answer the live poll with its first option."""
    await session.wait_and_click(e.POLL_ANSWER_OPTION_BUTTON)


async def answer_free_text(session: SessionHandle, text: str) -> None:
    """Answer a free-text poll and submit."""
    await session.type(e.POLL_ANSWER_OPTION_INPUT, text)
    await session.wait_and_click(e.POLL_SUBMIT_ANSWER)
