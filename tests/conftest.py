"""Pytest fixtures for pollqa tests.

Provides an in-memory meeting that renders each participant's view from a
shared poll state, with a propagation delay for anything that crosses from
one participant to the other. Fake sessions expose the same primitives as
``MeetingSession`` so actions, assertions and scenarios run unchanged.
"""

from __future__ import annotations

import asyncio
import tempfile
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Generator

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pollqa import elements as e
from pollqa.assertions.convergence import ConvergenceAssertions
from pollqa.config import PollQASettings
from pollqa.scenarios.context import ScenarioContext
from pollqa.scenarios.polling import PollingScenarios
from pollqa.session.identity import JoinIdentity, SessionRole

MEETING_ID = "pollqa-test-meeting"
SLIDE_CHOICES = ("A", "B")


class Delayed:
    """A value whose updates become visible only after a delay."""

    def __init__(self, initial: Any) -> None:
        self._events: list[tuple[float, Any]] = [(0.0, initial)]

    def set(self, value: Any, delay: float) -> None:
        self._events.append((time.monotonic() + delay, value))

    def get(self) -> Any:
        now = time.monotonic()
        value = self._events[0][1]
        for ready_at, v in self._events:
            if ready_at <= now:
                value = v
        return value


@dataclass
class LivePoll:
    poll_id: int
    choices: tuple[str, ...]
    anonymous: bool = False
    free_text: bool = False
    presentation: int = 0


@dataclass
class ModeratorUi:
    actions_open: bool = False
    pane_open: bool = False
    letters_chosen: bool = False
    free_text: bool = False
    anonymous: bool = False
    question: str = ""
    draft: list[str] = field(default_factory=list)
    chat_open: bool = False
    upload_open: bool = False
    upload_file: Path | None = None


class FakeMeeting:
    """
    Shared backend for one moderator and one attendee.

    Fault switches let tests break one guarantee at a time:
    - leak_attribution: received answers render even for anonymous polls
    - ignore_cancel_for_attendee: the attendee's poll never goes away
    - results_bound_to_slide: results vanish if the slide changed mid-poll
    - garble_last_option: the last attendee option renders different text
    """

    def __init__(self, delay: float = 0.05, initial_choices: tuple[str, ...] = ("A", "B")) -> None:
        self.delay = delay
        self.initial_choices = initial_choices
        self.mod = ModeratorUi()
        self.live: LivePoll | None = None
        self.published: LivePoll | None = None
        self.presentation = 0
        self.presentation_status = Delayed(None)
        self.conversion_delay = 0.05
        self._poll_seq = 0

        self.attendee_poll = Delayed(None)
        self.attendee_answered: int | None = None
        self.attendee_typed = ""
        self.attendee_results = Delayed(False)
        self.chat_message = Delayed(False)
        self.received_answers = Delayed(())

        self.leak_attribution = False
        self.ignore_cancel_for_attendee = False
        self.results_bound_to_slide = False
        self.garble_last_option = False

        self.polls_started = 0

    # Rendering

    def render(self, role: SessionRole) -> dict[str, list[str]]:
        if role == SessionRole.MODERATOR:
            return self._render_moderator()
        return self._render_attendee()

    def _render_moderator(self) -> dict[str, list[str]]:
        ui = self.mod
        view: dict[str, list[str]] = {
            e.WHITEBOARD: [""],
            e.ACTIONS: [""],
            e.CHAT_BUTTON: [""],
        }
        if ui.actions_open:
            view[e.POLLING] = [""]
            view[e.MANAGE_PRESENTATIONS] = [""]
        if ui.upload_open:
            view[e.FILE_UPLOAD] = [""]
            view[e.CONFIRM_MANAGE_PRESENTATION] = [""]
        status = self.presentation_status.get()
        if status is not None:
            view[e.PRESENTATION_STATUS_INFO] = [status]
        if self.presentation and self.live is None:
            view[e.QUICK_POLL] = [""]
        if ui.pane_open:
            view[e.POLL_PANE_TITLE] = ["Polling"]
            view[e.POLL_QUESTION_AREA] = [ui.question]
            view[e.USER_RESPONSE_BUTTON] = [""]
            view[e.ANONYMOUS_POLL] = [""]
            if not ui.letters_chosen and not ui.free_text:
                view[e.POLL_LETTER_ALTERNATIVES] = [""]
            if ui.letters_chosen and not ui.free_text:
                view[e.POLL_OPTION_ITEM] = list(ui.draft)
                view[e.DELETE_POLL_OPTION] = ["" for _ in ui.draft]
                view[e.ADD_POLL_ITEM] = [""]
            if ui.letters_chosen or ui.free_text:
                view[e.START_POLL] = [""]
        if self.live is not None:
            view[e.POLL_MENU_BUTTON] = [""]
            view[e.CANCEL_POLL_BUTTON] = [""]
            view[e.PUBLISH_POLLING_LABEL] = [""]
            answers = self.received_answers.get()
            if answers and (self.leak_attribution or not self.live.anonymous):
                view[e.RECEIVED_ANSWER] = list(answers)
        if self.published is not None:
            view[e.RESTART_POLL] = [""]
            if self._results_render(self.published):
                view[e.POLL_RESULTS] = [""]
        if ui.chat_open and self.chat_message.get():
            view[e.CHAT_POLL_MESSAGE_TEXT] = ["Poll results"]
        return view

    def _render_attendee(self) -> dict[str, list[str]]:
        view: dict[str, list[str]] = {e.WHITEBOARD: [""]}
        poll: LivePoll | None = self.attendee_poll.get()
        if poll is not None and self.attendee_answered != poll.poll_id:
            view[e.POLLING_CONTAINER] = [""]
            if poll.free_text:
                view[e.POLL_ANSWER_OPTION_INPUT] = [self.attendee_typed]
                view[e.POLL_SUBMIT_ANSWER] = [""]
            else:
                options = list(poll.choices)
                if self.garble_last_option and options:
                    options[-1] = options[-1].upper()
                view[e.POLL_ANSWER_OPTION_BUTTON] = [f"  {o}\n" for o in options]
        if self.chat_message.get():
            view[e.CHAT_POLL_MESSAGE_TEXT] = ["Poll results"]
        if self.attendee_results.get():
            view[e.POLL_RESULTS] = [""]
        return view

    def _results_render(self, poll: LivePoll) -> bool:
        return not (self.results_bound_to_slide and poll.presentation != self.presentation)

    # Interaction

    def click(self, role: SessionRole, target: str, index: int = 0) -> None:
        if role == SessionRole.MODERATOR:
            self._click_moderator(target, index)
        else:
            self._click_attendee(target, index)

    def _click_moderator(self, target: str, index: int) -> None:
        ui = self.mod
        match target:
            case e.ACTIONS:
                ui.actions_open = True
            case e.POLLING:
                ui.actions_open = False
                ui.pane_open = True
                ui.letters_chosen = False
                ui.free_text = False
                ui.anonymous = False
                ui.question = ""
                ui.draft = []
            case e.POLL_LETTER_ALTERNATIVES:
                ui.letters_chosen = True
                ui.draft = list(self.initial_choices)
            case e.ADD_POLL_ITEM:
                ui.draft.append("")
            case e.DELETE_POLL_OPTION:
                del ui.draft[index]
            case e.USER_RESPONSE_BUTTON:
                ui.free_text = True
            case e.START_POLL:
                choices = () if ui.free_text else tuple(ui.draft)
                self._go_live(choices, anonymous=ui.anonymous, free_text=ui.free_text)
                ui.pane_open = False
            case e.QUICK_POLL:
                self._go_live(SLIDE_CHOICES, anonymous=False, free_text=False)
            case e.CANCEL_POLL_BUTTON:
                self.live = None
                if not self.ignore_cancel_for_attendee:
                    self.attendee_poll.set(None, self.delay)
            case e.PUBLISH_POLLING_LABEL:
                self.published = self.live
                self.live = None
                self.attendee_poll.set(None, self.delay)
                self.chat_message.set(True, self.delay)
                if self._results_render(self.published):
                    self.attendee_results.set(True, self.delay)
            case e.CHAT_BUTTON:
                ui.chat_open = True
            case e.MANAGE_PRESENTATIONS:
                ui.actions_open = False
                ui.upload_open = True
                self.presentation_status.set(None, 0)
            case e.CONFIRM_MANAGE_PRESENTATION:
                if ui.upload_file is None:
                    raise AssertionError("Confirmed upload without a file")
                ui.upload_open = False
                ui.upload_file = None
                self.presentation_status.set("Converting file", 0)
                self.presentation_status.set(e.CONVERSION_DONE_MESSAGE, self.conversion_delay)
                self.presentation += 1
            case _:
                raise AssertionError(f"Moderator clicked unhandled target {target}")

    def _click_attendee(self, target: str, index: int) -> None:
        poll: LivePoll = self.attendee_poll.get()
        match target:
            case e.POLL_ANSWER_OPTION_BUTTON:
                self._answer(poll, poll.choices[index])
            case e.POLL_SUBMIT_ANSWER:
                self._answer(poll, self.attendee_typed)
            case _:
                raise AssertionError(f"Attendee clicked unhandled target {target}")

    def _answer(self, poll: LivePoll, answer: str) -> None:
        self.attendee_answered = poll.poll_id
        self.received_answers.set((answer,), self.delay)

    def _go_live(self, choices: tuple[str, ...], anonymous: bool, free_text: bool) -> None:
        if self.live is not None:
            raise AssertionError("Started a poll while another is live")
        self._poll_seq += 1
        self.polls_started += 1
        self.live = LivePoll(
            poll_id=self._poll_seq,
            choices=choices,
            anonymous=anonymous,
            free_text=free_text,
            presentation=self.presentation,
        )
        self.published = None
        self.attendee_typed = ""
        self.received_answers.set((), 0)
        self.attendee_poll.set(self.live, self.delay)

    def fill(self, role: SessionRole, target: str, index: int, text: str) -> None:
        match (role, target):
            case (SessionRole.MODERATOR, e.POLL_OPTION_ITEM):
                self.mod.draft[index] = text
            case (SessionRole.MODERATOR, e.POLL_QUESTION_AREA):
                self.mod.question = text
            case (SessionRole.ATTENDEE, e.POLL_ANSWER_OPTION_INPUT):
                self.attendee_typed = text
            case _:
                raise AssertionError(f"Unhandled fill on {target}")

    def set_checked(self, role: SessionRole, target: str, checked: bool) -> None:
        if (role, target) != (SessionRole.MODERATOR, e.ANONYMOUS_POLL):
            raise AssertionError(f"Unhandled checkbox {target}")
        self.mod.anonymous = checked


class FakeLocator:
    """Locator over a fake session's rendered matches."""

    def __init__(self, session: FakeSession, target: str, index: int = 0) -> None:
        self._session = session
        self._target = target
        self._index = index

    @property
    def last(self) -> FakeLocator:
        return FakeLocator(self._session, self._target, -1)

    def _position(self) -> int:
        count = len(self._session.rendered(self._target))
        position = self._index if self._index >= 0 else count + self._index
        if not 0 <= position < count:
            raise PlaywrightTimeoutError(f"No element for {self._target}")
        return position

    async def count(self) -> int:
        return len(self._session.rendered(self._target))

    async def fill(self, text: str) -> None:
        self._session.calls.append(("fill", self._target, text))
        self._session.meeting.fill(self._session.role, self._target, self._position(), text)

    async def click(self) -> None:
        self._session.calls.append(("click", self._target))
        self._session.meeting.click(self._session.role, self._target, self._position())

    async def set_checked(self, checked: bool) -> None:
        self._session.calls.append(("check", self._target))
        self._session.meeting.set_checked(self._session.role, self._target, checked)

    async def text_content(self) -> str:
        return self._session.rendered(self._target)[self._position()]


class FakeSession:
    """In-memory stand-in for ``MeetingSession``."""

    def __init__(
        self,
        meeting: FakeMeeting,
        role: SessionRole,
        meeting_id: str | None = MEETING_ID,
        timeout_ms: int = 1000,
    ) -> None:
        self.meeting = meeting
        self.role = role
        self.meeting_id = meeting_id
        self.identity = JoinIdentity(full_name=str(role).title(), meeting_id=meeting_id)
        self.calls: list[tuple[Any, ...]] = []
        self.screenshots: list[Path] = []
        self._timeout_ms = timeout_ms

    def rendered(self, target: str) -> list[str]:
        return self.meeting.render(self.role).get(target, [])

    async def wait_for_selector(self, target: str, timeout_ms: int | None = None) -> None:
        deadline = time.monotonic() + (timeout_ms or self._timeout_ms) / 1000
        while not self.rendered(target):
            if time.monotonic() >= deadline:
                raise PlaywrightTimeoutError(f"Timeout waiting for {target}")
            await asyncio.sleep(0.005)
        self.calls.append(("wait", target))

    async def wait_and_click(self, target: str, timeout_ms: int | None = None) -> None:
        await self.wait_for_selector(target, timeout_ms)
        self.calls.append(("click", target))
        self.meeting.click(self.role, target)

    async def type(self, target: str, text: str) -> None:
        await self.wait_for_selector(target)
        self.calls.append(("type", target, text))
        self.meeting.fill(self.role, target, 0, text)

    async def check_element(self, target: str) -> bool:
        self.calls.append(("probe", target))
        return bool(self.rendered(target))

    async def get_selector_count(self, target: str) -> int:
        return len(self.rendered(target))

    async def get_text(self, target: str, index: int = 0) -> str | None:
        matches = self.rendered(target)
        position = index if index >= 0 else len(matches) + index
        if not 0 <= position < len(matches):
            return None
        return matches[position]

    def get_locator(self, target: str) -> FakeLocator:
        return FakeLocator(self, target)

    async def set_input_files(self, target: str, path: Path) -> None:
        await self.wait_for_selector(target)
        self.calls.append(("upload", target, path.name))
        self.meeting.mod.upload_file = path

    async def screenshot(self, path: Path) -> None:
        path.write_bytes(b"\x89PNG")
        self.screenshots.append(path)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test artifacts."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir: Path) -> PollQASettings:
    """Fast settings: short bounds and tight polling."""
    return PollQASettings(
        server_url="https://meet.example.com/bigbluebutton",
        shared_secret="test-secret",
        element_wait_ms=1000,
        element_wait_longer_ms=1500,
        element_wait_extra_long_ms=2000,
        poll_interval_ms=5,
        poll_backoff=1.5,
        max_poll_interval_ms=50,
        artifacts_dir=temp_dir / "artifacts",
    )


@pytest.fixture
def meeting() -> FakeMeeting:
    """A meeting with a 50ms propagation delay."""
    return FakeMeeting(delay=0.05)


@pytest.fixture
def moderator(meeting: FakeMeeting) -> FakeSession:
    return FakeSession(meeting, SessionRole.MODERATOR)


@pytest.fixture
def attendee(meeting: FakeMeeting) -> FakeSession:
    return FakeSession(meeting, SessionRole.ATTENDEE)


@pytest.fixture
def ctx(moderator: FakeSession, attendee: FakeSession) -> ScenarioContext:
    return ScenarioContext(moderator=moderator, attendee=attendee)


@pytest.fixture
def assertions(settings: PollQASettings) -> ConvergenceAssertions:
    return ConvergenceAssertions(settings)


@pytest.fixture
def scenarios(assertions: ConvergenceAssertions, settings: PollQASettings) -> PollingScenarios:
    return PollingScenarios(assertions, settings)


class FakeContextFactory:
    """
    Stand-in for ``open_scenario_context``: each call opens a fresh meeting.

    Fault switches set via ``faults`` apply to every meeting opened.
    """

    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.faults: dict[str, bool] = {}
        self.fail_with: Exception | None = None
        self.meetings: list[FakeMeeting] = []
        self.sessions: list[FakeSession] = []

    @asynccontextmanager
    async def __call__(self, browser: Any, settings: PollQASettings) -> AsyncIterator[ScenarioContext]:
        if self.fail_with is not None:
            raise self.fail_with
        meeting = FakeMeeting(delay=self.delay)
        for name, value in self.faults.items():
            setattr(meeting, name, value)
        self.meetings.append(meeting)
        moderator = FakeSession(meeting, SessionRole.MODERATOR)
        attendee = FakeSession(meeting, SessionRole.ATTENDEE)
        self.sessions.extend([moderator, attendee])
        yield ScenarioContext(moderator=moderator, attendee=attendee)


@pytest.fixture
def context_factory() -> FakeContextFactory:
    return FakeContextFactory()
