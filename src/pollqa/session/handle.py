"""
Browser session handle for one meeting participant.

``SessionHandle`` is the surface the actions and assertions depend on.
``MeetingSession`` implements it over a Playwright page: it joins a meeting
and exposes waiting primitives (wait, click, type) alongside non-waiting
probes (existence, count, text) that convergence assertions poll.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import structlog
from playwright.async_api import Error as PlaywrightError

from pollqa import elements as e
from pollqa.config import PollQASettings
from pollqa.errors import SessionSetupError
from pollqa.session.identity import JoinIdentity, SessionRole
from pollqa.session.meeting_api import MeetingApi, new_meeting_id

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = structlog.get_logger(__name__)

CHECK_ELEMENT_SCRIPT = "selector => document.querySelectorAll(selector).length >= 1"


@runtime_checkable
class SessionHandle(Protocol):
    """Primitives consumed from one live participant session."""

    role: SessionRole
    identity: JoinIdentity | None
    meeting_id: str | None

    async def wait_for_selector(self, target: str, timeout_ms: int | None = None) -> None: ...

    async def wait_and_click(self, target: str, timeout_ms: int | None = None) -> None: ...

    async def type(self, target: str, text: str) -> None: ...

    async def check_element(self, target: str) -> bool: ...

    async def get_selector_count(self, target: str) -> int: ...

    async def get_text(self, target: str, index: int = 0) -> str | None: ...

    def get_locator(self, target: str) -> Any: ...

    async def set_input_files(self, target: str, path: Path) -> None: ...

    async def screenshot(self, path: Path) -> None: ...


class MeetingSession:
    """
    A participant's browser page joined to a meeting.

    Waiting primitives raise Playwright's ``TimeoutError`` when their bound
    elapses; probes never wait.
    """

    def __init__(
        self,
        page: Page,
        settings: PollQASettings,
        api: MeetingApi | None = None,
    ) -> None:
        self.page = page
        self.role = SessionRole.ATTENDEE
        self.identity: JoinIdentity | None = None
        self.meeting_id: str | None = None
        self._settings = settings
        self._api = api or MeetingApi(settings)
        self._default_timeout = settings.element_wait_ms
        self._log = logger.bind(component="session")

    async def init(
        self,
        is_moderator: bool,
        with_audio: bool,
        identity: JoinIdentity,
    ) -> Self:
        """
        Join the meeting named by ``identity``.

        A moderator without a meeting id creates a new meeting; an attendee
        must be given the moderator's meeting id.

        Raises:
            SessionSetupError: If the meeting cannot be created or joined
        """
        self.role = SessionRole.MODERATOR if is_moderator else SessionRole.ATTENDEE
        self._log = self._log.bind(role=str(self.role))

        meeting_id = identity.meeting_id
        if meeting_id is None:
            if not is_moderator:
                raise SessionSetupError(
                    "Attendee needs the moderator's meeting id",
                    role=str(self.role),
                )
            meeting_id = await self._api.create_meeting(new_meeting_id())

        self.identity = identity.model_copy(update={"meeting_id": meeting_id})
        self.meeting_id = meeting_id
        join_url = self._api.join_url(identity.full_name, meeting_id, is_moderator)

        self._log.info("Joining meeting", meeting_id=meeting_id, full_name=identity.full_name)
        try:
            await self.page.goto(join_url, timeout=self._settings.element_wait_extra_long_ms)
            if with_audio:
                await self.wait_and_click(
                    e.LISTEN_ONLY_BUTTON, self._settings.element_wait_extra_long_ms
                )
                await self.wait_for_selector(
                    e.AUDIO_JOINED, self._settings.element_wait_extra_long_ms
                )
            else:
                await self.wait_and_click(
                    e.CLOSE_AUDIO_BUTTON, self._settings.element_wait_extra_long_ms
                )
        except PlaywrightError as exc:
            raise SessionSetupError(
                "Failed to join meeting",
                role=str(self.role),
                details={"meeting_id": meeting_id, "error": str(exc)},
            ) from exc
        return self

    async def wait_for_selector(self, target: str, timeout_ms: int | None = None) -> None:
        await self.page.wait_for_selector(target, timeout=timeout_ms or self._default_timeout)

    async def wait_and_click(self, target: str, timeout_ms: int | None = None) -> None:
        await self.wait_for_selector(target, timeout_ms)
        await self.page.locator(target).first.click(timeout=timeout_ms or self._default_timeout)

    async def type(self, target: str, text: str) -> None:
        await self.wait_for_selector(target)
        await self.page.locator(target).first.fill(text)

    async def check_element(self, target: str) -> bool:
        """Non-waiting existence probe evaluated inside the page."""
        return bool(await self.page.evaluate(CHECK_ELEMENT_SCRIPT, target))

    async def get_selector_count(self, target: str) -> int:
        return await self.page.locator(target).count()

    async def get_text(self, target: str, index: int = 0) -> str | None:
        """Text of the ``index``-th match (negative counts from the end), or None."""
        locator = self.page.locator(target)
        count = await locator.count()
        position = index if index >= 0 else count + index
        if not 0 <= position < count:
            return None
        return await locator.nth(position).text_content()

    def get_locator(self, target: str) -> Locator:
        return self.page.locator(target)

    async def set_input_files(self, target: str, path: Path) -> None:
        await self.wait_for_selector(target)
        await self.page.set_input_files(target, str(path))

    async def screenshot(self, path: Path) -> None:
        await self.page.screenshot(path=str(path), full_page=True)
