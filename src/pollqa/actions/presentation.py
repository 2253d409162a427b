"""Presentation upload onto the shared whiteboard."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pollqa import elements as e
from pollqa.assertions.waits import TimedOut, poll_until
from pollqa.errors import ConvergenceTimeout

if TYPE_CHECKING:
    from pollqa.config import PollQASettings
    from pollqa.session.handle import SessionHandle

logger = structlog.get_logger(__name__)


async def upload_presentation(
    session: SessionHandle,
    file_name: str,
    settings: PollQASettings,
    timeout_ms: int | None = None,
) -> None:
    """
    Upload ``settings.media_dir / file_name`` and wait until conversion is done.

    Returns only once the status toast reports the new slide as the current
    presentation; a toast still showing conversion progress keeps waiting.

    Raises:
        FileNotFoundError: If the slide file does not exist
        ConvergenceTimeout: If conversion does not finish within the bound
    """
    path = settings.media_dir / file_name
    if not path.is_file():
        raise FileNotFoundError(f"Presentation file not found: {path}")

    timeout = settings.element_wait_extra_long_ms if timeout_ms is None else timeout_ms
    logger.info("Uploading presentation", role=str(session.role), file=file_name)
    await session.wait_and_click(e.ACTIONS)
    await session.wait_and_click(e.MANAGE_PRESENTATIONS)
    await session.set_input_files(e.FILE_UPLOAD, path)
    await session.wait_and_click(e.CONFIRM_MANAGE_PRESENTATION)

    result = await poll_until(
        lambda: session.get_text(e.PRESENTATION_STATUS_INFO),
        settings.wait_policy(timeout),
        accept=lambda text: text is not None and e.CONVERSION_DONE_MESSAGE in text,
    )
    if isinstance(result, TimedOut):
        raise ConvergenceTimeout(
            "Presentation conversion did not finish",
            target=e.PRESENTATION_STATUS_INFO,
            role=str(session.role),
            expected=e.CONVERSION_DONE_MESSAGE,
            actual=result.last_value,
            timeout_ms=timeout,
        )
    logger.debug("Presentation ready", file=file_name, elapsed_ms=result.elapsed_ms)
