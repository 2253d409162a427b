"""
Convergence assertions over live sessions.

State observed on one session may be mutated by the other session with an
unknown, bounded propagation delay, so every check except
``snapshot_absence`` polls until the expected state appears or its bound
elapses:
- expect_present / expect_absent: existence converges
- expect_text: exact rendered text converges
- expect_count / read_count: cardinality of matching elements
- snapshot_absence: a single non-waiting probe, for proving that something
  is not there at the moment of the check
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pollqa.assertions.waits import Found, TimedOut, poll_until
from pollqa.errors import AssertionMismatch, ConvergenceTimeout

if TYPE_CHECKING:
    from pollqa.config import PollQASettings
    from pollqa.session.handle import SessionHandle

logger = structlog.get_logger(__name__)


class ConvergenceAssertions:
    """Waiting checks against a session's currently rendered state."""

    def __init__(self, settings: PollQASettings) -> None:
        self._settings = settings
        self._log = logger.bind(component="convergence")

    def _timeout(self, timeout_ms: int | None) -> int:
        return self._settings.element_wait_ms if timeout_ms is None else timeout_ms

    async def expect_present(
        self,
        session: SessionHandle,
        target: str,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Wait until ``target`` exists in the session.

        Raises:
            ConvergenceTimeout: If it never appears within the bound
        """
        timeout = self._timeout(timeout_ms)
        result = await poll_until(
            lambda: session.check_element(target),
            self._settings.wait_policy(timeout),
        )
        if isinstance(result, TimedOut):
            self._log.error("Element never appeared", role=str(session.role), target=target)
            raise ConvergenceTimeout(
                "Element did not appear",
                target=target,
                role=str(session.role),
                timeout_ms=timeout,
                details=_details(result),
            )
        self._log.debug(
            "Element present",
            role=str(session.role),
            target=target,
            elapsed_ms=result.elapsed_ms,
        )

    await_presence = expect_present

    async def expect_absent(
        self,
        session: SessionHandle,
        target: str,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Wait until ``target`` has been removed from the session.

        The target may still be rendered right after the triggering action;
        only its continued presence past the bound is a failure.

        Raises:
            ConvergenceTimeout: If it is still present when the bound elapses
        """
        timeout = self._timeout(timeout_ms)
        result = await poll_until(
            lambda: session.check_element(target),
            self._settings.wait_policy(timeout),
            accept=lambda present: present is False,
        )
        if isinstance(result, TimedOut):
            self._log.error("Element was not removed", role=str(session.role), target=target)
            raise ConvergenceTimeout(
                "Element was not removed",
                target=target,
                role=str(session.role),
                timeout_ms=timeout,
                details=_details(result),
            )
        self._log.debug(
            "Element removed",
            role=str(session.role),
            target=target,
            elapsed_ms=result.elapsed_ms,
        )

    async def expect_text(
        self,
        session: SessionHandle,
        target: str,
        expected: str,
        index: int = 0,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Wait for ``target`` and require its rendered text to equal ``expected``.

        Args:
            index: Which match to read; -1 is the last one

        Raises:
            ConvergenceTimeout: If the target never appears
            AssertionMismatch: If it appears but its text never matches
        """
        timeout = self._timeout(timeout_ms)
        result = await poll_until(
            lambda: session.get_text(target, index),
            self._settings.wait_policy(timeout),
            accept=lambda text: text is not None and text.strip() == expected,
        )
        if isinstance(result, Found):
            return

        actual = result.last_value
        if actual is None:
            raise ConvergenceTimeout(
                "Element did not appear",
                target=target,
                role=str(session.role),
                timeout_ms=timeout,
                details=_details(result),
            )
        self._log.error(
            "Text mismatch",
            role=str(session.role),
            target=target,
            expected=expected,
            actual=actual,
        )
        raise AssertionMismatch(
            "Rendered text differs",
            target=target,
            role=str(session.role),
            expected=expected,
            actual=actual.strip(),
            timeout_ms=timeout,
        )

    async def read_count(
        self,
        session: SessionHandle,
        target: str,
        container: str | None = None,
        timeout_ms: int | None = None,
    ) -> int:
        """Wait for ``container`` (or ``target``) to be present, then count ``target`` afresh."""
        await self.expect_present(session, container or target, timeout_ms)
        return await session.get_selector_count(target)

    async def expect_count(
        self,
        session: SessionHandle,
        target: str,
        expected: int,
        container: str | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Wait for the container, then for the number of ``target`` matches to equal ``expected``.

        Raises:
            ConvergenceTimeout: If the container never appears
            AssertionMismatch: If the count never reaches ``expected``
        """
        timeout = self._timeout(timeout_ms)
        await self.expect_present(session, container or target, timeout)
        result = await poll_until(
            lambda: session.get_selector_count(target),
            self._settings.wait_policy(timeout),
            accept=lambda count: count == expected,
        )
        if isinstance(result, TimedOut):
            self._log.error(
                "Count mismatch",
                role=str(session.role),
                target=target,
                expected=expected,
                actual=result.last_value,
            )
            raise AssertionMismatch(
                "Element count differs",
                target=target,
                role=str(session.role),
                expected=expected,
                actual=result.last_value,
                timeout_ms=timeout,
            )

    async def snapshot_absence(self, session: SessionHandle, target: str) -> None:
        """
        Probe once, without waiting, that ``target`` is absent right now.

        Raises:
            AssertionMismatch: If the target is currently present
        """
        present = await session.check_element(target)
        if present:
            self._log.error("Element unexpectedly present", role=str(session.role), target=target)
            raise AssertionMismatch(
                "Element is present",
                target=target,
                role=str(session.role),
                expected="absent",
                actual="present",
            )


def _details(result: TimedOut) -> dict[str, object]:
    details: dict[str, object] = {
        "attempts": result.attempts,
        "elapsed_ms": result.elapsed_ms,
    }
    if result.last_error is not None:
        details["last_error"] = str(result.last_error)
    return details
