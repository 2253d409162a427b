"""Failure types raised while driving a scenario."""

from __future__ import annotations

from typing import Any


class ScenarioFailure(Exception):
    """
    Base class for every failure that ends a scenario.

    Carries enough context to identify the element or state involved and,
    for mismatches, the expected and actual values.
    """

    def __init__(
        self,
        message: str,
        target: str | None = None,
        role: str | None = None,
        expected: Any = None,
        actual: Any = None,
        timeout_ms: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.target = target
        self.role = role
        self.expected = expected
        self.actual = actual
        self.timeout_ms = timeout_ms
        self.details = details or {}
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.role:
            parts.append(f"session={self.role}")
        if self.target:
            parts.append(f"target={self.target}")
        if self.expected is not None or self.actual is not None:
            parts.append(f"expected={self.expected!r}")
            parts.append(f"actual={self.actual!r}")
        if self.timeout_ms is not None:
            parts.append(f"timeout_ms={self.timeout_ms}")
        return " | ".join(parts)


class ConvergenceTimeout(ScenarioFailure):
    """A waited-for element or state never appeared within its bound."""


class AssertionMismatch(ScenarioFailure):
    """An element is present but its value or count differs from the expectation."""


class SessionSetupError(ScenarioFailure):
    """Session initialization or meeting join failed."""
