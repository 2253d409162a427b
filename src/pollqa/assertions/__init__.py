"""
Convergence assertions and the bounded wait primitive they are built on.
"""

from pollqa.assertions.convergence import ConvergenceAssertions
from pollqa.assertions.waits import Found, TimedOut, WaitResult, poll_until

__all__ = [
    "ConvergenceAssertions",
    "Found",
    "TimedOut",
    "WaitResult",
    "poll_until",
]
