"""Cancellation tokens and timeout races for async pipelines."""

import asyncio
import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Opaque marker for one async operation.

    Completion handlers check `cancelled` before writing shared state; a
    result produced under a cancelled token is dropped.
    """

    __slots__ = ("label", "_cancelled")

    def __init__(self, label: str = "") -> None:
        self.label = label
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancellationToken({self.label!r}, {state})"


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str = "operation") -> T:
    """
    Race an awaitable against a timer.

    The loser is cancelled, so a late result can never be observed.

    Args:
        awaitable: Operation to run.
        seconds: Upper bound in seconds.
        label: Name used in the timeout message.

    Returns:
        The operation's result.

    Raises:
        TimeoutError: If the timer settles first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{label} timed out after {seconds:.0f}s")
        raise TimeoutError(f"{label} timed out after {seconds:.0f}s") from None
