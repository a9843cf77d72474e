"""Debounced value source for keystroke-driven inputs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The subset of ``asyncio.AbstractEventLoop`` the debouncer relies on."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class DebouncedValue:
    """Turn a rapidly changing input into a stably changing value.

    ``push`` records the latest input and (re)starts the quiescence timer.
    When ``delay_seconds`` pass without another push, the latest input becomes
    the settled ``value`` and ``on_settled`` is called with it. Intermediate
    inputs are never emitted, and an input equal to the settled value emits
    nothing.
    """

    def __init__(
        self,
        initial: str,
        delay_seconds: float,
        on_settled: Callable[[str], None],
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.value = initial
        self.pending = initial
        self._delay = max(0.0, delay_seconds)
        self._on_settled = on_settled
        self._scheduler = scheduler
        self._timer: TimerHandle | None = None

    @property
    def is_pending(self) -> bool:
        return self._timer is not None

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            return asyncio.get_running_loop()
        return self._scheduler

    def push(self, value: str) -> None:
        """Record a new input and restart the quiescence window."""
        self.pending = value
        # Atomic swap: capture and clear before cancelling
        old_timer = self._timer
        self._timer = None
        if old_timer is not None:
            old_timer.cancel()
        self._timer = self._get_scheduler().call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._emit()

    def _emit(self) -> None:
        if self.pending == self.value:
            return
        self.value = self.pending
        logger.debug("Debounced value settled: %r", self.value)
        self._on_settled(self.value)

    def flush(self) -> None:
        """Settle the pending input now instead of waiting for the timer."""
        self.cancel()
        self._emit()

    def cancel(self) -> None:
        """Drop the pending timer; the pending input is kept but not emitted."""
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    def reset(self, value: str = "") -> None:
        """Set both the pending and settled value without emitting."""
        self.cancel()
        self.value = value
        self.pending = value


__all__ = [
    "DebouncedValue",
    "Scheduler",
    "TimerHandle",
]
