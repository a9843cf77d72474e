"""Runtime plumbing shared by the headless screens.

Screens never render anything. They report through a :class:`Notifier` and
start background work through a :class:`TaskTracker`; whatever presentation
layer owns the screen supplies both.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from calcana_sync.models import ClientConfig, Severity

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Transient user-visible notices.

    Same call shape as ``textual.app.App.notify`` so an app can be passed in
    directly.
    """

    def notify(
        self,
        message: str,
        *,
        title: str = "",
        severity: Severity = "information",
        timeout: float | None = None,
    ) -> None: ...


@dataclass(slots=True)
class Notice:
    message: str
    title: str = ""
    severity: Severity = "information"


@dataclass(slots=True)
class NoticeLog:
    """Notifier that keeps every notice, optionally forwarding each one."""

    notices: list[Notice] = field(default_factory=list)
    on_notice: Callable[[Notice], None] | None = None

    def notify(
        self,
        message: str,
        *,
        title: str = "",
        severity: Severity = "information",
        timeout: float | None = None,
    ) -> None:
        notice = Notice(message=message, title=title, severity=severity)
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)

    def messages(self, severity: Severity | None = None) -> list[str]:
        return [n.message for n in self.notices if severity is None or n.severity == severity]

    def clear(self) -> None:
        self.notices.clear()


class TaskTracker:
    """Keeps strong references to fire-and-forget tasks and logs their crashes."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def track(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[Any]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every tracked task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel and reap all tracked tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


@dataclass(slots=True)
class ScreenContext:
    """Everything a screen needs from its host.

    ``scheduler`` is anything with an asyncio-style ``call_later``; ``None``
    means the running event loop.
    """

    services: Any  # calcana_sync.services.interfaces.AppServices
    config: ClientConfig
    notifier: Notifier
    client: httpx.AsyncClient | None = None
    tasks: TaskTracker = field(default_factory=TaskTracker)
    scheduler: Any = None


__all__ = [
    "Notice",
    "NoticeLog",
    "Notifier",
    "ScreenContext",
    "TaskTracker",
]
