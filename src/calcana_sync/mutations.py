"""Confirmation-gated mutation executor.

Per attempt the executor walks a small state machine::

    Idle ──request_action──▶ Staged ──confirm──▶ Executing ──settle──▶ Idle
                               │
                               └──cancel──▶ Idle   (no remote call)

The phase is a tagged variant (:class:`Idle`, :class:`Staged`,
:class:`Executing`) rather than a set of booleans, so "dialog open but no
target" or "two mutations running" cannot be represented. A remote mutating
call is issued only from :meth:`MutationExecutor.confirm`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from calcana_sync.action_messages import build_actionable_error
from calcana_sync.errors import (
    REMOTE_FAILURES,
    ConflictError,
    NotFoundError,
    RemoteError,
    classify_remote_error,
)
from calcana_sync.ui_runtime import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PendingAction:
    """The one action waiting for (or undergoing) execution."""

    kind: str
    target_id: int | None
    target_label: str
    payload: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Staged:
    action: PendingAction


@dataclass(frozen=True, slots=True)
class Executing:
    action: PendingAction


MutationPhase = Idle | Staged | Executing
IDLE = Idle()


@dataclass(frozen=True, slots=True)
class MutationSpec:
    """How one kind of mutation runs and how its success is reconciled.

    ``not_found_is_removed`` marks list-shrinking operations for which a 404
    means the target is already gone and counts as success.
    """

    kind: str
    execute: Callable[[PendingAction], Awaitable[Any]]
    reconcile: Callable[[PendingAction, Any], Awaitable[None]]
    success_message: Callable[[PendingAction], str]
    failure_action: str
    failure_next_step: str = "try again"
    conflict_message: Callable[[PendingAction], str] | None = None
    not_found_is_removed: bool = False


@dataclass(frozen=True, slots=True)
class MutationOutcome:
    action: PendingAction
    ok: bool
    result: Any = None
    error: RemoteError | None = None


class MutationExecutor:
    """Stages, confirms, executes and reconciles mutations one at a time."""

    def __init__(self, *, specs: Iterable[MutationSpec], notifier: Notifier, title: str) -> None:
        self._specs = {spec.kind: spec for spec in specs}
        self._notifier = notifier
        self._title = title
        self.phase: MutationPhase = IDLE
        self.last_outcome: MutationOutcome | None = None

    @property
    def pending(self) -> PendingAction | None:
        """The staged or executing action, if any."""
        if isinstance(self.phase, (Staged, Executing)):
            return self.phase.action
        return None

    @property
    def is_staged(self) -> bool:
        return isinstance(self.phase, Staged)

    @property
    def is_executing(self) -> bool:
        return isinstance(self.phase, Executing)

    def spec(self, kind: str) -> MutationSpec:
        return self._specs[kind]

    def request_action(
        self,
        kind: str,
        target_id: int | None,
        target_label: str,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """Stage an action for confirmation. Never touches the server.

        Rejected while another action is executing. A previously staged action
        is replaced.
        """
        if kind not in self._specs:
            raise ValueError(f"Unknown mutation kind {kind!r}")
        if isinstance(self.phase, Executing):
            logger.debug("Rejected %s on %r: %s still executing", kind, target_id, self.phase)
            return False
        if isinstance(self.phase, Staged):
            logger.debug("Replacing staged %s with %s", self.phase.action.kind, kind)
        self.phase = Staged(PendingAction(kind, target_id, target_label, payload))
        return True

    def cancel(self) -> bool:
        """Discard the staged action. Only valid while staged."""
        if not isinstance(self.phase, Staged):
            return False
        self.phase = IDLE
        return True

    async def confirm(self) -> MutationOutcome | None:
        """Execute the staged action. Returns ``None`` when nothing was staged."""
        if not isinstance(self.phase, Staged):
            logger.debug("confirm() ignored in phase %s", self.phase)
            return None
        action = self.phase.action
        spec = self._specs[action.kind]
        self.phase = Executing(action)
        try:
            outcome = await self._execute(spec, action)
        finally:
            self.phase = IDLE
        self.last_outcome = outcome
        return outcome

    async def submit(
        self,
        kind: str,
        target_id: int | None,
        target_label: str,
        payload: dict[str, Any] | None = None,
    ) -> MutationOutcome | None:
        """Stage and immediately confirm; for form submits, where the submit is the confirmation."""
        if not self.request_action(kind, target_id, target_label, payload):
            return None
        return await self.confirm()

    async def _execute(self, spec: MutationSpec, action: PendingAction) -> MutationOutcome:
        try:
            result = await spec.execute(action)
        except REMOTE_FAILURES as exc:
            error = classify_remote_error(exc, "the server rejected the request")
            if isinstance(error, NotFoundError) and spec.not_found_is_removed:
                logger.info(
                    "%s target %r already gone; treating as removed", spec.kind, action.target_id
                )
                await spec.reconcile(action, None)
                self._notifier.notify(
                    f'"{action.target_label}" was already removed.',
                    title=self._title,
                )
                return MutationOutcome(action, ok=True, error=error)

            if isinstance(error, ConflictError) and spec.conflict_message:
                message = spec.conflict_message(action)
            else:
                message = build_actionable_error(
                    spec.failure_action,
                    why=error.message,
                    next_step=spec.failure_next_step,
                )
            self._notifier.notify(message, title=self._title, severity="error")
            logger.warning("%s on %r failed: %s", spec.kind, action.target_id, exc)
            return MutationOutcome(action, ok=False, error=error)

        self._notifier.notify(spec.success_message(action), title=self._title)
        await spec.reconcile(action, result)
        return MutationOutcome(action, ok=True, result=result)


__all__ = [
    "IDLE",
    "Executing",
    "Idle",
    "MutationExecutor",
    "MutationOutcome",
    "MutationPhase",
    "MutationSpec",
    "PendingAction",
    "Staged",
]
