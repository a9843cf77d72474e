"""Dependent filter options keyed on a parent filter's value."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from calcana_sync.action_messages import build_actionable_error
from calcana_sync.errors import REMOTE_FAILURES, classify_remote_error
from calcana_sync.ui_runtime import Notifier

logger = logging.getLogger(__name__)

FetchOptions = Callable[[str], Awaitable[list]]


class FilterCascade:
    """Keeps a child select's options in step with its parent select.

    Whenever the parent changes the child selection is cleared, because it
    cannot be assumed valid under the new parent. An unset parent (empty or
    one of ``parent_unset_values``) forces an empty option list; a concrete
    parent triggers a fresh option fetch. Options are never cached across
    parent values, and responses for a parent value that has since changed
    are dropped.
    """

    def __init__(
        self,
        *,
        fetch_options: FetchOptions,
        notifier: Notifier,
        title: str,
        option_noun: str,
        option_id: Callable[[Any], int],
        parent_unset_values: Iterable[str] = ("",),
        child_unset_values: Iterable[str] = ("",),
    ) -> None:
        self._fetch_options = fetch_options
        self._notifier = notifier
        self._title = title
        self._option_noun = option_noun
        self._option_id = option_id
        self._parent_unset = frozenset(parent_unset_values) | {""}
        self._child_unset = frozenset(child_unset_values) | {""}
        self._request_seq = 0
        self.parent_value = ""
        self.child_value = ""
        self.options: list = []
        self.loading = False

    @property
    def parent_is_set(self) -> bool:
        return self.parent_value not in self._parent_unset

    @property
    def child_enabled(self) -> bool:
        """The child select is only usable under a concrete parent."""
        return self.parent_is_set

    async def set_parent(self, value: str) -> bool:
        """Apply a parent change. Returns whether a fresh option list was applied."""
        self.parent_value = value
        self.child_value = ""
        self.options = []
        self._request_seq += 1
        seq = self._request_seq

        if not self.parent_is_set:
            self.loading = False
            return False

        self.loading = True
        try:
            options = await self._fetch_options(value)
        except REMOTE_FAILURES as exc:
            if seq != self._request_seq:
                return False
            self.loading = False
            error = classify_remote_error(exc, f"the server did not return the {self._option_noun}")
            self._notifier.notify(
                build_actionable_error(
                    f"load {self._option_noun}",
                    why=error.message,
                    next_step="pick the parent again to retry",
                ),
                title=self._title,
                severity="error",
            )
            logger.warning("Loading %s for %r failed: %s", self._option_noun, value, exc)
            return False

        if seq != self._request_seq:
            logger.debug("Discarded %s for superseded parent %r", self._option_noun, value)
            return False
        self.loading = False
        self.options = list(options)
        return True

    def set_child(self, value: str) -> None:
        """Select a child option (or an unset/sentinel value)."""
        if value in self._child_unset:
            self.child_value = value
            return
        if not self.parent_is_set:
            raise ValueError("Cannot select a dependent option without a parent selection")
        if not any(str(self._option_id(option)) == value for option in self.options):
            raise ValueError(f"{value!r} is not one of the loaded {self._option_noun}")
        self.child_value = value

    def reset(self) -> None:
        """Clear parent, child and options without fetching."""
        self._request_seq += 1
        self.parent_value = ""
        self.child_value = ""
        self.options = []
        self.loading = False


__all__ = [
    "FetchOptions",
    "FilterCascade",
]
