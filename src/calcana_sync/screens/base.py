"""Shared orchestration for the soft-deletable catalog screens (suppliers, properties)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar

from calcana_sync.action_messages import (
    build_actionable_warning,
    build_status_change_confirmation_prompt,
)
from calcana_sync.debounce import DebouncedValue
from calcana_sync.errors import ValidationError
from calcana_sync.list_query import ListQueryController
from calcana_sync.models import STATUS_ACTIVE, STATUS_OPTIONS, PageEnvelope, is_operator
from calcana_sync.mutations import MutationExecutor, MutationOutcome, MutationSpec, PendingAction
from calcana_sync.query import FilterField, ListQuery
from calcana_sync.ui_runtime import ScreenContext

logger = logging.getLogger(__name__)

# The record status criterion goes on the wire even at its default.
STATUS_FIELD = FilterField("status", "status", STATUS_ACTIVE, always_send=True)


class CatalogScreen:
    """List, search, status filter, soft delete, reactivate, create and edit.

    Subclasses name the resource and supply the item accessors and the form
    to payload translation. All remote mutations go through ``mutations``;
    list refreshes go through ``list``.
    """

    path: ClassVar[str]
    title: ClassVar[str]
    noun: ClassVar[str]
    noun_plural: ClassVar[str]
    page_size: ClassVar[int]
    parse_item: ClassVar[Callable[[Any], Any]]
    reactivate_hint: ClassVar[str] = "try again"

    def __init__(self, ctx: ScreenContext) -> None:
        self.ctx = ctx
        self.form: Any = None
        self.list = ListQueryController(
            path=self.path,
            fields=(STATUS_FIELD,),
            page_size=self.page_size,
            fetch_page=self._fetch_page,
            notifier=ctx.notifier,
            title=self.title,
            noun=self.noun,
            noun_plural=self.noun_plural,
            item_id=self.item_id,
        )
        self.search = DebouncedValue(
            "",
            ctx.config.search_debounce_seconds,
            self._on_search_settled,
            scheduler=ctx.scheduler,
        )
        self.mutations = MutationExecutor(
            specs=self._mutation_specs(),
            notifier=ctx.notifier,
            title=self.title,
        )

    # ── Resource hooks ───────────────────────────────────────────────────

    def item_id(self, item: Any) -> int:
        raise NotImplementedError

    def item_label(self, item: Any) -> str:
        return item.name

    def new_form(self, item: Any = None) -> Any:
        """Blank form, or one prefilled from ``item`` for editing."""
        raise NotImplementedError

    def build_payload(self, form: Any) -> dict[str, Any]:
        """Validate ``form`` and build the request body. Raises ``ValidationError``."""
        raise NotImplementedError

    # ── Role gating ──────────────────────────────────────────────────────

    @property
    def can_manage(self) -> bool:
        return is_operator(self.ctx.config.role)

    def can_edit(self, item: Any) -> bool:
        """Only active records are editable, and only by operators."""
        return self.can_manage and bool(getattr(item, "active", False))

    # ── List events ──────────────────────────────────────────────────────

    async def start(self) -> None:
        await self.list.refresh()

    def type_search(self, text: str) -> None:
        """Feed one keystroke's worth of search text."""
        self.search.push(text)

    def _on_search_settled(self, value: str) -> None:
        self.ctx.tasks.track(self.list.set_search(value))

    async def set_status(self, status: str) -> bool:
        if status not in STATUS_OPTIONS:
            raise ValueError(f"Unknown status {status!r}; expected one of {STATUS_OPTIONS}")
        return await self.list.set_filter("status", status)

    async def next_page(self) -> bool:
        return await self.list.next_page()

    async def previous_page(self) -> bool:
        return await self.list.previous_page()

    async def go_to_page(self, page: int) -> bool:
        return await self.list.set_page(page)

    async def _fetch_page(self, query: ListQuery) -> PageEnvelope:
        return await self.ctx.services.resources.fetch_page(
            client=self.ctx.client,
            config=self.ctx.config,
            query=query,
            parse_item=type(self).parse_item,
        )

    # ── Status changes (confirmation gated) ──────────────────────────────

    def request_deactivate(self, item_id: int) -> str | None:
        """Stage a soft delete. Returns the confirmation prompt, or ``None`` if refused."""
        return self._request_status_change("delete", item_id, must_be_active=True)

    def request_reactivate(self, item_id: int) -> str | None:
        """Stage a reactivation. Returns the confirmation prompt, or ``None`` if refused."""
        return self._request_status_change("reactivate", item_id, must_be_active=False)

    def _request_status_change(
        self, kind: str, item_id: int, *, must_be_active: bool
    ) -> str | None:
        if not self._require_operator():
            return None
        item = self.list.find_item(item_id)
        if item is None:
            logger.debug("%s %d is not on the current page", self.noun, item_id)
            return None
        if item.active is not must_be_active:
            logger.debug(
                "Refusing %s of %s %d with active=%s", kind, self.noun, item_id, item.active
            )
            return None
        label = self.item_label(item)
        if not self.mutations.request_action(kind, item_id, label):
            return None
        return build_status_change_confirmation_prompt(kind, self.noun, label)

    async def confirm(self) -> MutationOutcome | None:
        return await self.mutations.confirm()

    def cancel(self) -> bool:
        return self.mutations.cancel()

    # ── Create / edit form ───────────────────────────────────────────────

    def open_form(self, item_id: int | None = None) -> Any:
        """Open a blank form, or an edit form for an active record on this page."""
        if not self._require_operator():
            return None
        if item_id is None:
            self.form = self.new_form()
            return self.form
        item = self.list.find_item(item_id)
        if item is None or not self.can_edit(item):
            logger.debug("%s %r is not editable", self.noun, item_id)
            return None
        self.form = self.new_form(item)
        return self.form

    def close_form(self) -> None:
        self.form = None

    async def save(self) -> MutationOutcome | None:
        """Submit the open form. The submit itself is the confirmation."""
        form = self.form
        if form is None or not self._require_operator():
            return None
        try:
            payload = self.build_payload(form)
        except ValidationError as exc:
            self.ctx.notifier.notify(exc.message, title=self.title, severity="warning")
            return None
        kind = "create" if form.item_id is None else "update"
        outcome = await self.mutations.submit(kind, form.item_id, form.name.strip(), payload)
        if outcome is not None and outcome.ok:
            self.form = None
        return outcome

    # ── Mutation wiring ──────────────────────────────────────────────────

    def _mutation_specs(self) -> list[MutationSpec]:
        noun = self.noun
        cap = noun.capitalize()
        return [
            MutationSpec(
                kind="delete",
                execute=self._execute_delete,
                reconcile=self._refetch_current_page,
                success_message=lambda a: f'{cap} "{a.target_label}" deactivated.',
                failure_action=f"deactivate {noun}",
                not_found_is_removed=True,
            ),
            MutationSpec(
                kind="reactivate",
                execute=self._execute_reactivate,
                reconcile=self._refetch_current_page,
                success_message=lambda a: f'{cap} "{a.target_label}" reactivated.',
                failure_action=f"reactivate {noun}",
                failure_next_step=self.reactivate_hint,
            ),
            MutationSpec(
                kind="create",
                execute=self._execute_create,
                reconcile=self._refetch_first_page,
                success_message=lambda a: f'{cap} "{a.target_label}" created.',
                failure_action=f"save {noun}",
                failure_next_step="review the form and try again",
            ),
            MutationSpec(
                kind="update",
                execute=self._execute_update,
                reconcile=self._refetch_current_page,
                success_message=lambda a: f'{cap} "{a.target_label}" updated.',
                failure_action=f"save {noun}",
                failure_next_step="review the form and try again",
            ),
        ]

    async def _execute_delete(self, action: PendingAction) -> None:
        await self.ctx.services.resources.delete_item(
            client=self.ctx.client, config=self.ctx.config, path=self.path, item_id=action.target_id
        )

    async def _execute_reactivate(self, action: PendingAction) -> None:
        await self.ctx.services.resources.reactivate_item(
            client=self.ctx.client, config=self.ctx.config, path=self.path, item_id=action.target_id
        )

    async def _execute_create(self, action: PendingAction) -> Any:
        return await self.ctx.services.resources.create_item(
            client=self.ctx.client, config=self.ctx.config, path=self.path, payload=action.payload
        )

    async def _execute_update(self, action: PendingAction) -> Any:
        return await self.ctx.services.resources.update_item(
            client=self.ctx.client,
            config=self.ctx.config,
            path=self.path,
            item_id=action.target_id,
            payload=action.payload,
        )

    async def _refetch_current_page(self, action: PendingAction, result: Any) -> None:
        await self.list.refresh()

    async def _refetch_first_page(self, action: PendingAction, result: Any) -> None:
        await self.list.reload_first_page()

    def _require_operator(self) -> bool:
        if self.can_manage:
            return True
        self.ctx.notifier.notify(
            build_actionable_warning(
                f"Only operators can manage {self.noun_plural}",
                next_step="sign in with an operator account",
            ),
            title=self.title,
            severity="warning",
        )
        return False

    async def aclose(self) -> None:
        """Drop pending debounce timers and reap background fetches."""
        self.search.cancel()
        await self.ctx.tasks.aclose()


__all__ = [
    "STATUS_FIELD",
    "CatalogScreen",
]
