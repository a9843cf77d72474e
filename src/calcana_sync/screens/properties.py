"""Property catalog screen, with its supplier and city lookups."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from calcana_sync.action_messages import (
    build_actionable_error,
    build_actionable_warning,
    build_city_delete_confirmation_prompt,
)
from calcana_sync.errors import REMOTE_FAILURES, ValidationError, classify_remote_error
from calcana_sync.models import (
    PROPERTIES_PAGE_SIZE,
    PROPERTY_FORM_SUPPLIER_LOOKUP_SIZE,
    STATUS_ACTIVE,
    City,
    Property,
    Supplier,
)
from calcana_sync.mutations import MutationOutcome, MutationSpec, PendingAction
from calcana_sync.parsing import parse_city, parse_property, parse_supplier
from calcana_sync.query import ListQuery
from calcana_sync.screens.base import CatalogScreen
from calcana_sync.screens.suppliers import SUPPLIERS_PATH
from calcana_sync.ui_runtime import ScreenContext

logger = logging.getLogger(__name__)

PROPERTIES_PATH = "/propriedades"
CITIES_PATH = "/cidades"

# Active suppliers for the property form's supplier select.
SUPPLIER_LOOKUP_QUERY = ListQuery(
    path=SUPPLIERS_PATH,
    page=0,
    size=PROPERTY_FORM_SUPPLIER_LOOKUP_SIZE,
    params=(("status", STATUS_ACTIVE), ("size", str(PROPERTY_FORM_SUPPLIER_LOOKUP_SIZE))),
)


@dataclass(slots=True)
class PropertyForm:
    name: str = ""
    supplier_id: int | None = None
    city_id: int | None = None
    item_id: int | None = None


@dataclass(slots=True)
class CityForm:
    name: str = ""
    state: str = ""


class PropertiesScreen(CatalogScreen):
    path = PROPERTIES_PATH
    title = "Properties"
    noun = "property"
    noun_plural = "properties"
    page_size = PROPERTIES_PAGE_SIZE
    parse_item = staticmethod(parse_property)
    reactivate_hint = "check that this property's supplier is active"

    def __init__(self, ctx: ScreenContext) -> None:
        super().__init__(ctx)
        self.suppliers: list[Supplier] = []
        self.cities: list[City] = []

    def item_id(self, item: Property) -> int:
        return item.property_id

    def new_form(self, item: Property | None = None) -> PropertyForm:
        if item is None:
            return PropertyForm()
        return PropertyForm(
            name=item.name,
            supplier_id=item.supplier.supplier_id if item.supplier else None,
            city_id=item.city.city_id if item.city else None,
            item_id=item.property_id,
        )

    def build_payload(self, form: PropertyForm) -> dict[str, Any]:
        name = form.name.strip()
        if not name:
            raise ValidationError("Enter the property's name.")
        if form.supplier_id is None or form.city_id is None:
            raise ValidationError("Select a supplier and a city.")
        return {
            "nome": name,
            "fornecedor": {"idFornecedor": form.supplier_id},
            "cidade": {"idCidade": form.city_id},
            "ativo": True,
        }

    async def start(self) -> None:
        await asyncio.gather(self.list.refresh(), self.load_lookups())

    async def load_lookups(self) -> bool:
        """Fetch this screen's own copy of the supplier and city selects."""
        resources = self.ctx.services.resources
        try:
            envelope, cities = await asyncio.gather(
                resources.fetch_page(
                    client=self.ctx.client,
                    config=self.ctx.config,
                    query=SUPPLIER_LOOKUP_QUERY,
                    parse_item=parse_supplier,
                ),
                resources.fetch_list(
                    client=self.ctx.client,
                    config=self.ctx.config,
                    path=CITIES_PATH,
                    parse_item=parse_city,
                ),
            )
        except REMOTE_FAILURES as exc:
            error = classify_remote_error(exc, "the server did not return the lookup lists")
            self.ctx.notifier.notify(
                build_actionable_error(
                    "load suppliers and cities",
                    why=error.message,
                    next_step="reload the screen",
                ),
                title=self.title,
                severity="error",
            )
            logger.warning("Loading property lookups failed: %s", exc)
            return False
        self.suppliers = list(envelope.items)
        self.cities = list(cities)
        return True

    # ── Cities ───────────────────────────────────────────────────────────

    async def reload_cities(self) -> bool:
        """Replace the city lookup with a fresh copy from the server."""
        try:
            cities = await self.ctx.services.resources.fetch_list(
                client=self.ctx.client,
                config=self.ctx.config,
                path=CITIES_PATH,
                parse_item=parse_city,
            )
        except REMOTE_FAILURES as exc:
            error = classify_remote_error(exc, "the server did not return the city list")
            self.ctx.notifier.notify(
                build_actionable_warning(
                    "The city list could not be refreshed",
                    why=error.message,
                    next_step="reload the screen",
                ),
                title=self.title,
                severity="warning",
            )
            logger.warning("Reloading cities failed: %s", exc)
            return False
        self.cities = list(cities)
        return True

    async def create_city(self, form: CityForm) -> MutationOutcome | None:
        """Create a city from the inline dialog; the submit is the confirmation."""
        if not self._require_operator():
            return None
        name = form.name.strip()
        state = form.state.strip().upper()
        if not name or not state:
            self.ctx.notifier.notify(
                "Fill in the city name and state.", title=self.title, severity="warning"
            )
            return None
        return await self.mutations.submit("create_city", None, name, {"nome": name, "uf": state})

    def request_delete_city(self, city_id: int) -> str | None:
        """Stage a hard delete of a city. Returns the confirmation prompt."""
        if not self._require_operator():
            return None
        city = next((c for c in self.cities if c.city_id == city_id), None)
        if city is None:
            logger.debug("City %d is not in the lookup list", city_id)
            return None
        if not self.mutations.request_action("delete_city", city_id, city.label):
            return None
        return build_city_delete_confirmation_prompt(city.label)

    def _mutation_specs(self) -> list[MutationSpec]:
        return [
            *super()._mutation_specs(),
            MutationSpec(
                kind="create_city",
                execute=self._execute_create_city,
                reconcile=self._append_city,
                success_message=lambda a: f'City "{a.target_label}" created.',
                failure_action="create city",
            ),
            MutationSpec(
                kind="delete_city",
                execute=self._execute_delete_city,
                reconcile=self._drop_city,
                success_message=lambda a: f'City "{a.target_label}" deleted.',
                failure_action="delete city",
                conflict_message=lambda a: f'Cannot delete "{a.target_label}": the city is in use.',
                not_found_is_removed=True,
            ),
        ]

    async def _execute_create_city(self, action: PendingAction) -> City | None:
        body = await self.ctx.services.resources.create_item(
            client=self.ctx.client, config=self.ctx.config, path=CITIES_PATH, payload=action.payload
        )
        # An empty 2xx body still means the city was created.
        return parse_city(body) if body is not None else None

    async def _execute_delete_city(self, action: PendingAction) -> None:
        await self.ctx.services.resources.delete_item(
            client=self.ctx.client,
            config=self.ctx.config,
            path=CITIES_PATH,
            item_id=action.target_id,
        )

    async def _append_city(self, action: PendingAction, city: City | None) -> None:
        if city is None:
            await self.reload_cities()
            return
        self.cities = [*self.cities, city]

    async def _drop_city(self, action: PendingAction, result: Any) -> None:
        city_id = action.target_id
        self.cities = [c for c in self.cities if c.city_id != city_id]
        if self.form is not None and self.form.city_id == city_id:
            self.form.city_id = None


__all__ = [
    "CITIES_PATH",
    "PROPERTIES_PATH",
    "CityForm",
    "PropertiesScreen",
    "PropertyForm",
]
