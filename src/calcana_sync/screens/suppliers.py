"""Supplier catalog screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from calcana_sync.errors import ValidationError
from calcana_sync.models import SUPPLIERS_PAGE_SIZE, Supplier
from calcana_sync.parsing import parse_supplier
from calcana_sync.screens.base import CatalogScreen

SUPPLIERS_PATH = "/fornecedores"


@dataclass(slots=True)
class SupplierForm:
    name: str = ""
    email: str = ""
    item_id: int | None = None


class SuppliersScreen(CatalogScreen):
    path = SUPPLIERS_PATH
    title = "Suppliers"
    noun = "supplier"
    noun_plural = "suppliers"
    page_size = SUPPLIERS_PAGE_SIZE
    parse_item = staticmethod(parse_supplier)

    def item_id(self, item: Supplier) -> int:
        return item.supplier_id

    def new_form(self, item: Supplier | None = None) -> SupplierForm:
        if item is None:
            return SupplierForm()
        return SupplierForm(name=item.name, email=item.email, item_id=item.supplier_id)

    def build_payload(self, form: SupplierForm) -> dict[str, Any]:
        name = form.name.strip()
        email = form.email.strip()
        if not name:
            raise ValidationError("Enter the supplier's name.")
        if not email:
            raise ValidationError("Enter the supplier's email.")
        return {"nome": name, "email": email}


__all__ = [
    "SUPPLIERS_PATH",
    "SupplierForm",
    "SuppliersScreen",
]
