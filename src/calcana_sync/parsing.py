"""Translation of backend JSON payloads into model snapshots.

The backend speaks Portuguese field names (``idFornecedor``, ``ativo``,
``statusEnvioEmail``...). Everything past this module uses the English
dataclasses from :mod:`calcana_sync.models`.

Parsers are lenient about optional fields and strict about identity: a record
without its id, or a page envelope without a ``content`` list, raises
``ValueError`` so the caller can report a malformed response.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from calcana_sync.models import (
    Analysis,
    AnalysisProperty,
    City,
    PageEnvelope,
    Property,
    PropertyOption,
    Supplier,
    SupplierSummary,
    UserSummary,
)


def _require_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object for {what}, got {type(data).__name__}")
    return data


def _require_id(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass; an id of True is never valid
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Missing or invalid {key!r} in payload")
    return value


def _str(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key, default)
    return value if isinstance(value, str) else default


def _bool(data: dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key, default)
    return value if isinstance(value, bool) else default


def _int(data: dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value


def _float(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def parse_supplier(data: Any) -> Supplier:
    """Parse a full supplier record."""
    data = _require_dict(data, "supplier")
    return Supplier(
        supplier_id=_require_id(data, "idFornecedor"),
        name=_str(data, "nome"),
        email=_str(data, "email"),
        active=_bool(data, "ativo", True),
    )


def parse_supplier_summary(data: Any) -> SupplierSummary | None:
    """Parse an embedded supplier reference; ``None`` when absent or broken."""
    if not isinstance(data, dict) or not isinstance(data.get("idFornecedor"), int):
        return None
    return SupplierSummary(
        supplier_id=data["idFornecedor"],
        name=_str(data, "nome"),
        email=_str(data, "email"),
    )


def parse_city(data: Any) -> City:
    data = _require_dict(data, "city")
    return City(
        city_id=_require_id(data, "idCidade"),
        name=_str(data, "nome"),
        state=_str(data, "uf"),
    )


def parse_property(data: Any) -> Property:
    """Parse a property with its embedded supplier and city summaries."""
    data = _require_dict(data, "property")
    city_raw = data.get("cidade")
    city = None
    if isinstance(city_raw, dict) and isinstance(city_raw.get("idCidade"), int):
        city = parse_city(city_raw)
    return Property(
        property_id=_require_id(data, "idPropriedade"),
        name=_str(data, "nome"),
        active=_bool(data, "ativo", True),
        supplier=parse_supplier_summary(data.get("fornecedor")),
        city=city,
    )


def parse_property_option(data: Any) -> PropertyOption:
    data = _require_dict(data, "property option")
    return PropertyOption(property_id=_require_id(data, "idPropriedade"), name=_str(data, "nome"))


def _parse_analysis_property(data: Any) -> AnalysisProperty | None:
    if not isinstance(data, dict) or not isinstance(data.get("idPropriedade"), int):
        return None
    return AnalysisProperty(
        property_id=data["idPropriedade"],
        name=_str(data, "nome"),
        supplier=parse_supplier_summary(data.get("fornecedor")),
    )


def _parse_user(data: Any) -> UserSummary | None:
    if not isinstance(data, dict) or not isinstance(data.get("idUsuario"), int):
        return None
    return UserSummary(user_id=data["idUsuario"], name=_str(data, "nome"))


def parse_analysis(data: Any) -> Analysis:
    """Parse one lab analysis."""
    data = _require_dict(data, "analysis")
    notes = data.get("observacoes")
    return Analysis(
        analysis_id=_require_id(data, "idAnalise"),
        sample_number=_int(data, "numeroAmostra"),
        analysis_date=_str(data, "dataAnalise"),
        zone=_str(data, "zona"),
        plot=_str(data, "talhao"),
        cut=_int(data, "corte"),
        pbu=_float(data, "pbu"),
        brix=_float(data, "brix"),
        saccharimetric_reading=_float(data, "leituraSacarimetrica"),
        atr=_float(data, "atr"),
        purity=_float(data, "pureza"),
        pol_cane=_float(data, "polCana"),
        pol_juice=_float(data, "polCaldo"),
        fiber=_float(data, "fibra"),
        ar_cane=_float(data, "arCana"),
        ar_juice=_float(data, "arCaldo"),
        corrected_saccharimetric_reading=_float(data, "leituraSacarimetricaCorrigida"),
        notes=notes if isinstance(notes, str) else None,
        report_sent=_bool(data, "statusEnvioEmail"),
        property=_parse_analysis_property(data.get("propriedade")),
        author=_parse_user(data.get("usuarioLancamento")),
    )


def parse_page_envelope(data: Any, parse_item: Callable[[Any], Any]) -> PageEnvelope:
    """Parse a Spring-style page envelope.

    Missing pagination flags are derived from ``number``/``totalPages`` so the
    returned envelope always satisfies::

        is_first == (page_index == 0)
        is_last  == (total_pages == 0 or page_index == total_pages - 1)
    """
    data = _require_dict(data, "page envelope")
    content = data.get("content")
    if not isinstance(content, list):
        raise ValueError("Page envelope has no 'content' list")

    items = [parse_item(raw) for raw in content]
    total_pages = max(0, _int(data, "totalPages"))
    page_index = max(0, _int(data, "number"))
    is_first = data.get("first")
    is_last = data.get("last")
    if not isinstance(is_first, bool):
        is_first = page_index == 0
    if not isinstance(is_last, bool):
        is_last = total_pages == 0 or page_index >= total_pages - 1
    total_count = data.get("totalElements")
    if isinstance(total_count, bool) or not isinstance(total_count, int):
        total_count = len(items)

    return PageEnvelope(
        items=items,
        total_pages=total_pages,
        page_index=page_index,
        is_first=is_first,
        is_last=is_last,
        total_count=total_count,
    )


def parse_item_list(data: Any, parse_item: Callable[[Any], Any]) -> list:
    """Parse a bare (non-paginated) JSON array of records.

    Some lookup endpoints answer with a page envelope instead of a bare array;
    its ``content`` is accepted as well.
    """
    if isinstance(data, dict) and isinstance(data.get("content"), list):
        data = data["content"]
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")
    return [parse_item(raw) for raw in data]


__all__ = [
    "parse_analysis",
    "parse_city",
    "parse_item_list",
    "parse_page_envelope",
    "parse_property",
    "parse_property_option",
    "parse_supplier",
    "parse_supplier_summary",
]
