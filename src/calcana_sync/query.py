"""Filter definitions and request-parameter derivation for list fetches."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FilterField:
    """One named criterion of a screen's filter state.

    ``always_send`` criteria (the record status) go on the wire even when they
    hold their default; all others are sent only while they hold a value that
    is not one of ``unset_values``.
    """

    name: str
    param: str
    default: str = ""
    always_send: bool = False
    unset_values: tuple[str, ...] = ("",)

    def is_set(self, value: str) -> bool:
        return value.strip() not in self.unset_values

    def wire_value(self, value: str) -> str | None:
        value = value.strip()
        if self.always_send:
            return value or self.default
        if not self.is_set(value):
            return None
        return value


@dataclass(frozen=True, slots=True)
class ListQuery:
    """Request-parameter identity of one list fetch.

    Two queries compare equal exactly when they would put the same request on
    the wire.
    """

    path: str
    page: int
    size: int
    params: tuple[tuple[str, str], ...] = ()

    def to_params(self) -> dict[str, str]:
        """Ordered query-string parameters."""
        return dict(self.params)


def default_filters(fields: Iterable[FilterField]) -> dict[str, str]:
    return {f.name: f.default for f in fields}


def build_list_query(
    path: str,
    fields: Iterable[FilterField],
    filters: Mapping[str, str],
    *,
    page: int,
    size: int,
    search: str = "",
    search_param: str = "search",
) -> ListQuery:
    """Derive the query for one page of a filtered collection.

    Parameter order follows the backend's historical clients: filters, then
    ``page`` and ``size``, then the free-text search when present.
    """
    params: list[tuple[str, str]] = []
    for field in fields:
        wire = field.wire_value(filters.get(field.name, field.default))
        if wire is not None:
            params.append((field.param, wire))
    params.append(("page", str(max(0, page))))
    params.append(("size", str(size)))
    search = search.strip()
    if search:
        params.append((search_param, search))
    return ListQuery(path=path, page=max(0, page), size=size, params=tuple(params))


__all__ = [
    "FilterField",
    "ListQuery",
    "build_list_query",
    "default_filters",
]
