"""Internal CRUD service helpers for suppliers, properties, cities and analyses."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from calcana_sync.models import ClientConfig, PageEnvelope
from calcana_sync.parsing import parse_item_list, parse_page_envelope
from calcana_sync.query import ListQuery
from calcana_sync.services.api_client import json_or_none, send_request

REACTIVATE_PAYLOAD = {"ativo": True}


async def fetch_page(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    query: ListQuery,
    parse_item: Callable[[Any], Any],
) -> PageEnvelope:
    """Fetch one page of a paginated collection."""
    response = await send_request(
        "GET", query.path, client=client, config=config, params=query.to_params()
    )
    return parse_page_envelope(response.json(), parse_item)


async def fetch_list(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    parse_item: Callable[[Any], Any],
    params: dict[str, str] | None = None,
) -> list:
    """Fetch an unpaginated lookup (cities, properties of one supplier)."""
    response = await send_request("GET", path, client=client, config=config, params=params)
    return parse_item_list(response.json(), parse_item)


async def create_item(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    payload: dict[str, Any],
) -> Any:
    """POST a new record; returns the decoded body when the server sends one."""
    response = await send_request("POST", path, client=client, config=config, json=payload)
    return json_or_none(response)


async def update_item(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    item_id: int,
    payload: dict[str, Any],
) -> Any:
    response = await send_request(
        "PUT", f"{path}/{item_id}", client=client, config=config, json=payload
    )
    return json_or_none(response)


async def reactivate_item(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    item_id: int,
) -> None:
    """Flip a soft-deleted record back to active."""
    await send_request(
        "PATCH", f"{path}/{item_id}", client=client, config=config, json=REACTIVATE_PAYLOAD
    )


async def delete_item(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    item_id: int,
) -> None:
    """DELETE a record. Soft for suppliers and properties, hard for cities."""
    await send_request("DELETE", f"{path}/{item_id}", client=client, config=config)


__all__ = [
    "REACTIVATE_PAYLOAD",
    "create_item",
    "delete_item",
    "fetch_list",
    "fetch_page",
    "reactivate_item",
    "update_item",
]
