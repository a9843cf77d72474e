"""Shared HTTP plumbing for the backend REST API."""

from __future__ import annotations

from typing import Any

import httpx

from calcana_sync import __version__
from calcana_sync.models import ClientConfig

USER_AGENT = f"calcana-sync/{__version__}"


def api_url(config: ClientConfig, path: str) -> str:
    """Join the configured base URL and an API path."""
    return f"{config.base_url.rstrip('/')}/{path.lstrip('/')}"


def build_headers(config: ClientConfig) -> dict[str, str]:
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if config.api_token:
        headers["Authorization"] = f"Bearer {config.api_token}"
    return headers


def build_async_client(config: ClientConfig) -> httpx.AsyncClient:
    """Create the long-lived client a host shares across screens."""
    return httpx.AsyncClient(
        headers=build_headers(config),
        timeout=config.timeout_seconds,
        follow_redirects=True,
    )


async def send_request(
    method: str,
    path: str,
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    params: dict[str, str] | None = None,
    json: Any = None,
) -> httpx.Response:
    """Issue one API request and raise ``httpx.HTTPStatusError`` on non-2xx."""
    url = api_url(config, path)
    headers = build_headers(config)

    if client is not None:
        response = await client.request(
            method,
            url,
            params=params,
            json=json,
            headers=headers,
            timeout=config.timeout_seconds,
        )
    else:
        async with httpx.AsyncClient() as tmp_client:
            response = await tmp_client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=config.timeout_seconds,
            )

    response.raise_for_status()
    return response


def json_or_none(response: httpx.Response) -> Any:
    """Decoded body, or ``None`` for an empty 2xx answer (204, bare 200)."""
    if not response.content:
        return None
    return response.json()


__all__ = [
    "USER_AGENT",
    "api_url",
    "build_async_client",
    "build_headers",
    "json_or_none",
    "send_request",
]
