"""Service interfaces + default adapters for screen-level dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from calcana_sync.models import ClientConfig, PageEnvelope
from calcana_sync.query import ListQuery
from calcana_sync.services import report_service as _reports
from calcana_sync.services import resource_service as _resources


@runtime_checkable
class ResourceService(Protocol):
    """Interface for collection reads and record mutations."""

    async def fetch_page(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        query: ListQuery,
        parse_item: Callable[[Any], Any],
    ) -> PageEnvelope:
        """Fetch one page of a paginated collection."""
        ...

    async def fetch_list(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        parse_item: Callable[[Any], Any],
        params: dict[str, str] | None = None,
    ) -> list:
        """Fetch an unpaginated lookup list."""
        ...

    async def create_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        payload: dict[str, Any],
    ) -> Any:
        """Create a record."""
        ...

    async def update_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
        payload: dict[str, Any],
    ) -> Any:
        """Replace a record."""
        ...

    async def reactivate_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
    ) -> None:
        """Reactivate a soft-deleted record."""
        ...

    async def delete_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
    ) -> None:
        """Delete (soft or hard, per resource) a record."""
        ...


@runtime_checkable
class ReportService(Protocol):
    """Interface for report downloads and the report email side effect."""

    async def download_report(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        destination: Path,
        params: dict[str, str] | None = None,
    ) -> bool:
        """Download a binary report and return success."""
        ...

    async def send_report(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        analysis_id: int,
    ) -> None:
        """Email an analysis report to its supplier."""
        ...


class DefaultResourceService:
    """Default adapter that delegates to function-based resource services."""

    async def fetch_page(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        query: ListQuery,
        parse_item: Callable[[Any], Any],
    ) -> PageEnvelope:
        return await _resources.fetch_page(
            client=client, config=config, query=query, parse_item=parse_item
        )

    async def fetch_list(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        parse_item: Callable[[Any], Any],
        params: dict[str, str] | None = None,
    ) -> list:
        return await _resources.fetch_list(
            client=client, config=config, path=path, parse_item=parse_item, params=params
        )

    async def create_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        payload: dict[str, Any],
    ) -> Any:
        return await _resources.create_item(
            client=client, config=config, path=path, payload=payload
        )

    async def update_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
        payload: dict[str, Any],
    ) -> Any:
        return await _resources.update_item(
            client=client, config=config, path=path, item_id=item_id, payload=payload
        )

    async def reactivate_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
    ) -> None:
        await _resources.reactivate_item(client=client, config=config, path=path, item_id=item_id)

    async def delete_item(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        item_id: int,
    ) -> None:
        await _resources.delete_item(client=client, config=config, path=path, item_id=item_id)


class DefaultReportService:
    """Default adapter that delegates to function-based report services."""

    async def download_report(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        path: str,
        destination: Path,
        params: dict[str, str] | None = None,
    ) -> bool:
        return await _reports.download_report(
            client=client,
            config=config,
            path=path,
            destination=destination,
            params=params,
        )

    async def send_report(
        self,
        *,
        client: httpx.AsyncClient | None,
        config: ClientConfig,
        analysis_id: int,
    ) -> None:
        await _reports.send_report(client=client, config=config, analysis_id=analysis_id)


@dataclass(slots=True)
class AppServices:
    """Aggregated service interfaces consumed by the screens."""

    resources: ResourceService
    reports: ReportService


def build_default_app_services() -> AppServices:
    """Build default app services backed by the function-based modules."""
    return AppServices(
        resources=DefaultResourceService(),
        reports=DefaultReportService(),
    )


__all__ = [
    "AppServices",
    "DefaultReportService",
    "DefaultResourceService",
    "ReportService",
    "ResourceService",
    "build_default_app_services",
]
