"""Shared test fixtures for calcana-sync tests."""

from __future__ import annotations

import dataclasses
import heapq
import itertools
import math
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from calcana_sync.models import (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    Analysis,
    AnalysisProperty,
    City,
    ClientConfig,
    PageEnvelope,
    Property,
    PropertyOption,
    Supplier,
    SupplierSummary,
)
from calcana_sync.query import ListQuery
from calcana_sync.services.interfaces import AppServices
from calcana_sync.ui_runtime import NoticeLog, ScreenContext

# ── HTTP errors ──────────────────────────────────────────────────────────────


def _make_http_error(status_code: int, message: str | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://backend.test/resource")
    if message is None:
        response = httpx.Response(status_code, request=request)
    else:
        response = httpx.Response(status_code, request=request, json={"message": message})
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


@pytest.fixture
def http_error():
    """Factory for real ``httpx.HTTPStatusError`` instances with an optional ``message`` body."""
    return _make_http_error


# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_supplier():
    def _make(
        supplier_id: int = 1,
        name: str | None = None,
        email: str | None = None,
        active: bool = True,
    ) -> Supplier:
        return Supplier(
            supplier_id=supplier_id,
            name=name if name is not None else f"Supplier {supplier_id}",
            email=email if email is not None else f"supplier{supplier_id}@example.com",
            active=active,
        )

    return _make


@pytest.fixture
def make_city():
    def _make(city_id: int = 1, name: str | None = None, state: str = "SP") -> City:
        if name is None:
            name = f"City {city_id}"
        return City(city_id=city_id, name=name, state=state)

    return _make


@pytest.fixture
def make_property():
    def _make(
        property_id: int = 1,
        name: str | None = None,
        active: bool = True,
        supplier_id: int = 1,
        city_id: int = 1,
    ) -> Property:
        return Property(
            property_id=property_id,
            name=name if name is not None else f"Farm {property_id}",
            active=active,
            supplier=SupplierSummary(supplier_id=supplier_id, name=f"Supplier {supplier_id}"),
            city=City(city_id=city_id, name=f"City {city_id}", state="SP"),
        )

    return _make


@pytest.fixture
def make_analysis():
    def _make(
        analysis_id: int = 1,
        sample_number: int | None = None,
        property_id: int = 1,
        supplier_id: int = 1,
        plot: str = "T1",
        report_sent: bool = False,
        analysis_date: str = "2024-05-10",
    ) -> Analysis:
        return Analysis(
            analysis_id=analysis_id,
            sample_number=sample_number if sample_number is not None else 1000 + analysis_id,
            analysis_date=analysis_date,
            plot=plot,
            atr=142.5,
            report_sent=report_sent,
            property=AnalysisProperty(
                property_id=property_id,
                name=f"Farm {property_id}",
                supplier=SupplierSummary(
                    supplier_id=supplier_id,
                    name=f"Supplier {supplier_id}",
                    email=f"supplier{supplier_id}@example.com",
                ),
            ),
        )

    return _make


# ── Virtual time ─────────────────────────────────────────────────────────────


class _FakeTimer:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """``call_later`` on a virtual clock advanced explicitly by tests."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, _FakeTimer, Callable[..., Any], tuple]] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _FakeTimer:
        timer = _FakeTimer()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), timer, callback, args))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for *_, timer, _cb, _args in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every due, uncancelled callback in order."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, timer, callback, args = heapq.heappop(self._queue)
            self.now = when
            if not timer.cancelled:
                callback(*args)
        self.now = target


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


# ── In-memory backend ────────────────────────────────────────────────────────


class FakeBackend:
    """In-memory implementation of the resource and report service protocols.

    ``fail_next[operation]`` holds an exception raised (once) by the next call
    of that operation. Every call is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.collections: dict[str, list] = {
            "/fornecedores": [],
            "/propriedades": [],
            "/analises": [],
            "/cidades": [],
        }
        self.options_by_supplier: dict[str, list[PropertyOption]] = {}
        self.fail_next: dict[str, BaseException] = {}
        self.calls: list[tuple[str, Any]] = []
        self.download_ok = True
        self.downloads: list[tuple[str, Path, dict[str, str] | None]] = []
        self.sent_reports: list[int] = []
        # Paths whose create answers with an empty body.
        self.empty_create_bodies: set[str] = set()
        self._ids = itertools.count(500)

    # helpers

    def _record(self, operation: str, detail: Any) -> None:
        self.calls.append((operation, detail))
        error = self.fail_next.pop(operation, None)
        if error is not None:
            raise error

    def calls_to(self, operation: str) -> list[Any]:
        return [detail for op, detail in self.calls if op == operation]

    @staticmethod
    def _id_of(item: Any) -> int:
        for attr in ("supplier_id", "property_id", "analysis_id", "city_id"):
            if hasattr(item, attr):
                return getattr(item, attr)
        raise TypeError(item)

    def _find(self, path: str, item_id: int) -> tuple[list, int]:
        items = self.collections[path]
        for index, item in enumerate(items):
            if self._id_of(item) == item_id:
                return items, index
        raise _make_http_error(404, "Not found")

    def _filter(self, path: str, params: dict[str, str]) -> list:
        items = list(self.collections[path])
        status = params.get("status")
        if status == STATUS_ACTIVE:
            items = [i for i in items if i.active]
        elif status == STATUS_INACTIVE:
            items = [i for i in items if not i.active]
        search = params.get("search", "").lower()
        if search:
            items = [i for i in items if search in i.name.lower()]
        if "fornecedorId" in params:
            wanted = int(params["fornecedorId"])
            items = [i for i in items if i.property and i.property.supplier.supplier_id == wanted]
        if "propriedadeIds" in params:
            wanted = int(params["propriedadeIds"])
            items = [i for i in items if i.property and i.property.property_id == wanted]
        if "talhao" in params:
            items = [i for i in items if i.plot == params["talhao"]]
        return items

    # ResourceService

    async def fetch_page(self, *, client, config, query: ListQuery, parse_item) -> PageEnvelope:
        self._record("fetch_page", query)
        items = self._filter(query.path, query.to_params())
        total = len(items)
        total_pages = math.ceil(total / query.size) if total else 0
        page = query.page
        start = page * query.size
        return PageEnvelope(
            items=items[start : start + query.size],
            total_pages=total_pages,
            page_index=page,
            is_first=page == 0,
            is_last=total_pages == 0 or page >= total_pages - 1,
            total_count=total,
        )

    async def fetch_list(self, *, client, config, path: str, parse_item, params=None) -> list:
        self._record("fetch_list", path)
        prefix = "/propriedades/por-fornecedor/"
        if path.startswith(prefix):
            return list(self.options_by_supplier.get(path[len(prefix) :], []))
        return list(self.collections[path])

    async def create_item(self, *, client, config, path: str, payload: dict) -> Any:
        self._record("create_item", (path, payload))
        new_id = next(self._ids)
        if path == "/cidades":
            self.collections[path].append(City(new_id, payload["nome"], payload["uf"]))
            if path in self.empty_create_bodies:
                return None
            return {"idCidade": new_id, "nome": payload["nome"], "uf": payload["uf"]}
        if path == "/fornecedores":
            self.collections[path].append(Supplier(new_id, payload["nome"], payload["email"]))
        elif path == "/propriedades":
            self.collections[path].append(
                Property(
                    new_id,
                    payload["nome"],
                    supplier=SupplierSummary(payload["fornecedor"]["idFornecedor"], ""),
                    city=City(payload["cidade"]["idCidade"], ""),
                )
            )
        return None

    async def update_item(self, *, client, config, path: str, item_id: int, payload: dict) -> Any:
        self._record("update_item", (path, item_id, payload))
        items, index = self._find(path, item_id)
        items[index] = dataclasses.replace(items[index], name=payload["nome"])
        return None

    async def reactivate_item(self, *, client, config, path: str, item_id: int) -> None:
        self._record("reactivate_item", (path, item_id))
        items, index = self._find(path, item_id)
        items[index] = dataclasses.replace(items[index], active=True)

    async def delete_item(self, *, client, config, path: str, item_id: int) -> None:
        self._record("delete_item", (path, item_id))
        items, index = self._find(path, item_id)
        if path == "/cidades":
            del items[index]
        else:
            items[index] = dataclasses.replace(items[index], active=False)

    # ReportService

    async def download_report(
        self, *, client, config, path: str, destination: Path, params=None
    ) -> bool:
        self._record("download_report", path)
        self.downloads.append((path, destination, params))
        return self.download_ok

    async def send_report(self, *, client, config, analysis_id: int) -> None:
        self._record("send_report", analysis_id)
        self.sent_reports.append(analysis_id)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notices() -> NoticeLog:
    return NoticeLog()


@pytest.fixture
def client_config(tmp_path):
    """Factory for ClientConfig with an operator role and a temp download dir."""

    def _make(**kwargs: Any) -> ClientConfig:
        kwargs.setdefault("role", "OPERADOR")
        kwargs.setdefault("report_download_dir", str(tmp_path / "reports"))
        return ClientConfig(**kwargs)

    return _make


@pytest.fixture
def screen_ctx(backend, notices, fake_scheduler, client_config):
    """Factory for a ScreenContext wired to the fake backend and virtual clock."""

    def _make(**config_overrides: Any) -> ScreenContext:
        return ScreenContext(
            services=AppServices(resources=backend, reports=backend),
            config=client_config(**config_overrides),
            notifier=notices,
            scheduler=fake_scheduler,
        )

    return _make
