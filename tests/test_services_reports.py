"""Tests for report download and report email helpers."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from calcana_sync.models import ClientConfig
from calcana_sync.services.report_service import (
    EXCEL_REPORT_PATH,
    bulletin_path,
    download_report,
    send_report,
    send_report_path,
)

CONFIG = ClientConfig(base_url="http://backend.test")


class _FakeResponse:
    def __init__(self, chunks: list[bytes], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error

    def raise_for_status(self) -> None:
        if self._error is not None:
            raise self._error

    async def aiter_bytes(self):
        for chunk in self._chunks:
            yield chunk


class _StreamContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, *_args) -> bool:
        return False


def test_report_paths() -> None:
    assert EXCEL_REPORT_PATH == "/relatorios/analises/excel"
    assert bulletin_path(7) == "/relatorios/analise/7/pdf"
    assert send_report_path(7) == "/relatorios/analise/7/enviar"


@pytest.mark.asyncio
async def test_download_report_success_and_failure(tmp_path, caplog) -> None:
    target = tmp_path / "reports" / "relatorio_default_2024-06-03.xlsx"
    response = _FakeResponse([b"PK\x03\x04", b"sheet"])
    client = SimpleNamespace(stream=MagicMock(return_value=_StreamContext(response)))

    ok = await download_report(
        client=client,
        config=CONFIG,
        path=EXCEL_REPORT_PATH,
        destination=target,
        params={"layout": "default", "fornecedorId": "1"},
    )

    assert ok is True
    assert target.read_bytes() == b"PK\x03\x04sheet"
    assert list(target.parent.glob(".*.tmp")) == []
    args = client.stream.call_args
    assert args.args == ("GET", "http://backend.test/relatorios/analises/excel")
    assert args.kwargs["params"] == {"layout": "default", "fornecedorId": "1"}
    assert args.kwargs["headers"]["Accept"] == (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    caplog.clear()
    caplog.set_level("WARNING", logger="calcana_sync.services.report_service")
    client.stream = MagicMock(side_effect=OSError("network"))
    ok = await download_report(
        client=client, config=CONFIG, path=EXCEL_REPORT_PATH, destination=target
    )

    assert ok is False
    assert list(target.parent.glob(".*.tmp")) == []
    assert "Report download from /relatorios/analises/excel failed" in caplog.text


@pytest.mark.asyncio
async def test_download_report_http_error_keeps_previous_file(tmp_path) -> None:
    target = tmp_path / "Boletim_Amostra_1001.pdf"
    target.write_bytes(b"old")
    request = httpx.Request("GET", "http://backend.test/relatorios/analise/1/pdf")
    error = httpx.HTTPStatusError(
        "HTTP 500", request=request, response=httpx.Response(500, request=request)
    )
    client = SimpleNamespace(
        stream=MagicMock(return_value=_StreamContext(_FakeResponse([], error=error)))
    )

    ok = await download_report(
        client=client, config=CONFIG, path=bulletin_path(1), destination=target
    )

    assert ok is False
    assert target.read_bytes() == b"old"
    assert client.stream.call_args.kwargs["headers"]["Accept"] == "application/pdf"
    assert list(tmp_path.glob(".*.tmp")) == []


@pytest.mark.asyncio
async def test_download_report_replace_failure_cleans_temp_file(tmp_path, caplog) -> None:
    target = tmp_path / "reports" / "Boletim_Amostra_1002.pdf"
    response = _FakeResponse([b"%PDF-1.4", b" body"])
    client = SimpleNamespace(stream=MagicMock(return_value=_StreamContext(response)))

    with patch(
        "calcana_sync.services.report_service.os.replace", side_effect=OSError("disk full")
    ):
        caplog.clear()
        caplog.set_level("WARNING", logger="calcana_sync.services.report_service")
        ok = await download_report(
            client=client, config=CONFIG, path=bulletin_path(2), destination=target
        )

    assert ok is False
    assert target.exists() is False
    assert list(target.parent.glob(".*.tmp")) == []
    assert "disk full" in caplog.text


@pytest.mark.asyncio
async def test_send_report_posts_to_enviar() -> None:
    request = httpx.Request("POST", "http://backend.test/relatorios/analise/5/enviar")
    client = SimpleNamespace(
        request=AsyncMock(return_value=httpx.Response(200, request=request))
    )

    await send_report(client=client, config=CONFIG, analysis_id=5)

    assert client.request.await_args.args == (
        "POST",
        "http://backend.test/relatorios/analise/5/enviar",
    )


@pytest.mark.asyncio
async def test_send_report_raises_on_rejection() -> None:
    request = httpx.Request("POST", "http://backend.test/relatorios/analise/5/enviar")
    client = SimpleNamespace(
        request=AsyncMock(
            return_value=httpx.Response(
                422, request=request, json={"message": "Fornecedor sem email"}
            )
        )
    )

    with pytest.raises(httpx.HTTPStatusError):
        await send_report(client=client, config=CONFIG, analysis_id=5)
