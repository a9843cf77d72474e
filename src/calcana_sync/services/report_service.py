"""Internal report service helpers: spreadsheet/PDF downloads and report email."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import httpx

from calcana_sync.export import report_media_type
from calcana_sync.models import ClientConfig
from calcana_sync.services.api_client import api_url, build_headers, send_request

logger = logging.getLogger(__name__)

EXCEL_REPORT_PATH = "/relatorios/analises/excel"


def bulletin_path(analysis_id: int) -> str:
    return f"/relatorios/analise/{analysis_id}/pdf"


def send_report_path(analysis_id: int) -> str:
    return f"/relatorios/analise/{analysis_id}/enviar"


async def download_report(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    path: str,
    destination: Path,
    params: dict[str, str] | None = None,
) -> bool:
    """Stream a binary report into ``destination`` using atomic temp-file replacement."""
    url = api_url(config, path)
    headers = build_headers(config)
    headers["Accept"] = report_media_type(destination)
    tmp_path: str | None = None

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=destination.parent,
            prefix=f".{destination.stem}-",
            suffix=".tmp",
        )

        async def _stream_to_tmp(active_client: httpx.AsyncClient) -> None:
            with os.fdopen(fd, "wb") as tmp_file:
                async with active_client.stream(
                    "GET",
                    url,
                    params=params,
                    headers=headers,
                    timeout=config.timeout_seconds,
                    follow_redirects=True,
                ) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes():
                        if chunk:
                            tmp_file.write(chunk)

        if client is not None:
            await _stream_to_tmp(client)
        else:
            async with httpx.AsyncClient() as tmp_client:
                await _stream_to_tmp(tmp_client)

        os.replace(tmp_path, destination)
        return True
    except (httpx.HTTPError, OSError) as exc:
        logger.warning("Report download from %s failed: %s", path, exc)
        if tmp_path:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        return False


async def send_report(
    *,
    client: httpx.AsyncClient | None,
    config: ClientConfig,
    analysis_id: int,
) -> None:
    """Ask the backend to email one analysis report to its supplier."""
    await send_request("POST", send_report_path(analysis_id), client=client, config=config)


__all__ = [
    "EXCEL_REPORT_PATH",
    "bulletin_path",
    "download_report",
    "send_report",
    "send_report_path",
]
