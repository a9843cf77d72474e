"""Tests for config load hardening and atomic save."""

from __future__ import annotations

import json

import pytest

from calcana_sync.config import (
    _coerce_int_range,
    _dict_to_config,
    get_config_path,
    load_config,
    save_config,
)
from calcana_sync.models import (
    DEFAULT_BASE_URL,
    DEFAULT_SEARCH_DEBOUNCE_MS,
    DEFAULT_TIMEOUT_SECONDS,
    ClientConfig,
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "calcana-sync" / "config.json"
    monkeypatch.setattr("calcana_sync.config.get_config_path", lambda: path)
    return path


def test_default_config_path_uses_app_name() -> None:
    path = get_config_path()

    assert path.name == "config.json"
    assert path.parent.name == "calcana-sync"


def test_missing_file_returns_defaults(config_file) -> None:
    assert load_config() == ClientConfig()


@pytest.mark.parametrize("payload", ["[]", '"text"', "42", "null"])
def test_load_config_non_dict_root_returns_default(config_file, payload) -> None:
    config_file.parent.mkdir(parents=True)
    config_file.write_text(payload, encoding="utf-8")

    assert load_config() == ClientConfig()


def test_invalid_json_returns_defaults(config_file, caplog) -> None:
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{not json", encoding="utf-8")

    caplog.set_level("WARNING", logger="calcana_sync.config")
    assert load_config() == ClientConfig()
    assert "invalid JSON" in caplog.text


def test_save_then_load_round_trip(config_file) -> None:
    config = ClientConfig(
        base_url="https://lab.example.com/api",
        api_token="secret",
        timeout_seconds=45,
        search_debounce_ms=250,
        report_download_dir="~/relatorios",
        role="OPERADOR",
    )

    assert save_config(config) == config_file

    assert load_config() == config
    assert list(config_file.parent.glob(".config-*.tmp")) == []
    assert json.loads(config_file.read_text(encoding="utf-8"))["role"] == "OPERADOR"


def test_save_failure_returns_none(config_file, monkeypatch) -> None:
    def _boom(*_args, **_kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("calcana_sync.config.os.replace", _boom)

    assert save_config(ClientConfig()) is None
    assert list(config_file.parent.glob(".config-*.tmp")) == []
    assert not config_file.exists()


def test_wrongly_typed_fields_fall_back_per_field() -> None:
    config = _dict_to_config(
        {
            "base_url": "  http://backend:8080/ ",
            "api_token": 123,
            "timeout_seconds": "30",
            "search_debounce_ms": True,
            "role": ["OPERADOR"],
        }
    )

    assert config.base_url == "http://backend:8080"
    assert config.api_token == ""
    assert config.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
    assert config.search_debounce_ms == DEFAULT_SEARCH_DEBOUNCE_MS
    assert config.role == ""


@pytest.mark.parametrize("base_url", [None, "", "   ", 8080])
def test_blank_base_url_uses_default(base_url) -> None:
    assert _dict_to_config({"base_url": base_url}).base_url == DEFAULT_BASE_URL


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, 1), (-5, 1), (10, 10), (10_000, 300), (True, 30), (2.5, 30), (None, 30)],
)
def test_coerce_int_range(value, expected) -> None:
    assert _coerce_int_range(value, 30, 1, 300) == expected


def test_save_to_explicit_path_clamps_numbers(tmp_path) -> None:
    target = tmp_path / "elsewhere" / "calcana.json"

    written = save_config(ClientConfig(timeout_seconds=9_999, search_debounce_ms=-1), target)

    assert written == target
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["timeout_seconds"] == 300
    assert data["search_debounce_ms"] == 0
