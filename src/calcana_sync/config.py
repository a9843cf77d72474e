"""Client configuration: load, validate and atomically save."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from calcana_sync.models import (
    CONFIG_APP_NAME,
    DEFAULT_BASE_URL,
    DEFAULT_SEARCH_DEBOUNCE_MS,
    DEFAULT_TIMEOUT_SECONDS,
    MAX_SEARCH_DEBOUNCE_MS,
    MAX_TIMEOUT_SECONDS,
    ClientConfig,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() guarantees valid output for any input:
#
#   Field                Rule                      Handler
#   ───────────────────  ────────────────────────  ──────────────────
#   timeout_seconds      1 ≤ x ≤ 300               _coerce_int_range
#   search_debounce_ms   0 ≤ x ≤ 5000              _coerce_int_range
#   base_url             non-empty, no trailing /  _normalize_base_url
#   scalar fields        type-checked              _safe_get
#
CONFIG_FILENAME = "config.json"


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Uses platformdirs for cross-platform config directory:
    - Linux: ~/.config/calcana-sync/config.json
    - macOS: ~/Library/Application Support/calcana-sync/config.json
    - Windows: %APPDATA%/calcana-sync/config.json
    """
    config_dir = Path(user_config_dir(CONFIG_APP_NAME))
    return config_dir / CONFIG_FILENAME


def _config_to_dict(config: ClientConfig) -> dict[str, Any]:
    """Serialize ClientConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "base_url": config.base_url,
        "api_token": config.api_token,
        "timeout_seconds": _coerce_int_range(
            config.timeout_seconds, DEFAULT_TIMEOUT_SECONDS, 1, MAX_TIMEOUT_SECONDS
        ),
        "search_debounce_ms": _coerce_int_range(
            config.search_debounce_ms, DEFAULT_SEARCH_DEBOUNCE_MS, 0, MAX_SEARCH_DEBOUNCE_MS
        ),
        "report_download_dir": config.report_download_dir,
        "role": config.role,
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _coerce_int_range(value: Any, default: int, lower: int, upper: int) -> int:
    """Validate an integer setting and clamp it into ``[lower, upper]``."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return max(lower, min(value, upper))


def _normalize_base_url(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_BASE_URL
    return value.strip().rstrip("/")


def _dict_to_config(data: dict[str, Any]) -> ClientConfig:
    """Deserialize a dictionary to ClientConfig with type validation."""
    return ClientConfig(
        base_url=_normalize_base_url(data.get("base_url")),
        api_token=_safe_get(data, "api_token", "", str),
        timeout_seconds=_coerce_int_range(
            data.get("timeout_seconds"), DEFAULT_TIMEOUT_SECONDS, 1, MAX_TIMEOUT_SECONDS
        ),
        search_debounce_ms=_coerce_int_range(
            data.get("search_debounce_ms"),
            DEFAULT_SEARCH_DEBOUNCE_MS,
            0,
            MAX_SEARCH_DEBOUNCE_MS,
        ),
        report_download_dir=_safe_get(data, "report_download_dir", "", str),
        role=_safe_get(data, "role", "", str),
        version=_safe_get(data, "version", 1, int),
    )


def load_config() -> ClientConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    Logs specific errors to help diagnose config issues.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return ClientConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            logger.warning("Config file is not a JSON object, using defaults")
            return ClientConfig()
        return _dict_to_config(data)
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        return ClientConfig()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return ClientConfig()


def save_config(config: ClientConfig, path: Path | None = None) -> Path | None:
    """Write ``config`` as JSON to ``path`` (default: the platform config file).

    The JSON lands in a sibling temp file that ``os.replace`` then moves over
    the target, so a reader sees either the previous file or the new one.
    Returns the written path, or ``None`` when the write failed.
    """
    target = path or get_config_path()
    text = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False) + "\n"
    tmp_name: str | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target.parent,
            prefix=".config-",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(text)
        os.replace(tmp_name, target)
    except OSError as exc:
        logger.error("Could not write config to %s: %s", target, exc)
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        return None
    logger.debug("Saved config to %s", target)
    return target


__all__ = [
    "CONFIG_FILENAME",
    "get_config_path",
    "load_config",
    "save_config",
]
