from __future__ import annotations

import os
from pathlib import Path

ENV_PREFIX = "CINEMA_ADMIN_"

DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_API_TIMEOUT_S = 20.0
DEFAULT_PAGE_LIMIT = 10
DEFAULT_SEARCH_DEBOUNCE_MS = 300


def _env(name: str) -> str | None:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw is not None else default


def env_float(name: str, default: float) -> float:
    raw = _env(name)
    return float(raw) if raw is not None else default


def env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def env_csv(name: str) -> list[str]:
    raw = _env(name)
    if not raw:
        return []

    # Support both comma-separated values and newline-separated values (common in PaaS).
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def api_base_url() -> str:
    return _env("API_BASE_URL") or DEFAULT_API_BASE_URL


def api_timeout_s() -> float:
    return env_float("API_TIMEOUT_S", DEFAULT_API_TIMEOUT_S)


def default_page_limit() -> int:
    return env_int("PAGE_LIMIT", DEFAULT_PAGE_LIMIT)


def search_debounce_ms() -> int:
    return env_int("SEARCH_DEBOUNCE_MS", DEFAULT_SEARCH_DEBOUNCE_MS)


def keep_data_on_error() -> bool:
    return env_bool("KEEP_DATA_ON_ERROR", False)


def configured_data_dir() -> Path | None:
    """Directory used to persist the catalog, or None for a purely in-memory catalog."""

    raw = _env("DATA_DIR")
    return Path(raw).resolve() if raw else None
