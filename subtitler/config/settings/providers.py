from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .paths import expand_env, get_metadata_service_settings_path, read_json


def load_metadata_service_settings() -> Dict[str, Any]:
    data = read_json(get_metadata_service_settings_path())

    return expand_env(data)


try:  # pragma: no cover - guard against missing files at import time
    METADATA_SERVICE_SETTINGS: Dict[str, Any] = load_metadata_service_settings()
except (OSError, ValueError):
    METADATA_SERVICE_SETTINGS = {}


def _service_settings() -> Dict[str, Any]:
    return METADATA_SERVICE_SETTINGS.get("services", {}) if METADATA_SERVICE_SETTINGS else {}


def list_service_configs() -> Dict[str, Dict[str, Any]]:
    result: Dict[str, Dict[str, Any]] = {}
    for name, cfg in _service_settings().items():
        result[name] = dict(cfg) if isinstance(cfg, Mapping) else {}

    return result


def get_service_config(service: str) -> Optional[Dict[str, Any]]:
    services = _service_settings()
    if not services:
        return None

    return services.get(service)


def get_default_headers(service: str) -> Dict[str, str]:
    cfg = get_service_config(service) or {}
    headers = cfg.get("default_headers", {}) or {}

    return {k: expand_env(v) for k, v in headers.items()} if headers else {}


def get_api_key(service: str) -> Optional[str]:
    cfg = get_service_config(service) or {}
    # unset ${VAR} placeholders expand to ""
    return cfg.get("api_key") or None


def get_retry_config() -> Dict[str, Any]:
    return dict(METADATA_SERVICE_SETTINGS.get("retry", {}) or {}) if METADATA_SERVICE_SETTINGS else {}


def get_script_urls() -> Dict[str, str]:
    return dict(METADATA_SERVICE_SETTINGS.get("scripts", {}) or {}) if METADATA_SERVICE_SETTINGS else {}


__all__ = [
    "METADATA_SERVICE_SETTINGS",
    "get_api_key",
    "get_default_headers",
    "get_retry_config",
    "get_script_urls",
    "get_service_config",
    "list_service_configs",
    "load_metadata_service_settings",
]
