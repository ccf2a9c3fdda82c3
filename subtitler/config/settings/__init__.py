from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "DEFAULT_LOOP_DURATION",
    "METADATA_SERVICE_SETTINGS",
    "PATHS",
    "Settings",
    "core",
    "paths",
    "providers",
    "get_api_key",
    "get_default_headers",
    "get_metadata_service_settings_path",
    "get_retry_config",
    "get_script_urls",
    "get_service_config",
    "get_settings",
    "get_user_settings_path",
    "list_service_configs",
    "load_metadata_service_settings",
]

_MODULE_EXPORTS = {
    "core": {
        "DEFAULT_LOOP_DURATION",
        "Settings",
        "get_settings",
    },
    "paths": {
        "PATHS",
        "get_metadata_service_settings_path",
        "get_user_settings_path",
    },
    "providers": {
        "METADATA_SERVICE_SETTINGS",
        "get_api_key",
        "get_default_headers",
        "get_retry_config",
        "get_script_urls",
        "get_service_config",
        "list_service_configs",
        "load_metadata_service_settings",
    },
}

_SUBMODULE_NAMES = {"core", "paths", "providers"}

if TYPE_CHECKING:  # pragma: no cover - only for static analysis
    from . import core, paths, providers
    from .core import DEFAULT_LOOP_DURATION, Settings, get_settings
    from .paths import PATHS, get_metadata_service_settings_path, get_user_settings_path
    from .providers import (
        METADATA_SERVICE_SETTINGS,
        get_api_key,
        get_default_headers,
        get_retry_config,
        get_script_urls,
        get_service_config,
        list_service_configs,
        load_metadata_service_settings,
    )


def __getattr__(name: str) -> Any:
    if name in _SUBMODULE_NAMES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module

    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    exported.update(_SUBMODULE_NAMES)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
