from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent.parent
_PACKAGE_ROOT = _CONFIG_DIR.parent
_PATH_BASES = [_PACKAGE_ROOT, *_PACKAGE_ROOT.parents]

# Values already exported in the environment win over the .env file.
load_dotenv(_PACKAGE_ROOT.parent / ".env", override=False)

_DEFAULT_CONFIG_PATHS = {
    "metadata_service_settings": str(_CONFIG_DIR / "metadataservicesettings.json"),
    "user_settings": str(_PACKAGE_ROOT / "var" / "user_settings.json"),
}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env_in_str(value: str) -> str:
    """Expand ``${VAR}`` tokens within a string."""

    def _repl(match: re.Match[str]) -> str:
        var = match.group(1)
        return os.getenv(var, "")

    return _ENV_PATTERN.sub(_repl, value)


def expand_env(obj: Any) -> Any:
    """Recursively expand environment variables in nested structures."""
    if isinstance(obj, str):
        return expand_env_in_str(obj)
    if isinstance(obj, list):
        return [expand_env(v) for v in obj]
    if isinstance(obj, dict):
        return {k: expand_env(v) for k, v in obj.items()}

    return obj


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _resolve_candidate(value: str) -> str:
    candidate = Path(value)
    if candidate.is_absolute():
        return str(candidate.resolve())

    for base in _PATH_BASES:
        resolved = (base / candidate).resolve()
        if resolved.exists():
            return str(resolved)

    return str((_PACKAGE_ROOT / candidate).resolve())


def load_config_paths() -> Dict[str, str]:
    """Default config locations, overridable per key via ``SUBTITLER_<KEY>_PATH``."""
    merged: Dict[str, str] = {}
    for key, default in _DEFAULT_CONFIG_PATHS.items():
        override = os.getenv(f"SUBTITLER_{key.upper()}_PATH")
        merged[key] = _resolve_candidate(override) if override else default

    return merged


PATHS: Dict[str, str] = load_config_paths()


def get_metadata_service_settings_path() -> Path:
    return Path(PATHS["metadata_service_settings"])


def get_user_settings_path() -> Path:
    return Path(PATHS["user_settings"])


__all__ = [
    "PATHS",
    "expand_env",
    "expand_env_in_str",
    "get_metadata_service_settings_path",
    "get_user_settings_path",
    "load_config_paths",
    "read_json",
]
