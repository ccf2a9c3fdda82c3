from __future__ import annotations

import json
import os
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from subtitler.backend.common.logging import get_logger

from .paths import get_user_settings_path

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

T = TypeVar("T")

DEFAULT_LOOP_DURATION = 8.0


@dataclass
class Settings:
    app_name: str
    env: str
    log_level: str
    task_workers: int
    poll_interval_ms: int
    default_loop_duration: float
    default_target: str
    youtube_player_height: str
    vimeo_player_width: str
    vimeo_player_height: str
    http_timeout: float
    metadata_retries: int

    @property
    def poll_interval_sec(self) -> float:
        return self.poll_interval_ms / 1000.0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_user_settings() -> Dict[str, Any]:
    user_path = get_user_settings_path()
    if not user_path.exists():
        return {}
    try:
        with user_path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        log.warning("user_settings_unreadable", path=str(user_path), error=str(exc))
        return {}


def _pick(
    user_cfg: Mapping[str, Any],
    key: str,
    default: T,
    convert: Callable[[Any], T],
) -> T:
    raw = os.getenv(f"SUBTITLER_{key.upper()}")
    if raw is None:
        raw = user_cfg.get(key, default)
    try:
        return convert(raw)
    except (TypeError, ValueError):
        log.warning("settings_value_invalid", key=key, value=raw, fallback=default)
        return default


def _pick_positive(user_cfg: Mapping[str, Any], key: str, default: float) -> float:
    value = _pick(user_cfg, key, default, float)
    if value <= 0:
        log.warning("settings_value_invalid", key=key, value=value, fallback=default)
        return default
    return value


def _build_settings() -> Settings:
    user_cfg = load_user_settings()

    return Settings(
        app_name=_pick(user_cfg, "app_name", "Subtitler", str),
        env=_pick(user_cfg, "env", "development", str),
        log_level=_pick(user_cfg, "log_level", "INFO", str).upper(),
        task_workers=max(1, _pick(user_cfg, "task_workers", 2, int)),
        # 250 ms keeps the synthetic time updates close to a native timeupdate cadence
        poll_interval_ms=max(10, _pick(user_cfg, "poll_interval_ms", 250, int)),
        default_loop_duration=_pick_positive(user_cfg, "default_loop_duration", DEFAULT_LOOP_DURATION),
        default_target=_pick(user_cfg, "default_target", "player", str),
        youtube_player_height=_pick(user_cfg, "youtube_player_height", "500", str),
        vimeo_player_width=_pick(user_cfg, "vimeo_player_width", "100%", str),
        vimeo_player_height=_pick(user_cfg, "vimeo_player_height", "350px", str),
        http_timeout=_pick(user_cfg, "http_timeout", 15.0, float),
        metadata_retries=max(0, _pick(user_cfg, "metadata_retries", 0, int)),
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "DEFAULT_LOOP_DURATION",
    "Settings",
    "get_settings",
    "load_user_settings",
]
