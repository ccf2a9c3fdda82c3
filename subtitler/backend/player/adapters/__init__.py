"""Backend adapters, one per :class:`BackendKind`."""

from __future__ import annotations

from typing import Any, Dict, Type

from subtitler.backend.player.adapters.base import BackendAdapter, EventSink, PlayerHost
from subtitler.backend.player.adapters.embedded import EmbeddedAdapter
from subtitler.backend.player.adapters.vimeo import VimeoAdapter
from subtitler.backend.player.adapters.youtube import YouTubeAdapter
from subtitler.backend.player.models import BackendKind

ADAPTERS: Dict[BackendKind, Type[BackendAdapter]] = {
    BackendKind.EMBEDDED: EmbeddedAdapter,
    BackendKind.YOUTUBE: YouTubeAdapter,
    BackendKind.VIMEO: VimeoAdapter,
}


def create_adapter(kind: BackendKind, source: str, **kwargs: Any) -> BackendAdapter:
    return ADAPTERS[BackendKind(kind)](source, **kwargs)


__all__ = [
    "ADAPTERS",
    "BackendAdapter",
    "EmbeddedAdapter",
    "EventSink",
    "PlayerHost",
    "VimeoAdapter",
    "YouTubeAdapter",
    "create_adapter",
]
