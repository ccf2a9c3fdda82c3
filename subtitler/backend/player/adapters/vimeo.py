"""Vimeo embed controlled over the cross-frame message bridge."""

from __future__ import annotations

from typing import Any, Callable, Optional
import uuid

from subtitler.backend.common.logging import get_logger
from subtitler.backend.player.adapters.base import BackendAdapter, DurationCallback, EventSink
from subtitler.backend.player.models import BackendKind

log = get_logger(__name__)

PLAYER_URL = "https://player.vimeo.com/video/{video_id}?api=1&player_id={player_id}"


def _seconds(data: Any) -> Optional[float]:
    if isinstance(data, dict):
        data = data.get("seconds")
    if data is None:
        return None
    try:
        return float(data)
    except (TypeError, ValueError):
        return None


class VimeoAdapter(BackendAdapter):
    """Every control call is a message; results come back through callbacks.

    The bridge cannot answer ``getCurrentTime`` synchronously, so the last
    position reported by ``playProgress``/``seek`` is served instead.
    """

    kind = BackendKind.VIMEO
    supports_playback_rate = False

    def __init__(self, source: str, **kwargs: Any) -> None:
        super().__init__(source, **kwargs)
        self.player_id = f"vimeo-{uuid.uuid4().hex[:12]}"
        self._last_position = 0.0

    def _create_handle(self) -> None:
        host = self._require_host()
        frame = host.insert_frame(
            self.target,
            {
                "src": PLAYER_URL.format(video_id=self.video_id, player_id=self.player_id),
                "frameborder": "0",
                "width": self._settings.vimeo_player_width,
                "height": self._settings.vimeo_player_height,
                "id": self.player_id,
            },
        )
        self._handle_created(host.message_bridge(frame))

    def _listen_ready(self, fire: Callable[[], None]) -> None:
        self._listen("ready", lambda *args: self._deliver(fire))

    def _listen_events(self, sink: EventSink) -> None:
        def _on_position(data: Any = None, *args: Any) -> None:
            seconds = _seconds(data)
            if seconds is not None:
                self._last_position = seconds
            self._deliver(sink.handle_position, seconds)

        self._listen("playProgress", _on_position)
        self._listen("seek", _on_position)
        self._listen("play", lambda *args: self._deliver(sink.handle_playing))
        self._listen("pause", lambda *args: self._deliver(sink.handle_paused))
        self._listen("finish", lambda *args: self._deliver(sink.handle_paused))

    def _listen(self, name: str, callback: Callable[..., None]) -> None:
        bridge = self._require_handle()
        bridge.add_event(name, callback)
        self._on_detach(lambda: bridge.remove_event(name))

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    def get_current_time(self) -> float:
        return self._last_position

    def play(self) -> None:
        self._require_handle().api("play")

    def pause(self) -> None:
        self._require_handle().api("pause")

    def seek_to(self, seconds: float) -> None:
        self._require_handle().api("seekTo", seconds)

    def get_duration(self, callback: DurationCallback) -> None:
        self._require_handle().api("getDuration", callback=lambda value: callback(_seconds(value)))


__all__ = ["PLAYER_URL", "VimeoAdapter"]
