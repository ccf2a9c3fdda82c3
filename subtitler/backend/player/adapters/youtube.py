"""YouTube iframe player driven through the host's iframe API."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Optional

from subtitler.backend.common.logging import get_logger
from subtitler.backend.player.adapters.base import BackendAdapter, DurationCallback, EventSink
from subtitler.backend.player.bootstrap import ScriptLoader
from subtitler.backend.player.models import BackendKind, PlaybackFailure
from subtitler.config.settings import get_script_urls

log = get_logger(__name__)

IFRAME_API_URL = "https://www.youtube.com/iframe_api"


class YouTubeState(IntEnum):
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


def _event_data(event: Any) -> Any:
    return getattr(event, "data", event)


class YouTubeAdapter(BackendAdapter):
    """The iframe API has no periodic time event; position comes from polling."""

    kind = BackendKind.YOUTUBE
    needs_position_polling = True

    def __init__(self, source: str, *, loader: Optional[ScriptLoader] = None, **kwargs: Any) -> None:
        super().__init__(source, **kwargs)
        self._loader = loader

    def _create_handle(self) -> None:
        loader = self._loader or ScriptLoader.for_host(self._require_host())
        script_url = get_script_urls().get("youtube_iframe_api", IFRAME_API_URL)
        loader.require(script_url, self._build_player)

    def _build_player(self, api: Any) -> None:
        player = api.create_player(
            self.target,
            {
                "width": "100%",
                "height": self._settings.youtube_player_height,
                "videoId": self.video_id,
                "playerVars": {"controls": 0},
            },
        )
        self._handle_created(player)

    def _listen_ready(self, fire: Callable[[], None]) -> None:
        self._listen("onReady", lambda event=None: self._deliver(fire))

    def _listen_events(self, sink: EventSink) -> None:
        def _on_state(event: Any) -> None:
            try:
                state = YouTubeState(int(_event_data(event)))
            except (TypeError, ValueError):
                log.debug("youtube_unknown_state", state=_event_data(event))
                return
            if state is YouTubeState.PLAYING:
                self._deliver(sink.handle_playing)
            elif state in (YouTubeState.ENDED, YouTubeState.PAUSED):
                self._deliver(sink.handle_paused)

        def _on_error(event: Any) -> None:
            failure = PlaybackFailure(kind=self.kind, reason="error", detail=_event_data(event))
            self._deliver(sink.handle_paused, failure)

        self._listen("onStateChange", _on_state)
        self._listen("onError", _on_error)

    def _listen(self, name: str, callback: Callable[..., None]) -> None:
        player = self._require_handle()
        player.add_event_listener(name, callback)
        self._on_detach(lambda: player.remove_event_listener(name, callback))

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    def get_current_time(self) -> float:
        return float(self._require_handle().get_current_time() or 0.0)

    def play(self) -> None:
        self._require_handle().play_video()

    def pause(self) -> None:
        self._require_handle().pause_video()

    def seek_to(self, seconds: float) -> None:
        self._require_handle().seek_to(seconds, True)

    def set_playback_rate(self, rate: float) -> None:
        self._require_handle().set_playback_rate(rate)

    def get_duration(self, callback: DurationCallback) -> None:
        # synchronous getter, callback keeps the contract uniform with Vimeo
        duration = self._require_handle().get_duration()
        callback(float(duration) if duration else None)


__all__ = ["IFRAME_API_URL", "YouTubeAdapter", "YouTubeState"]
