"""Native embedded playback through libVLC."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional
import sys

from subtitler.backend.common.errors import TaskError
from subtitler.backend.common.logging import get_logger
from subtitler.backend.common.tasks import TaskRunner, TaskSpec
from subtitler.backend.player.adapters.base import BackendAdapter, DurationCallback, EventSink
from subtitler.backend.player.exceptions import BackendUnavailable, PlayerError
from subtitler.backend.player.models import BackendKind, PlaybackFailure, VideoMetadata

log = get_logger(__name__)

_PARSE_TIMEOUT_MS = 5000


def _import_vlc():  # noqa: ANN202
    try:
        import vlc  # type: ignore
    except (ImportError, OSError) as exc:
        raise BackendUnavailable(f"python-vlc import failed: {exc}") from exc
    return vlc


class EmbeddedAdapter(BackendAdapter):
    """Wraps a libVLC media player; every call is synchronous.

    libVLC must not be called back from its own event thread, so native events
    are handed to a single-worker runner that delivers them in order.
    """

    kind = BackendKind.EMBEDDED

    def __init__(
        self,
        source: str,
        *,
        vlc_module: Any = None,
        instance: Any = None,
        **kwargs: Any,
    ) -> None:
        self._event_runner: Optional[TaskRunner] = None
        if kwargs.get("dispatch") is None:
            self._event_runner = TaskRunner(max_workers=1, context="vlc-events")
            kwargs["dispatch"] = self._submit_event
        super().__init__(source, **kwargs)
        self._vlc = vlc_module
        self._instance = instance
        self._media: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _create_handle(self) -> None:
        if self._vlc is None:
            self._vlc = _import_vlc()
        if self._instance is None:
            self._instance = self._vlc.Instance()
        self._media = self._create_media()
        player = self._instance.media_player_new()
        player.set_media(self._media)
        self._handle_created(player)

    def _create_media(self):  # noqa: ANN202
        if "://" in self.source:
            return self._instance.media_new(self.source)
        path = Path(self.source).expanduser()
        if not path.exists():
            raise PlayerError(f"Media path not found: {self.source}")
        return self._instance.media_new_path(str(path))

    def embed(self, target: Optional[str]) -> None:
        super().embed(target)
        if target is None or self._handle is None:
            return
        try:
            window_id = int(target)
        except (TypeError, ValueError):
            log.debug("vlc_target_not_a_window", target=target)
            return
        if sys.platform.startswith("win"):
            self._handle.set_hwnd(window_id)
        elif sys.platform == "darwin":
            self._handle.set_nsobject(window_id)
        else:
            self._handle.set_xwindow(window_id)

    def _listen_ready(self, fire: Callable[[], None]) -> None:
        events = self._media.event_manager()
        parsed_event = self._vlc.EventType.MediaParsedChanged

        def _on_parsed(event) -> None:  # noqa: ANN001
            if self._is_parsed():
                self._deliver(fire)

        events.event_attach(parsed_event, _on_parsed)
        self._on_detach(lambda: events.event_detach(parsed_event))
        if self._is_parsed():
            self._deliver(fire)
            return
        self._media.parse_with_options(self._vlc.MediaParseFlag.network, _PARSE_TIMEOUT_MS)

    def _listen_events(self, sink: EventSink) -> None:
        types = self._vlc.EventType
        handlers = {
            types.MediaPlayerPlaying: lambda event: self._deliver(sink.handle_playing),
            types.MediaPlayerPaused: lambda event: self._deliver(sink.handle_paused),
            types.MediaPlayerStopped: lambda event: self._deliver(sink.handle_paused),
            types.MediaPlayerEndReached: lambda event: self._deliver(sink.handle_paused),
            types.MediaPlayerEncounteredError: lambda event: self._deliver(
                sink.handle_paused, PlaybackFailure(kind=self.kind, reason="error")
            ),
            types.MediaPlayerTimeChanged: lambda event: self._deliver(
                sink.handle_position, event.u.new_time / 1000.0
            ),
        }
        events = self._handle.event_manager()
        for event_type, handler in handlers.items():
            events.event_attach(event_type, handler)
            self._on_detach(lambda et=event_type: events.event_detach(et))

    def close(self) -> None:
        if self._event_runner is not None:
            self._event_runner.close(wait=False)
        if self._handle is not None:
            self._handle.stop()
            self._handle.release()
        if self._media is not None:
            self._media.release()

    def intrinsic_metadata(self) -> Optional[VideoMetadata]:
        media = self._media
        if media is None:
            return None
        title = media.get_meta(self._vlc.Meta.Title)
        duration_ms = media.get_duration()
        return VideoMetadata(
            kind=self.kind,
            title=title,
            duration=duration_ms / 1000.0 if duration_ms and duration_ms > 0 else None,
            raw={"mrl": media.get_mrl(), "title": title, "duration_ms": duration_ms},
        )

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    def get_current_time(self) -> float:
        return max(self._require_handle().get_time(), 0) / 1000.0

    def play(self) -> None:
        self._require_handle().play()

    def pause(self) -> None:
        # set_pause is idempotent where pause() toggles
        self._require_handle().set_pause(1)

    def seek_to(self, seconds: float) -> None:
        self._require_handle().set_time(int(seconds * 1000))

    def set_playback_rate(self, rate: float) -> None:
        self._require_handle().set_rate(float(rate))

    def get_duration(self, callback: DurationCallback) -> None:
        length_ms = self._require_handle().get_length()
        if length_ms <= 0 and self._media is not None:
            length_ms = self._media.get_duration()
        callback(length_ms / 1000.0 if length_ms and length_ms > 0 else None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _is_parsed(self) -> bool:
        return self._media.get_parsed_status() == self._vlc.MediaParsedStatus.done

    def _submit_event(self, fn: Callable[[], None]) -> None:
        try:
            self._event_runner.submit(TaskSpec(fn=fn, name="vlc_event"))
        except TaskError:
            log.debug("vlc_event_after_close")


__all__ = ["EmbeddedAdapter"]
