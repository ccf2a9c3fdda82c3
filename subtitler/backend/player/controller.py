"""One player instance over whichever backend renders the video."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Dict, Mapping, Optional
import threading

from subtitler.backend.common.logging import get_logger
from subtitler.backend.common.tasks import Scheduler
from subtitler.backend.player import session as fields
from subtitler.backend.player.adapters import BackendAdapter, PlayerHost, create_adapter
from subtitler.backend.player.captions import CaptionSync
from subtitler.backend.player.events import CanonicalEvent, EventBus, Listener
from subtitler.backend.player.exceptions import PlayerStateError, VideoIdError
from subtitler.backend.player.ids import resolve_video_id
from subtitler.backend.player.metadata import MetadataFetcher, get_metadata_fetcher
from subtitler.backend.player.models import (
    BackendKind,
    PlaybackFailure,
    PlaybackStatus,
    SubtitleRecord,
    VideoConfig,
    VideoMetadata,
)
from subtitler.backend.player.poller import TimeSyncPoller
from subtitler.backend.player.session import SessionStore
from subtitler.config.settings import DEFAULT_LOOP_DURATION, Settings, get_settings

log = get_logger(__name__)


class VideoElement:
    """Uniform playback control and canonical events for one on-screen video.

    The backend is picked once from ``type`` and never changes. Native backend
    signals come back through ``handle_position``/``handle_playing``/
    ``handle_paused``; consumers subscribe to ``ready``, ``metadataReceived``
    and ``playbackError`` through :meth:`on`.
    """

    def __init__(
        self,
        source: str,
        *,
        session: SessionStore,
        type: BackendKind | str = BackendKind.EMBEDDED,
        target: Optional[str] = None,
        host: Optional[PlayerHost] = None,
        scheduler: Optional[Scheduler] = None,
        metadata_fetcher: Optional[MetadataFetcher] = None,
        captions: Optional[CaptionSync] = None,
        settings: Optional[Settings] = None,
        adapter_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        config = VideoConfig(source=source, type=type, target=target)
        self._settings = settings or get_settings()
        self._lock = threading.RLock()
        self._wrap_pending = False
        self._metadata_future: Optional[Future] = None
        self._captions = captions

        self.source = config.source
        self.backend_kind = config.type
        self.target = config.target or self._settings.default_target
        self.session = session
        self.events = EventBus()
        self.status = PlaybackStatus.UNINITIALIZED
        self.is_ready = False
        self.title: Optional[str] = None
        self.duration: Optional[float] = None
        self.metadata: Optional[VideoMetadata] = None

        self.video_id = resolve_video_id(self.source, self.backend_kind)
        if self.backend_kind.is_remote and self.video_id is None:
            raise VideoIdError(self.source, self.backend_kind.value)

        self._adapter = create_adapter(
            self.backend_kind,
            self.source,
            target=self.target,
            video_id=self.video_id,
            host=host,
            settings=self._settings,
            **dict(adapter_options or {}),
        )
        self._poller = TimeSyncPoller(
            self._adapter.get_current_time,
            self._on_position,
            scheduler=scheduler,
            interval_sec=self._settings.poll_interval_sec,
            lock=self._lock,
        )

        self._set_status(PlaybackStatus.INITIALIZING)
        self._adapter.initialize()
        if self.backend_kind.is_remote:
            self._request_metadata(metadata_fetcher or get_metadata_fetcher())
        self.embed()

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> "VideoElement":
        parsed = VideoConfig.model_validate(dict(config))
        return cls(parsed.source, type=parsed.type, target=parsed.target, **kwargs)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def adapter(self) -> BackendAdapter:
        return self._adapter

    @property
    def backend_handle(self) -> Any:
        return self._adapter.handle

    @property
    def polling(self) -> bool:
        return self._poller.active

    def describe(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "type": self.backend_kind.value,
            "target": self.target,
            "video_id": self.video_id,
            "status": self.status.value,
            "ready": self.is_ready,
            "title": self.title,
            "duration": self.duration,
            "polling": self.polling,
            "playback_rate_supported": self._adapter.supports_playback_rate,
        }

    # ------------------------------------------------------------------
    # Public control API
    # ------------------------------------------------------------------
    def embed(self, target: Optional[str] = None) -> "VideoElement":
        with self._lock:
            self._ensure_alive()
            if target is not None:
                self.set_target(target)
            self._adapter.embed(self.target)
            self._adapter.bind_ready(self._on_ready)
        return self

    def set_target(self, target: str) -> "VideoElement":
        self.target = target
        self._adapter.target = target
        return self

    def play(self) -> None:
        with self._lock:
            self._ensure_alive()
            self._adapter.play()

    def pause(self) -> None:
        with self._lock:
            self._ensure_alive()
            self._adapter.pause()

    def seek_to(self, seconds: float) -> None:
        with self._lock:
            self._ensure_alive()
            self._wrap_pending = False
            self._adapter.seek_to(float(seconds))

    def get_current_time(self) -> float:
        with self._lock:
            self._ensure_alive()
            return self._adapter.get_current_time()

    def get_video_duration(self, callback: Callable[[Optional[float]], None]) -> None:
        with self._lock:
            self._ensure_alive()
            self._adapter.get_duration(callback)

    def set_playback_rate(self, rate: float) -> None:
        with self._lock:
            self._ensure_alive()
            self._adapter.set_playback_rate(rate)

    def sync_captions(self, time: float, *, silent: bool = False) -> Optional[SubtitleRecord]:
        if self._captions is None:
            return None
        with self._lock:
            return self._captions.sync(time, silent=silent)

    def on(self, event: CanonicalEvent | str, listener: Listener) -> Callable[[], None]:
        return self.events.on(event, listener)

    def off(self, event: CanonicalEvent | str, listener: Listener) -> None:
        self.events.off(event, listener)

    def destroy(self) -> None:
        """Detach from the backend for good; every later call raises."""
        with self._lock:
            if self.status is PlaybackStatus.DESTROYED:
                return
            self._poller.stop()
            self._adapter.unbind()
            self._adapter.close()
            if self._metadata_future is not None:
                self._metadata_future.cancel()
            self.events.clear()
            self._set_status(PlaybackStatus.DESTROYED)

    # ------------------------------------------------------------------
    # Normalized backend events
    # ------------------------------------------------------------------
    def handle_playing(self) -> None:
        with self._lock:
            if self.status is PlaybackStatus.DESTROYED:
                return
            self._set_status(PlaybackStatus.PLAYING)
            self.session.set(fields.VIDEO_PLAYING, True)
            if self._adapter.needs_position_polling:
                self._poller.start()

    def handle_paused(self, failure: Optional[PlaybackFailure] = None) -> None:
        """Pause, end of media and playback errors all land here."""
        with self._lock:
            if self.status is PlaybackStatus.DESTROYED:
                return
            self._set_status(PlaybackStatus.PAUSED)
            self.session.set(fields.VIDEO_PLAYING, False)
            self._poller.stop()
            if failure is not None:
                log.warning(
                    "playback_error",
                    kind=self.backend_kind.value,
                    reason=failure.reason,
                    detail=failure.detail,
                )
                self.events.emit(CanonicalEvent.PLAYBACK_ERROR, failure)

    def handle_position(self, seconds: Optional[float] = None) -> None:
        self._on_position(seconds)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _on_ready(self) -> None:
        with self._lock:
            if self.is_ready or self.status is PlaybackStatus.DESTROYED:
                return
            self.is_ready = True
            self._set_status(PlaybackStatus.READY)
            self._adapter.bind_events(self)
            log.info("player_ready", kind=self.backend_kind.value, source=self.source)
            self.events.emit(CanonicalEvent.READY)
            intrinsic = self._adapter.intrinsic_metadata()
            if intrinsic is not None:
                self._apply_metadata(intrinsic)

    def _on_position(self, seconds: Optional[float]) -> None:
        with self._lock:
            if self.status is PlaybackStatus.DESTROYED:
                return
            # a manual scrub owns the position until it ends
            if self.session.get(fields.DRAGGING_CURSOR):
                return

            current = float(seconds) if seconds is not None else self._adapter.get_current_time()
            self.session.set(fields.CURRENT_TIME, current)

            end = self.session.get(fields.END_TIME)
            if end is None:
                self.session.set(fields.END_TIME, current + self._loop_duration())
                self.session.set(fields.START_TIME, current)
                return

            if current <= end:
                self._wrap_pending = False
                return

            if (
                self.session.get(fields.LOOPING)
                and self.session.get(fields.VIDEO_PLAYING)
                and not self._wrap_pending
            ):
                start = self.session.get(fields.START_TIME)
                if start is None:
                    return
                # one seek per overrun; stale ticks past the end are ignored
                self._wrap_pending = True
                log.debug("loop_wrap", position=current, start=start, end=end)
                self._adapter.seek_to(float(start))

    def _loop_duration(self) -> float:
        fallback = self._settings.default_loop_duration
        if fallback <= 0:
            fallback = DEFAULT_LOOP_DURATION
        try:
            value = float(self.session.get(fields.LOOP_DURATION))
        except (TypeError, ValueError):
            return fallback
        return value if value > 0 else fallback

    def _request_metadata(self, fetcher: MetadataFetcher) -> None:
        future = fetcher.fetch_async(self.backend_kind, self.video_id)
        self._metadata_future = future
        future.add_done_callback(self._on_metadata_done)

    def _on_metadata_done(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            log.warning(
                "metadata_fetch_failed",
                kind=self.backend_kind.value,
                video_id=self.video_id,
                error=str(error),
            )
            return
        with self._lock:
            if self.status is PlaybackStatus.DESTROYED:
                return
            self._apply_metadata(future.result())

    def _apply_metadata(self, metadata: VideoMetadata) -> None:
        self.metadata = metadata
        self.title = metadata.title
        self.duration = metadata.duration
        log.info(
            "metadata_received",
            kind=self.backend_kind.value,
            title=metadata.title,
            duration=metadata.duration,
        )
        self.events.emit(CanonicalEvent.METADATA_RECEIVED, metadata)

    def _set_status(self, status: PlaybackStatus) -> None:
        if status is not self.status:
            log.debug("player_status", previous=self.status.value, status=status.value)
            self.status = status

    def _ensure_alive(self) -> None:
        if self.status is PlaybackStatus.DESTROYED:
            raise PlayerStateError("player has been destroyed")


__all__ = ["VideoElement"]
