"""Capability set shared by every playback backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, List, Mapping, Optional, Protocol

from subtitler.backend.common.logging import get_logger
from subtitler.backend.player.exceptions import BackendUnavailable, PlayerStateError
from subtitler.backend.player.models import BackendKind, PlaybackFailure, VideoMetadata
from subtitler.config.settings import Settings, get_settings

log = get_logger(__name__)

DurationCallback = Callable[[Optional[float]], None]
Dispatch = Callable[[Callable[[], None]], Any]


class EventSink(Protocol):
    """Receiver of normalized backend events (implemented by ``VideoElement``)."""

    def handle_position(self, seconds: Optional[float] = None) -> None: ...

    def handle_playing(self) -> None: ...

    def handle_paused(self, failure: Optional[PlaybackFailure] = None) -> None: ...


class PlayerHost(Protocol):
    """Runtime hosting remote player frames (webview, browser bridge...).

    ``load_script`` completes by calling ``on_loaded`` with the namespace the
    script exposes; for the YouTube iframe API that namespace must provide
    ``create_player(target, options)``.
    """

    def load_script(self, url: str, on_loaded: Callable[[Any], None]) -> None: ...

    def insert_frame(self, target: str, attributes: Mapping[str, str]) -> Any: ...

    def message_bridge(self, frame: Any) -> Any: ...


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


class BackendAdapter(ABC):
    kind: ClassVar[BackendKind]
    needs_position_polling: ClassVar[bool] = False
    supports_playback_rate: ClassVar[bool] = True

    def __init__(
        self,
        source: str,
        *,
        target: Optional[str] = None,
        video_id: Optional[str] = None,
        host: Optional[PlayerHost] = None,
        settings: Optional[Settings] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> None:
        self.source = source
        self.target = target
        self.video_id = video_id
        self._host = host
        self._settings = settings or get_settings()
        self._dispatch: Dispatch = dispatch or _call_inline
        self._handle: Any = None
        self._initialized = False
        self._ready_callback: Optional[Callable[[], None]] = None
        self._ready_bound = False
        self._sink: Optional[EventSink] = None
        self._detachers: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def handle(self) -> Any:
        return self._handle

    def initialize(self) -> None:
        """Create the backend handle; later calls are no-ops."""
        if self._initialized:
            return
        self._initialized = True
        self._create_handle()

    def bind_ready(self, callback: Callable[[], None]) -> None:
        self._ready_callback = callback
        if self._handle is not None and not self._ready_bound:
            self._attach_ready()

    def bind_events(self, sink: EventSink) -> None:
        if self._sink is not None:
            return
        self._sink = sink
        self._listen_events(sink)

    def unbind(self) -> None:
        while self._detachers:
            detach = self._detachers.pop()
            try:
                detach()
            except Exception as exc:  # noqa: BLE001
                log.warning("backend_detach_failed", kind=self.kind.value, error=str(exc))
        self._sink = None

    def close(self) -> None:
        """Release backend resources once the owning element is destroyed."""

    def embed(self, target: Optional[str]) -> None:
        self.target = target

    def intrinsic_metadata(self) -> Optional[VideoMetadata]:
        return None

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    @abstractmethod
    def get_current_time(self) -> float:
        raise NotImplementedError

    @abstractmethod
    def play(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def pause(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def seek_to(self, seconds: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_duration(self, callback: DurationCallback) -> None:
        raise NotImplementedError

    def set_playback_rate(self, rate: float) -> None:
        log.debug("playback_rate_unsupported", kind=self.kind.value, rate=rate)

    # ------------------------------------------------------------------
    # Hooks for concrete backends
    # ------------------------------------------------------------------
    @abstractmethod
    def _create_handle(self) -> None:
        """Build the handle now or arrange for ``_handle_created`` to run later."""

    @abstractmethod
    def _listen_ready(self, fire: Callable[[], None]) -> None:
        raise NotImplementedError

    @abstractmethod
    def _listen_events(self, sink: EventSink) -> None:
        raise NotImplementedError

    def _handle_created(self, handle: Any) -> None:
        if self._handle is not None:
            log.warning("backend_handle_exists", kind=self.kind.value)
            return
        self._handle = handle
        log.info("backend_handle_created", kind=self.kind.value, target=self.target)
        if self._ready_callback is not None and not self._ready_bound:
            self._attach_ready()

    def _attach_ready(self) -> None:
        self._ready_bound = True
        self._listen_ready(self._fire_ready)

    def _fire_ready(self) -> None:
        if self._ready_callback is not None:
            self._ready_callback()

    def _on_detach(self, detach: Callable[[], None]) -> None:
        self._detachers.append(detach)

    def _deliver(self, fn: Callable[..., None], *args: Any) -> None:
        self._dispatch(lambda: fn(*args))

    def _require_handle(self) -> Any:
        if self._handle is None:
            raise PlayerStateError(f"{self.kind.value} player has not been created yet")
        return self._handle

    def _require_host(self) -> PlayerHost:
        if self._host is None:
            raise BackendUnavailable(f"{self.kind.value} playback needs a player host")
        return self._host


__all__ = [
    "BackendAdapter",
    "DurationCallback",
    "EventSink",
    "PlayerHost",
]
