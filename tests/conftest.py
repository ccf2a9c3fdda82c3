from __future__ import annotations

from concurrent.futures import Future
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from subtitler.backend.player.session import InMemorySession
from subtitler.config.settings import Settings


# ----------------------------------------------------------------------
# Scheduler
# ----------------------------------------------------------------------

class FakeInterval:
    def __init__(self, fn: Callable[[], None], interval: float) -> None:
        self.fn = fn
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self) -> None:
        self.intervals: List[FakeInterval] = []

    def set_interval(self, fn: Callable[[], None], interval_sec: float) -> FakeInterval:
        handle = FakeInterval(fn, interval_sec)
        self.intervals.append(handle)
        return handle

    def clear_interval(self, handle: FakeInterval) -> None:
        handle.cancel()

    @property
    def live(self) -> List[FakeInterval]:
        return [h for h in self.intervals if not h.cancelled]

    def tick(self) -> None:
        for handle in self.live:
            handle.fn()


# ----------------------------------------------------------------------
# libVLC stand-ins
# ----------------------------------------------------------------------

class FakeEventManager:
    def __init__(self) -> None:
        self.callbacks: Dict[str, List[Callable[..., None]]] = {}

    def event_attach(self, event_type: str, callback: Callable[..., None]) -> None:
        self.callbacks.setdefault(event_type, []).append(callback)

    def event_detach(self, event_type: str) -> None:
        self.callbacks.pop(event_type, None)

    def fire(self, event_type: str, event: Any = None) -> None:
        for callback in list(self.callbacks.get(event_type, [])):
            callback(event)


class FakeMedia:
    def __init__(self, mrl: str) -> None:
        self.mrl = mrl
        self.events = FakeEventManager()
        self.parsed_status = "init"
        self.parse_requests: List[Any] = []
        self.title = "Interview"
        self.duration_ms = 95_000
        self.released = False

    def event_manager(self) -> FakeEventManager:
        return self.events

    def get_parsed_status(self) -> str:
        return self.parsed_status

    def parse_with_options(self, flag: Any, timeout: int) -> int:
        self.parse_requests.append((flag, timeout))
        return 0

    def get_meta(self, key: str) -> Optional[str]:
        return self.title if key == "title" else None

    def get_duration(self) -> int:
        return self.duration_ms

    def get_mrl(self) -> str:
        return self.mrl

    def release(self) -> None:
        self.released = True


class FakeMediaPlayer:
    def __init__(self) -> None:
        self.events = FakeEventManager()
        self.media: Optional[FakeMedia] = None
        self.calls: List[tuple] = []
        self.time_ms = 0
        self.length_ms = 95_000

    def event_manager(self) -> FakeEventManager:
        return self.events

    def set_media(self, media: FakeMedia) -> None:
        self.media = media

    def play(self) -> int:
        self.calls.append(("play",))
        return 0

    def set_pause(self, flag: int) -> None:
        self.calls.append(("set_pause", flag))

    def set_time(self, ms: int) -> None:
        self.calls.append(("set_time", ms))
        self.time_ms = ms

    def get_time(self) -> int:
        return self.time_ms

    def get_length(self) -> int:
        return self.length_ms

    def set_rate(self, rate: float) -> int:
        self.calls.append(("set_rate", rate))
        return 0

    def set_xwindow(self, window: int) -> None:
        self.calls.append(("set_window", window))

    set_hwnd = set_xwindow
    set_nsobject = set_xwindow

    def stop(self) -> None:
        self.calls.append(("stop",))

    def release(self) -> None:
        self.calls.append(("release",))


class FakeVlcInstance:
    def __init__(self) -> None:
        self.players: List[FakeMediaPlayer] = []
        self.media: List[FakeMedia] = []

    def media_new(self, mrl: str) -> FakeMedia:
        media = FakeMedia(mrl)
        self.media.append(media)
        return media

    def media_new_path(self, path: str) -> FakeMedia:
        return self.media_new(f"file://{path}")

    def media_player_new(self) -> FakeMediaPlayer:
        player = FakeMediaPlayer()
        self.players.append(player)
        return player


def make_fake_vlc() -> SimpleNamespace:
    event_names = [
        "MediaParsedChanged",
        "MediaPlayerPlaying",
        "MediaPlayerPaused",
        "MediaPlayerStopped",
        "MediaPlayerEndReached",
        "MediaPlayerEncounteredError",
        "MediaPlayerTimeChanged",
    ]
    instance = FakeVlcInstance()
    return SimpleNamespace(
        EventType=SimpleNamespace(**{name: name for name in event_names}),
        MediaParsedStatus=SimpleNamespace(done="done"),
        MediaParseFlag=SimpleNamespace(network="network"),
        Meta=SimpleNamespace(Title="title"),
        Instance=lambda *args: instance,
        instance=instance,
    )


def time_event(ms: int) -> SimpleNamespace:
    return SimpleNamespace(u=SimpleNamespace(new_time=ms))


# ----------------------------------------------------------------------
# Remote player host stand-ins
# ----------------------------------------------------------------------

class FakeYouTubePlayer:
    def __init__(self, target: str, options: Dict[str, Any]) -> None:
        self.target = target
        self.options = options
        self.listeners: Dict[str, List[Callable[..., None]]] = {}
        self.calls: List[tuple] = []
        self.current_time = 0.0
        self.duration = 212.0

    def add_event_listener(self, name: str, callback: Callable[..., None]) -> None:
        self.listeners.setdefault(name, []).append(callback)

    def remove_event_listener(self, name: str, callback: Callable[..., None]) -> None:
        self.listeners.get(name, []).remove(callback)

    def fire(self, name: str, data: Any = None) -> None:
        for callback in list(self.listeners.get(name, [])):
            callback(SimpleNamespace(data=data))

    def get_current_time(self) -> float:
        return self.current_time

    def play_video(self) -> None:
        self.calls.append(("play",))

    def pause_video(self) -> None:
        self.calls.append(("pause",))

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None:
        self.calls.append(("seek", seconds))

    def set_playback_rate(self, rate: float) -> None:
        self.calls.append(("rate", rate))

    def get_duration(self) -> float:
        return self.duration


class FakeYouTubeApi:
    def __init__(self) -> None:
        self.players: List[FakeYouTubePlayer] = []

    def create_player(self, target: str, options: Dict[str, Any]) -> FakeYouTubePlayer:
        player = FakeYouTubePlayer(target, options)
        self.players.append(player)
        return player


class FakeVimeoBridge:
    def __init__(self, frame: Dict[str, Any]) -> None:
        self.frame = frame
        self.events: Dict[str, Callable[..., None]] = {}
        self.calls: List[tuple] = []
        self.callbacks: Dict[str, Callable[[Any], None]] = {}

    def add_event(self, name: str, callback: Callable[..., None]) -> None:
        self.events[name] = callback

    def remove_event(self, name: str) -> None:
        self.events.pop(name, None)

    def api(self, method: str, value: Any = None, callback: Optional[Callable[[Any], None]] = None) -> None:
        self.calls.append((method, value))
        if callback is not None:
            self.callbacks[method] = callback

    def fire(self, name: str, data: Any = None) -> None:
        if name in self.events:
            self.events[name](data)


class FakeHost:
    def __init__(self) -> None:
        self.youtube_api = FakeYouTubeApi()
        self.script_loads: List[str] = []
        self._pending: Dict[str, List[Callable[[Any], None]]] = {}
        self.frames: List[Dict[str, Any]] = []
        self.bridges: List[FakeVimeoBridge] = []

    def load_script(self, url: str, on_loaded: Callable[[Any], None]) -> None:
        self.script_loads.append(url)
        self._pending.setdefault(url, []).append(on_loaded)

    def finish_loads(self) -> None:
        pending, self._pending = self._pending, {}
        for callbacks in pending.values():
            for callback in callbacks:
                callback(self.youtube_api)

    def insert_frame(self, target: str, attributes: Dict[str, str]) -> Dict[str, Any]:
        frame = {"target": target, **attributes}
        self.frames.append(frame)
        return frame

    def message_bridge(self, frame: Dict[str, Any]) -> FakeVimeoBridge:
        bridge = FakeVimeoBridge(frame)
        self.bridges.append(bridge)
        return bridge


class PendingMetadataFetcher:
    """Hands out futures the test resolves by hand."""

    def __init__(self) -> None:
        self.requests: List[tuple] = []
        self.futures: List[Future] = []

    def fetch_async(self, kind: Any, video_id: str) -> Future:
        future: Future = Future()
        self.requests.append((kind, video_id))
        self.futures.append(future)
        return future


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_name="Subtitler",
        env="test",
        log_level="DEBUG",
        task_workers=1,
        poll_interval_ms=250,
        default_loop_duration=8.0,
        default_target="player",
        youtube_player_height="500",
        vimeo_player_width="100%",
        vimeo_player_height="350px",
        http_timeout=5.0,
        metadata_retries=0,
    )


@pytest.fixture
def session() -> InMemorySession:
    return InMemorySession({"loopDuration": 8.0, "looping": False, "draggingCursor": False})


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_vlc() -> SimpleNamespace:
    return make_fake_vlc()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def fetcher() -> PendingMetadataFetcher:
    return PendingMetadataFetcher()


def inline(fn: Callable[[], None]) -> None:
    fn()
