"""Session store contract consumed by the player controller."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable
import threading

CURRENT_TIME = "currentTime"
START_TIME = "startTime"
END_TIME = "endTime"
LOOP_DURATION = "loopDuration"
LOOPING = "looping"
VIDEO_PLAYING = "videoPlaying"
DRAGGING_CURSOR = "draggingCursor"
SILENT_FOCUS = "silentFocus"
CURRENT_SUB = "currentSub"


@runtime_checkable
class SessionStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemorySession:
    """Plain dictionary-backed store, enough for the CLI and tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)
