"""Canonical event bus shared by every backend."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List
import threading

from subtitler.backend.common.logging import get_logger

log = get_logger(__name__)

Listener = Callable[..., None]


class CanonicalEvent(str, Enum):
    READY = "ready"
    METADATA_RECEIVED = "metadataReceived"
    PLAYBACK_ERROR = "playbackError"


class EventBus:
    """Publish/subscribe over :class:`CanonicalEvent`.

    Listeners run synchronously in subscription order. A failing listener is
    logged and does not prevent the remaining listeners from running.
    """

    def __init__(self) -> None:
        self._listeners: Dict[CanonicalEvent, List[Listener]] = {}
        self._lock = threading.Lock()

    def on(self, event: CanonicalEvent | str, listener: Listener) -> Callable[[], None]:
        key = CanonicalEvent(event)
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)

        return lambda: self.off(key, listener)

    def once(self, event: CanonicalEvent | str, listener: Listener) -> Callable[[], None]:
        def _wrapper(*payload: Any) -> None:
            self.off(event, _wrapper)
            listener(*payload)

        return self.on(event, _wrapper)

    def off(self, event: CanonicalEvent | str, listener: Listener) -> None:
        key = CanonicalEvent(event)
        with self._lock:
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, event: CanonicalEvent | str, *payload: Any) -> None:
        key = CanonicalEvent(event)
        with self._lock:
            listeners = list(self._listeners.get(key, ()))
        for listener in listeners:
            try:
                listener(*payload)
            except Exception:  # noqa: BLE001
                log.exception("event_listener_failed", event=key.value)

    def listener_count(self, event: CanonicalEvent | str) -> int:
        with self._lock:
            return len(self._listeners.get(CanonicalEvent(event), ()))

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
