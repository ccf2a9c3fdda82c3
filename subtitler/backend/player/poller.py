"""Synthetic position updates for backends without a native time event."""

from __future__ import annotations

from typing import Callable, Optional
import threading

from subtitler.backend.common.logging import get_logger
from subtitler.backend.common.tasks import IntervalHandle, Scheduler, ThreadScheduler

log = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 0.25


class TimeSyncPoller:
    """At most one live interval per poller.

    Each start bumps a generation counter, and ticks from an older generation
    are dropped, so a tick already queued when ``stop`` ran never reaches
    ``on_tick``.
    """

    def __init__(
        self,
        read_position: Callable[[], float],
        on_tick: Callable[[float], None],
        *,
        scheduler: Optional[Scheduler] = None,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._read_position = read_position
        self._on_tick = on_tick
        self._scheduler = scheduler or ThreadScheduler(name="time-sync")
        self.interval_sec = interval_sec
        self._lock = lock or threading.RLock()
        self._handle: Optional[IntervalHandle] = None
        self._generation = 0

    @property
    def active(self) -> bool:
        with self._lock:
            return self._handle is not None

    def start(self) -> None:
        with self._lock:
            self._cancel()
            generation = self._generation
            self._handle = self._scheduler.set_interval(
                lambda: self._tick(generation), self.interval_sec
            )
            log.debug("time_sync_started", interval_sec=self.interval_sec)

    def stop(self) -> None:
        with self._lock:
            if self._handle is not None:
                log.debug("time_sync_stopped")
            self._cancel()

    def _cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._scheduler.clear_interval(self._handle)
            self._handle = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._handle is None:
                return
            self._on_tick(self._read_position())


__all__ = ["DEFAULT_INTERVAL_SEC", "TimeSyncPoller"]
