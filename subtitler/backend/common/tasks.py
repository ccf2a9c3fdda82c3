"""Background work: a retrying task runner and interval timers."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from typing import Callable, Any, Optional, Protocol
import threading
import time

from subtitler.backend.common.errors import TaskError
from subtitler.backend.common.logging import get_logger

log = get_logger(__name__)



@dataclass
class TaskSpec:
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = None
    retries: int = 0
    backoff_sec: float = 0.5
    name: str = "task"

    def __post_init__(self):
        if self.kwargs is None:
            self.kwargs = {}


class TaskRunner:
    """Tiny in-process task runner with retries/backoff."""
    def __init__(self, max_workers: int = 4, *, context: Optional[str] = None):
        self._context = context or "task_runner"
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix=f"subtitler-{self._context}",
        )
        self._closed = False
        self._lock = threading.Lock()

    def submit(self, spec: TaskSpec) -> Future:
        if self._closed:
            raise TaskError("TaskRunner is closed")

        def _wrapped():
            attempt = 0
            while True:
                try:
                    log.debug("task_start", task=spec.name, attempt=attempt)
                    result = spec.fn(*spec.args, **spec.kwargs)
                    log.debug("task_done", task=spec.name, attempt=attempt)
                    return result
                except Exception as e:  # noqa: BLE001
                    if attempt >= spec.retries:
                        log.error("task_fail", task=spec.name, attempt=attempt, error=str(e))
                        raise
                    sleep_for = spec.backoff_sec * (2 ** attempt)
                    log.warning("task_retry", task=spec.name, attempt=attempt, sleep_for=sleep_for, error=str(e))
                    time.sleep(sleep_for)
                    attempt += 1

        return self._executor.submit(_wrapped)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if not self._closed:
                self._executor.shutdown(wait=wait, cancel_futures=not wait)
                self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(wait=True)


# ----------------------------------------------------------------------
# Interval scheduling
# ----------------------------------------------------------------------

class IntervalHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Recurring-callback contract used by the time-sync poller."""

    def set_interval(self, fn: Callable[[], None], interval_sec: float) -> IntervalHandle: ...

    def clear_interval(self, handle: IntervalHandle) -> None: ...


class RepeatingTimer(threading.Thread):
    """Daemon thread invoking ``fn`` every ``interval`` seconds until cancelled."""

    def __init__(self, interval: float, fn: Callable[[], None], name: str = "repeating-timer"):
        super().__init__(name=name, daemon=True)
        self.interval = interval
        self._fn = fn
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self._fn()
            except Exception as e:  # noqa: BLE001
                log.error("timer_callback_failed", timer=self.name, error=str(e))

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()


class ThreadScheduler:
    """Default scheduler backed by one ``RepeatingTimer`` per interval."""

    def __init__(self, name: str = "subtitler-interval") -> None:
        self._name = name
        self._counter = 0
        self._lock = threading.Lock()

    def set_interval(self, fn: Callable[[], None], interval_sec: float) -> RepeatingTimer:
        with self._lock:
            self._counter += 1
            timer = RepeatingTimer(interval_sec, fn, name=f"{self._name}-{self._counter}")
        timer.start()
        return timer

    def clear_interval(self, handle: IntervalHandle) -> None:
        handle.cancel()
