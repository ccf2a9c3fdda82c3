"""Load-once bootstrap scripts for remote player backends."""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, List
from weakref import WeakKeyDictionary
import threading

from subtitler.backend.common.logging import get_logger

log = get_logger(__name__)

ScriptCallback = Callable[[Any], None]


class ScriptLoader:
    """Loads each script URL at most once per host.

    Every caller gets its own completion callback: requests made while a load
    is in flight are queued and all run when it finishes, later requests run
    immediately with the cached namespace.
    """

    _registry: ClassVar["WeakKeyDictionary[Any, ScriptLoader]"] = WeakKeyDictionary()
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, host: Any) -> None:
        self._host = host
        self._loaded: Dict[str, Any] = {}
        self._pending: Dict[str, List[ScriptCallback]] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_host(cls, host: Any) -> "ScriptLoader":
        with cls._registry_lock:
            loader = cls._registry.get(host)
            if loader is None:
                loader = cls(host)
                cls._registry[host] = loader
            return loader

    def require(self, url: str, callback: ScriptCallback) -> None:
        with self._lock:
            loaded = url in self._loaded
            if loaded:
                namespace = self._loaded[url]
            elif url in self._pending:
                self._pending[url].append(callback)
                return
            else:
                self._pending[url] = [callback]

        if loaded:
            callback(namespace)
            return

        log.info("script_load_start", url=url)
        self._host.load_script(url, lambda ns: self._complete(url, ns))

    def is_loaded(self, url: str) -> bool:
        with self._lock:
            return url in self._loaded

    def _complete(self, url: str, namespace: Any) -> None:
        with self._lock:
            if url in self._loaded:
                log.debug("script_load_duplicate_completion", url=url)
                return
            self._loaded[url] = namespace
            callbacks = self._pending.pop(url, [])

        log.info("script_load_done", url=url, waiting=len(callbacks))
        for callback in callbacks:
            try:
                callback(namespace)
            except Exception:  # noqa: BLE001
                log.exception("script_callback_failed", url=url)


__all__ = ["ScriptLoader"]
