"""Title/duration retrieval for remote backends."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Mapping, Optional
import re
import threading

from subtitler.backend.common.logging import get_logger
from subtitler.backend.common.tasks import TaskRunner, TaskSpec
from subtitler.backend.network_handlers.session import HttpSession
from subtitler.backend.player.exceptions import MetadataError
from subtitler.backend.player.models import BackendKind, VideoMetadata
from subtitler.config.settings import Settings, get_settings

log = get_logger(__name__)

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def parse_iso8601_duration(value: Optional[str]) -> Optional[float]:
    """``PT4M13S`` -> ``253.0``; ``None`` for anything unparseable."""
    if not value:
        return None
    match = _ISO_DURATION.match(value)
    if not match:
        return None
    parts = {k: float(v) for k, v in match.groupdict().items() if v}

    return (
        parts.get("days", 0.0) * 86400
        + parts.get("hours", 0.0) * 3600
        + parts.get("minutes", 0.0) * 60
        + parts.get("seconds", 0.0)
    )


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class MetadataFetcher:
    """Fetches metadata on a background runner; each request gets its own future."""

    def __init__(
        self,
        http: Optional[HttpSession] = None,
        task_runner: Optional[TaskRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http = http
        self._http_lock = threading.Lock()
        self._task_runner = task_runner or TaskRunner(
            max_workers=self._settings.task_workers,
            context="metadata",
        )

    @property
    def http(self) -> HttpSession:
        with self._http_lock:
            if self._http is None:
                self._http = HttpSession()
            return self._http

    def fetch_async(self, kind: BackendKind, video_id: str) -> Future:
        return self._task_runner.submit(
            TaskSpec(
                fn=self.fetch,
                args=(kind, video_id),
                retries=self._settings.metadata_retries,
                backoff_sec=1.0,
                name=f"metadata_{kind.value}",
            )
        )

    def fetch(self, kind: BackendKind, video_id: str) -> VideoMetadata:
        if kind is BackendKind.YOUTUBE:
            return self._fetch_youtube(video_id)
        if kind is BackendKind.VIMEO:
            return self._fetch_vimeo(video_id)
        raise MetadataError(f"{kind.value} metadata is read from the media itself")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _fetch_youtube(self, video_id: str) -> VideoMetadata:
        if not self.http.urlm.has_credentials("youtube"):
            return self._fetch_youtube_oembed(video_id)

        payload = self.http.get_json(
            "youtube",
            "video",
            params={"id": video_id, "part": "snippet,contentDetails"},
        )
        items = (payload.get("items") or []) if isinstance(payload, Mapping) else []
        if not items:
            raise MetadataError(f"YouTube returned no video for id {video_id}")
        item = items[0]

        return VideoMetadata(
            kind=BackendKind.YOUTUBE,
            video_id=video_id,
            title=(item.get("snippet") or {}).get("title"),
            duration=parse_iso8601_duration((item.get("contentDetails") or {}).get("duration")),
            raw=payload,
        )

    def _fetch_youtube_oembed(self, video_id: str) -> VideoMetadata:
        # oEmbed needs no API key but carries no duration
        payload = self.http.get_json(
            "youtube_oembed",
            "video",
            params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
        )
        if not isinstance(payload, Mapping):
            raise MetadataError("Unexpected oEmbed payload")

        return VideoMetadata(
            kind=BackendKind.YOUTUBE,
            video_id=video_id,
            title=payload.get("title"),
            raw=payload,
        )

    def _fetch_vimeo(self, video_id: str) -> VideoMetadata:
        payload = self.http.get_json("vimeo", "video", fmt_args=(video_id,))
        entry = payload[0] if isinstance(payload, list) and payload else payload
        if not isinstance(entry, Mapping):
            raise MetadataError(f"Vimeo returned no video for id {video_id}")

        return VideoMetadata(
            kind=BackendKind.VIMEO,
            video_id=video_id,
            title=entry.get("title"),
            duration=_as_float(entry.get("duration")),
            raw=payload,
        )


_DEFAULT_LOCK = threading.Lock()
_DEFAULT_FETCHER: Optional[MetadataFetcher] = None


def get_metadata_fetcher() -> MetadataFetcher:
    global _DEFAULT_FETCHER
    with _DEFAULT_LOCK:
        if _DEFAULT_FETCHER is None:
            _DEFAULT_FETCHER = MetadataFetcher()
        return _DEFAULT_FETCHER


__all__ = ["MetadataFetcher", "get_metadata_fetcher", "parse_iso8601_duration"]
