"""Video id extraction for remote backends."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

from subtitler.backend.player.models import BackendKind

# Covers youtu.be/<id>, /v/<id>, /u/<x>/<id>, /embed/<id> and watch?v=<id>
_YOUTUBE_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=)([^#&?]*).*")
YOUTUBE_ID_LENGTH = 11


def youtube_video_id(url: str) -> Optional[str]:
    match = _YOUTUBE_RE.match(url or "")
    if match and len(match.group(2)) == YOUTUBE_ID_LENGTH:
        return match.group(2)

    return None


def vimeo_video_id(url: str) -> Optional[str]:
    path = urlparse(url or "").path if "://" in (url or "") else (url or "").split("?", 1)[0].split("#", 1)[0]
    segment = path.rstrip("/").rsplit("/", 1)[-1]

    return segment or None


def resolve_video_id(url: str, kind: BackendKind) -> Optional[str]:
    """Return the backend id carried by ``url`` or ``None`` when it has none.

    The embedded backend plays the source directly and never has an id.
    """
    if kind is BackendKind.YOUTUBE:
        return youtube_video_id(url)
    if kind is BackendKind.VIMEO:
        return vimeo_video_id(url)

    return None


__all__ = ["YOUTUBE_ID_LENGTH", "resolve_video_id", "vimeo_video_id", "youtube_video_id"]
