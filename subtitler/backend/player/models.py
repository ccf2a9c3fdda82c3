"""Typed values shared by the player adapters and the controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class BackendKind(str, Enum):
    """Video backends a :class:`VideoElement` can drive."""

    EMBEDDED = "html"
    YOUTUBE = "youtube"
    VIMEO = "vimeo"

    @property
    def is_remote(self) -> bool:
        return self is not BackendKind.EMBEDDED


class PlaybackStatus(str, Enum):
    """Lifecycle of one player instance."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    DESTROYED = "destroyed"


class VideoConfig(BaseModel):
    """Construction options for a :class:`VideoElement`."""

    source: str = Field(min_length=1)
    type: BackendKind = BackendKind.EMBEDDED
    target: Optional[str] = None


class VideoMetadata(BaseModel):
    """Title/duration for a video plus the backend payload they came from."""

    kind: BackendKind
    video_id: Optional[str] = None
    title: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    raw: Any = None


@dataclass(frozen=True, slots=True)
class PlaybackFailure:
    """Detail attached to a ``playbackError`` event."""

    kind: BackendKind
    reason: str
    detail: Any = None


@dataclass(slots=True)
class SubtitleRecord:
    id: str
    start_time: float
    end_time: float
    text: str = ""

    def contains(self, time: float) -> bool:
        return self.start_time <= time <= self.end_time
