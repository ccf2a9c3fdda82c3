"""Unified playback control over embedded, YouTube and Vimeo backends."""

from subtitler.backend.player.captions import CaptionSync, InMemorySubtitleLookup
from subtitler.backend.player.controller import VideoElement
from subtitler.backend.player.events import CanonicalEvent, EventBus
from subtitler.backend.player.exceptions import (
    BackendUnavailable,
    MetadataError,
    PlayerError,
    PlayerStateError,
    VideoIdError,
)
from subtitler.backend.player.models import (
    BackendKind,
    PlaybackFailure,
    PlaybackStatus,
    SubtitleRecord,
    VideoConfig,
    VideoMetadata,
)
from subtitler.backend.player.session import InMemorySession, SessionStore

__all__ = [
    "BackendKind",
    "BackendUnavailable",
    "CanonicalEvent",
    "CaptionSync",
    "EventBus",
    "InMemorySession",
    "InMemorySubtitleLookup",
    "MetadataError",
    "PlaybackFailure",
    "PlaybackStatus",
    "PlayerError",
    "PlayerStateError",
    "SessionStore",
    "SubtitleRecord",
    "VideoConfig",
    "VideoElement",
    "VideoIdError",
    "VideoMetadata",
]
