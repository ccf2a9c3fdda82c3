"""Exceptions for the player subsystem."""

from __future__ import annotations


class PlayerError(Exception):
    """Top-level error raised by the player subsystem."""


class VideoIdError(PlayerError):
    """Raised when a remote source URL does not carry a usable video id."""

    def __init__(self, source: str, kind: str) -> None:
        super().__init__(f"Could not resolve a {kind} video id from {source!r}")
        self.source = source
        self.kind = kind


class PlayerStateError(PlayerError):
    """Raised when a control call is made in a state that cannot honour it."""


class BackendUnavailable(PlayerError):
    """Raised when the runtime for a backend (libVLC, player host) is missing."""


class MetadataError(PlayerError):
    """Raised when a metadata payload cannot be interpreted."""
