from __future__ import annotations


class SubtitlerError(Exception):
    """Base for all subtitler exceptions."""


class ConfigError(SubtitlerError):
    """Configuration related issues."""


class TaskError(SubtitlerError):
    """Task scheduling/execution issues."""


class NetworkError(SubtitlerError):
    """Network/HTTP layer issues."""
