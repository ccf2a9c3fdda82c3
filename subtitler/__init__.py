"""Playback control core for the subtitler editor."""

__version__ = "0.3.0"
