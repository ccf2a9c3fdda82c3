"""Keeps the focused subtitle in step with playback outside the loop window."""

from __future__ import annotations

from bisect import insort
from typing import Callable, Iterable, List, Optional, Protocol

from subtitler.backend.common.logging import get_logger
from subtitler.backend.player import session as fields
from subtitler.backend.player.models import SubtitleRecord
from subtitler.backend.player.session import SessionStore

log = get_logger(__name__)


class SubtitleLookup(Protocol):
    def find_at(self, time: float) -> Optional[SubtitleRecord]: ...


class InMemorySubtitleLookup:
    """Records kept ordered by start time."""

    def __init__(self, records: Iterable[SubtitleRecord] = ()) -> None:
        self._records: List[SubtitleRecord] = sorted(records, key=lambda r: (r.start_time, r.end_time))

    def add(self, record: SubtitleRecord) -> None:
        insort(self._records, record, key=lambda r: (r.start_time, r.end_time))

    def find_at(self, time: float) -> Optional[SubtitleRecord]:
        for record in self._records:
            if record.start_time > time:
                break
            if record.contains(time):
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)


class CaptionSync:
    def __init__(
        self,
        session: SessionStore,
        lookup: SubtitleLookup,
        focus: Optional[Callable[[SubtitleRecord], None]] = None,
    ) -> None:
        self._session = session
        self._lookup = lookup
        self._focus = focus

    def sync(self, time: float, *, silent: bool = False) -> Optional[SubtitleRecord]:
        """Focus the subtitle under ``time`` when it lies outside the loop window.

        Nothing happens while the window is unset, while ``time`` is inside it,
        or when no subtitle covers ``time``.
        """
        start = self._session.get(fields.START_TIME)
        end = self._session.get(fields.END_TIME)
        if start is None or end is None or start <= time <= end:
            return None

        record = self._lookup.find_at(time)
        if record is None:
            log.debug("caption_sync_no_match", time=time)
            return None

        if silent:
            self._session.set(fields.SILENT_FOCUS, True)
        if self._focus is not None:
            self._focus(record)
        self._session.set(fields.CURRENT_SUB, record)
        return record


__all__ = ["CaptionSync", "InMemorySubtitleLookup", "SubtitleLookup"]
