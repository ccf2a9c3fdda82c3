"""Command line access to the playback core."""

from __future__ import annotations

import argparse
import threading
import time
from typing import Optional, Sequence

from subtitler.backend.common.errors import SubtitlerError
from subtitler.backend.common.logging import get_logger, init_logging
from subtitler.backend.player import (
    BackendKind,
    CanonicalEvent,
    InMemorySession,
    PlayerError,
    VideoElement,
)
from subtitler.backend.player import session as fields
from subtitler.backend.player.ids import resolve_video_id
from subtitler.backend.player.metadata import MetadataFetcher
from subtitler.config.settings import get_settings

from ._utils import exit_with_error, print_json, require_subcommand, to_serializable

log = get_logger("subtitler.cli")

_KIND_CHOICES = [kind.value for kind in BackendKind]


def _handle_resolve_id(args: argparse.Namespace) -> None:
    kind = BackendKind(args.type)
    video_id = resolve_video_id(args.url, kind)
    if video_id is None:
        exit_with_error(f"No {kind.value} video id found in {args.url}")
        return
    print_json({"type": kind.value, "url": args.url, "video_id": video_id})


def _handle_metadata(args: argparse.Namespace) -> None:
    kind = BackendKind(args.type)
    if not kind.is_remote:
        exit_with_error("Embedded media carries its own metadata; use 'play' instead")
        return
    video_id = resolve_video_id(args.url, kind)
    if video_id is None:
        exit_with_error(f"No {kind.value} video id found in {args.url}")
        return
    try:
        metadata = MetadataFetcher().fetch(kind, video_id)
    except (SubtitlerError, PlayerError) as exc:
        exit_with_error(str(exc))
        return
    payload = to_serializable(metadata)
    if not args.raw:
        payload.pop("raw", None)
    print_json(payload)


def _handle_play(args: argparse.Namespace) -> None:
    settings = get_settings()
    session = InMemorySession(
        {
            fields.LOOP_DURATION: args.loop_duration or settings.default_loop_duration,
            fields.LOOPING: args.loop,
        }
    )
    ready = threading.Event()
    try:
        element = VideoElement(args.source, session=session, target=args.window)
    except PlayerError as exc:
        exit_with_error(str(exc))
        return

    element.on(CanonicalEvent.READY, ready.set)
    element.on(CanonicalEvent.METADATA_RECEIVED, lambda meta: log.info("media_info", title=meta.title, duration=meta.duration))
    if not element.is_ready and not ready.wait(timeout=args.ready_timeout):
        element.destroy()
        exit_with_error(f"Media did not become ready within {args.ready_timeout}s")
        return

    if args.rate:
        element.set_playback_rate(args.rate)
    if args.start is not None:
        element.seek_to(args.start)
    element.play()

    deadline = time.monotonic() + args.seconds if args.seconds else None
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(args.report_every)
            print_json(to_serializable(session.snapshot()))
    except KeyboardInterrupt:
        pass
    finally:
        element.destroy()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="subtitler-player", description="Subtitler playback tools")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command")
    require_subcommand(subparsers)

    resolve_parser = subparsers.add_parser("resolve-id", help="Extract the video id from a URL")
    resolve_parser.add_argument("url")
    resolve_parser.add_argument("--type", choices=_KIND_CHOICES[1:], default=BackendKind.YOUTUBE.value)
    resolve_parser.set_defaults(handler=_handle_resolve_id)

    metadata_parser = subparsers.add_parser("metadata", help="Fetch title and duration for a remote video")
    metadata_parser.add_argument("url")
    metadata_parser.add_argument("--type", choices=_KIND_CHOICES[1:], default=BackendKind.YOUTUBE.value)
    metadata_parser.add_argument("--raw", action="store_true", help="Include the raw service payload")
    metadata_parser.set_defaults(handler=_handle_metadata)

    play_parser = subparsers.add_parser("play", help="Play a local file or stream through libVLC")
    play_parser.add_argument("source")
    play_parser.add_argument("--window", default=None, help="Native window id to render into")
    play_parser.add_argument("--start", type=float, default=None, help="Seek here once ready")
    play_parser.add_argument("--loop", action="store_true", help="Keep playback inside the loop window")
    play_parser.add_argument("--loop-duration", type=float, default=None)
    play_parser.add_argument("--rate", type=float, default=None)
    play_parser.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")
    play_parser.add_argument("--report-every", type=float, default=1.0)
    play_parser.add_argument("--ready-timeout", type=float, default=10.0)
    play_parser.set_defaults(handler=_handle_play)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    init_logging(args.log_level or get_settings().log_level)
    args.handler(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
