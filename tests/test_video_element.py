from __future__ import annotations

import dataclasses

import pytest

from conftest import inline, time_event
from subtitler.backend.player import (
    BackendKind,
    BackendUnavailable,
    CanonicalEvent,
    CaptionSync,
    InMemorySubtitleLookup,
    PlaybackStatus,
    PlayerStateError,
    SubtitleRecord,
    VideoElement,
    VideoIdError,
    VideoMetadata,
)
from subtitler.backend.player.adapters import ADAPTERS

SOURCE = "file:///media/interview.mp4"
YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
VIMEO_URL = "https://vimeo.com/76979871"


def make_embedded(session, settings, fake_vlc, scheduler):
    return VideoElement(
        SOURCE,
        session=session,
        settings=settings,
        scheduler=scheduler,
        adapter_options={"vlc_module": fake_vlc, "dispatch": inline},
    )


def parse_media(fake_vlc):
    media = fake_vlc.instance.media[0]
    media.parsed_status = "done"
    media.events.fire("MediaParsedChanged")


def make_youtube(session, settings, host, scheduler, fetcher, url=YOUTUBE_URL):
    return VideoElement(
        url,
        type="youtube",
        session=session,
        settings=settings,
        host=host,
        scheduler=scheduler,
        metadata_fetcher=fetcher,
    )


def ready_youtube(session, settings, host, scheduler, fetcher):
    element = make_youtube(session, settings, host, scheduler, fetcher)
    host.finish_loads()
    player = host.youtube_api.players[-1]
    player.fire("onReady")
    return element, player


def make_vimeo(session, settings, host, scheduler, fetcher):
    return VideoElement(
        VIMEO_URL,
        type="vimeo",
        session=session,
        settings=settings,
        host=host,
        scheduler=scheduler,
        metadata_fetcher=fetcher,
    )


def record(element):
    seen = []
    element.on(CanonicalEvent.READY, lambda: seen.append("ready"))
    element.on(CanonicalEvent.METADATA_RECEIVED, lambda meta: seen.append(("metadata", meta)))
    return seen


def test_every_backend_kind_has_an_adapter():
    assert set(ADAPTERS) == set(BackendKind)


def test_construction_enters_initializing(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)

    assert element.status is PlaybackStatus.INITIALIZING
    assert element.is_ready is False
    assert element.backend_kind is BackendKind.EMBEDDED
    assert element.target == "player"


def test_embedded_ready_fires_once_with_metadata(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    seen = record(element)

    parse_media(fake_vlc)
    parse_media(fake_vlc)

    assert element.is_ready is True
    assert element.status is PlaybackStatus.READY
    assert [item if item == "ready" else item[0] for item in seen] == ["ready", "metadata"]
    metadata = seen[1][1]
    assert isinstance(metadata, VideoMetadata)
    assert metadata.title == "Interview"
    assert metadata.duration == 95.0
    assert element.title == "Interview"


def test_embedded_ready_when_media_already_parsed(session, settings, fake_vlc, scheduler):
    fake_vlc.instance.media_new = _parsed_media_factory(fake_vlc.instance)

    element = make_embedded(session, settings, fake_vlc, scheduler)

    assert element.is_ready is True


def _parsed_media_factory(instance):
    create_media = instance.media_new

    def _factory(mrl):
        media = create_media(mrl)
        media.parsed_status = "done"
        return media

    return _factory


def test_embed_twice_keeps_single_handle(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    handle = element.backend_handle

    assert element.embed() is element
    element.embed("4242")

    assert len(fake_vlc.instance.players) == 1
    assert element.backend_handle is handle
    assert element.target == "4242"
    assert ("set_window", 4242) in handle.calls
    parse_media(fake_vlc)
    assert len(fake_vlc.instance.media[0].events.callbacks["MediaParsedChanged"]) == 1


def test_embedded_events_drive_session_state(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    parse_media(fake_vlc)
    player = element.backend_handle

    player.events.fire("MediaPlayerPlaying")
    assert session.get("videoPlaying") is True
    assert element.status is PlaybackStatus.PLAYING
    assert scheduler.intervals == []

    player.events.fire("MediaPlayerTimeChanged", time_event(12_000))
    assert session.get("startTime") == 12.0
    assert session.get("endTime") == 20.0

    player.events.fire("MediaPlayerEndReached")
    assert session.get("videoPlaying") is False
    assert element.status is PlaybackStatus.PAUSED


def test_embedded_error_pauses_and_reports(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    parse_media(fake_vlc)
    errors = []
    element.on(CanonicalEvent.PLAYBACK_ERROR, errors.append)

    element.backend_handle.events.fire("MediaPlayerPlaying")
    element.backend_handle.events.fire("MediaPlayerEncounteredError")

    assert session.get("videoPlaying") is False
    assert element.status is PlaybackStatus.PAUSED
    assert len(errors) == 1
    assert errors[0].kind is BackendKind.EMBEDDED


def test_embedded_controls_delegate_to_vlc(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    player = element.backend_handle
    durations = []

    element.play()
    element.pause()
    element.seek_to(3.5)
    element.set_playback_rate(1.5)
    element.get_video_duration(durations.append)

    assert player.calls == [("play",), ("set_pause", 1), ("set_time", 3500), ("set_rate", 1.5)]
    assert element.get_current_time() == 3.5
    assert durations == [95.0]


def test_youtube_ready_once_after_bootstrap(session, settings, host, scheduler, fetcher):
    element = make_youtube(session, settings, host, scheduler, fetcher)
    seen = record(element)
    assert element.backend_handle is None

    host.finish_loads()
    player = host.youtube_api.players[0]
    player.fire("onReady")
    player.fire("onReady")

    assert element.is_ready is True
    assert seen == ["ready"]
    assert player.options["videoId"] == "dQw4w9WgXcQ"
    assert player.options["playerVars"] == {"controls": 0}
    assert fetcher.requests == [(BackendKind.YOUTUBE, "dQw4w9WgXcQ")]


def test_youtube_bootstrap_loads_once_for_concurrent_players(session, settings, host, scheduler, fetcher):
    first = make_youtube(session, settings, host, scheduler, fetcher)
    second = make_youtube(session, settings, host, scheduler, fetcher, url="https://youtu.be/9bZkp7q19f0")

    host.finish_loads()

    assert len(host.script_loads) == 1
    assert first.backend_handle is not None
    assert second.backend_handle is not None
    assert first.backend_handle is not second.backend_handle
    assert second.backend_handle.options["videoId"] == "9bZkp7q19f0"

    third = make_youtube(session, settings, host, scheduler, fetcher)
    assert third.backend_handle is not None
    assert len(host.script_loads) == 1


def test_youtube_metadata_arrives_per_instance(session, settings, host, scheduler, fetcher):
    first = make_youtube(session, settings, host, scheduler, fetcher)
    second = make_youtube(session, settings, host, scheduler, fetcher, url="https://youtu.be/9bZkp7q19f0")
    first_seen, second_seen = record(first), record(second)

    fetcher.futures[1].set_result(
        VideoMetadata(kind=BackendKind.YOUTUBE, video_id="9bZkp7q19f0", title="Second", duration=252.0)
    )
    fetcher.futures[0].set_result(
        VideoMetadata(kind=BackendKind.YOUTUBE, video_id="dQw4w9WgXcQ", title="First", duration=212.0)
    )

    assert first.title == "First"
    assert second.title == "Second"
    assert second.duration == 252.0
    assert first_seen[0][1].video_id == "dQw4w9WgXcQ"
    assert second_seen[0][1].video_id == "9bZkp7q19f0"


def test_metadata_failure_emits_nothing(session, settings, host, scheduler, fetcher):
    element = make_youtube(session, settings, host, scheduler, fetcher)
    seen = record(element)

    fetcher.futures[0].set_exception(RuntimeError("boom"))

    assert seen == []
    assert element.title is None


def test_youtube_state_codes_drive_poller(session, settings, host, scheduler, fetcher):
    element, player = ready_youtube(session, settings, host, scheduler, fetcher)

    player.fire("onStateChange", 1)
    assert element.polling is True
    assert len(scheduler.live) == 1
    assert scheduler.live[0].interval == 0.25

    player.fire("onStateChange", 1)
    assert len(scheduler.live) == 1
    assert len(scheduler.intervals) == 2

    player.current_time = 12.0
    scheduler.tick()
    assert session.get("currentTime") == 12.0
    assert session.get("endTime") == 20.0

    stale_tick = scheduler.live[0].fn
    player.fire("onStateChange", 2)
    assert element.polling is False
    assert scheduler.live == []
    assert session.get("videoPlaying") is False

    player.current_time = 13.0
    stale_tick()
    assert session.get("currentTime") == 12.0


def test_youtube_ended_and_error_pause(session, settings, host, scheduler, fetcher):
    element, player = ready_youtube(session, settings, host, scheduler, fetcher)
    errors = []
    element.on("playbackError", errors.append)

    player.fire("onStateChange", 1)
    player.fire("onStateChange", 0)
    assert element.status is PlaybackStatus.PAUSED

    player.fire("onStateChange", 1)
    player.fire("onError", 150)
    assert element.status is PlaybackStatus.PAUSED
    assert scheduler.live == []
    assert errors[0].detail == 150

    player.fire("onStateChange", 3)
    assert element.status is PlaybackStatus.PAUSED


def test_youtube_controls(session, settings, host, scheduler, fetcher):
    element, player = ready_youtube(session, settings, host, scheduler, fetcher)
    durations = []

    element.play()
    element.seek_to(42)
    element.set_playback_rate(0.5)
    element.pause()
    element.get_video_duration(durations.append)

    assert player.calls == [("play",), ("seek", 42.0), ("rate", 0.5), ("pause",)]
    assert durations == [212.0]


def test_control_before_handle_raises(session, settings, host, scheduler, fetcher):
    element = make_youtube(session, settings, host, scheduler, fetcher)

    with pytest.raises(PlayerStateError):
        element.play()


def test_unresolvable_remote_source_raises(session, settings, host, scheduler, fetcher):
    with pytest.raises(VideoIdError):
        make_youtube(session, settings, host, scheduler, fetcher, url="https://example.com/clip")
    assert fetcher.requests == []


def test_vimeo_frame_and_ready(session, settings, host, scheduler, fetcher):
    element = make_vimeo(session, settings, host, scheduler, fetcher)
    other = make_vimeo(session, settings, host, scheduler, fetcher)
    seen = record(element)
    bridge = host.bridges[0]

    assert "76979871" in host.frames[0]["src"]
    assert "api=1" in host.frames[0]["src"]
    assert host.frames[0]["target"] == "player"
    assert host.frames[0]["id"] != host.frames[1]["id"]
    assert other.backend_handle is host.bridges[1]

    bridge.fire("ready")
    bridge.fire("ready")

    assert element.is_ready is True
    assert seen == ["ready"]


def test_vimeo_progress_events_feed_loop(session, settings, host, scheduler, fetcher):
    element = make_vimeo(session, settings, host, scheduler, fetcher)
    bridge = host.bridges[0]
    bridge.fire("ready")

    bridge.fire("play")
    assert session.get("videoPlaying") is True
    assert scheduler.intervals == []

    bridge.fire("playProgress", {"seconds": "12.0", "percent": "0.1"})
    assert session.get("startTime") == 12.0
    assert session.get("endTime") == 20.0
    assert element.get_current_time() == 12.0

    session.set("looping", True)
    bridge.fire("seek", {"seconds": 20.5})
    assert bridge.calls[-1] == ("seekTo", 12.0)

    bridge.fire("finish")
    assert session.get("videoPlaying") is False


def test_vimeo_rate_is_a_no_op(session, settings, host, scheduler, fetcher):
    element = make_vimeo(session, settings, host, scheduler, fetcher)
    bridge = host.bridges[0]
    bridge.fire("ready")
    bridge.fire("play")
    status = element.status

    element.set_playback_rate(2.0)

    assert bridge.calls == []
    assert element.status is status
    assert session.get("videoPlaying") is True


def test_vimeo_duration_via_message(session, settings, host, scheduler, fetcher):
    element = make_vimeo(session, settings, host, scheduler, fetcher)
    bridge = host.bridges[0]
    durations = []

    element.get_video_duration(durations.append)
    assert durations == []
    bridge.callbacks["getDuration"]("63.5")

    assert durations == [63.5]


def test_destroy_detaches_everything(session, settings, host, scheduler, fetcher):
    element, player = ready_youtube(session, settings, host, scheduler, fetcher)
    player.fire("onStateChange", 1)

    element.destroy()
    element.destroy()

    assert element.status is PlaybackStatus.DESTROYED
    assert scheduler.live == []
    assert all(not callbacks for callbacks in player.listeners.values())
    assert fetcher.futures[0].cancelled()
    with pytest.raises(PlayerStateError):
        element.play()
    element.handle_position(30.0)
    assert session.get("currentTime") is None


def test_from_config_defaults_to_embedded(session, settings, fake_vlc, scheduler):
    element = VideoElement.from_config(
        {"source": SOURCE, "target": "42"},
        session=session,
        settings=settings,
        scheduler=scheduler,
        adapter_options={"vlc_module": fake_vlc, "dispatch": inline},
    )

    assert element.backend_kind is BackendKind.EMBEDDED
    assert element.describe()["target"] == "42"


def test_sync_captions_through_element(session, settings, fake_vlc, scheduler):
    session.set("startTime", 0.0)
    session.set("endTime", 8.0)
    lookup = InMemorySubtitleLookup([SubtitleRecord(id="s1", start_time=10.0, end_time=12.0, text="hi")])
    element = VideoElement(
        SOURCE,
        session=session,
        settings=settings,
        scheduler=scheduler,
        captions=CaptionSync(session, lookup),
        adapter_options={"vlc_module": fake_vlc, "dispatch": inline},
    )

    assert element.sync_captions(11.0, silent=True).id == "s1"
    assert session.get("currentSub").id == "s1"
    assert element.sync_captions(4.0) is None
    assert element.describe()["playback_rate_supported"] is True


def test_remote_backend_without_host(session, settings, scheduler, fetcher):
    with pytest.raises(BackendUnavailable):
        make_youtube(session, settings, None, scheduler, fetcher)


def test_each_embedded_error_gets_its_own_failure(session, settings, fake_vlc, scheduler):
    element = make_embedded(session, settings, fake_vlc, scheduler)
    parse_media(fake_vlc)
    errors = []
    element.on(CanonicalEvent.PLAYBACK_ERROR, errors.append)

    element.backend_handle.events.fire("MediaPlayerEncounteredError")
    element.backend_handle.events.fire("MediaPlayerEncounteredError")

    assert len(errors) == 2
    assert errors[0] is not errors[1]
    with pytest.raises(dataclasses.FrozenInstanceError):
        errors[0].reason = "changed"
