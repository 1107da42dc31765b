"""Tests for stream URL resolution."""

from datetime import timedelta

from golive.services.stream_resolution import resolve_stream
from tests.fakes import NOW, make_event

READY_VOD = {"vod_status": "READY", "vod_1080p_url": "https://cdn.test/vod/1080.m3u8"}


def test_live_event_plays_live_url():
    decision = resolve_stream(make_event(), NOW)

    assert decision.stream_url == "https://cdn.test/live/index.m3u8"
    assert decision.playback_type == "live"
    assert decision.blocked is False


def test_packager_url_used_without_cdn():
    decision = resolve_stream(make_event(cloud_front_url=None, packager_url="https://pkg.test/x.m3u8"), NOW)

    assert decision.stream_url == "https://pkg.test/x.m3u8"


def test_live_event_flips_to_recording_when_ready():
    decision = resolve_stream(make_event(**READY_VOD), NOW)

    assert decision.stream_url == "https://cdn.test/vod/1080.m3u8"
    assert decision.playback_type == "vod"


def test_recording_still_processing_keeps_live():
    decision = resolve_stream(make_event(vod_status="PROCESSING", vod_1080p_url="https://cdn.test/vod/1080.m3u8"), NOW)

    assert decision.playback_type == "live"


def test_live_without_urls_is_blocked():
    decision = resolve_stream(make_event(cloud_front_url=None), NOW)

    assert decision.blocked is True
    assert decision.blocked_reason == "Live stream not available"


def test_vod_event_waits_for_transcode():
    processing = make_event(event_type="vod", status="uploaded", vod_status="PROCESSING", cloud_front_url=None)
    ready = processing.model_copy(update={"vod_status": "READY", "vod_cloud_front_url": "https://cdn.test/vod/main.m3u8"})

    assert resolve_stream(processing, NOW).blocked_reason == "VOD is still processing"
    assert resolve_stream(ready, NOW) == ("https://cdn.test/vod/main.m3u8", "vod", None)


def test_scheduled_event_blocked_before_start():
    event = make_event(event_type="scheduled", status="scheduled", start_time="2030-01-15T13:00:00.000Z")

    assert resolve_stream(event, NOW).blocked_reason == "Event has not started yet"
    assert resolve_stream(event, NOW + timedelta(hours=1)).playback_type == "live"


def test_scheduled_event_without_feed():
    event = make_event(
        event_type="scheduled", status="scheduled", start_time="2030-01-15T11:00:00.000Z", cloud_front_url=None
    )

    assert resolve_stream(event, NOW).blocked_reason == "Stream not available"
