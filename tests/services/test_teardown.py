"""Tests for the event teardown pipeline."""

import pytest

from golive.config import settings
from golive.services.teardown import TeardownPipeline, split_s3_location
from tests.fakes import NOW_ISO, FakeMedia, make_event, no_sleep


def live_event(**overrides):
    handles = {
        "is_deletion_in_progress": True,
        "live_channel_id": "ch-1",
        "input_id": "in-1",
        "input_security_group_id": "sg-1",
        "packager_endpoint_id": "ep-1",
        "packager_channel_id": "pc-1",
        "distribution_id": "dist-1",
        "origin_id": "origin-evt-1",
        "cache_behavior_ids": ["/live/evt-1/*"],
        "recording_bucket": "rec-bucket",
        "recording_prefix": "recordings/evt-1/",
    }
    handles.update(overrides)
    return make_event(**handles)


def pipeline(events, secrets, media, clock, sleep=no_sleep, **kwargs):
    return TeardownPipeline(events=events, secrets=secrets, media=media, clock=clock, sleep=sleep, **kwargs)


def test_split_s3_location():
    assert split_s3_location("s3://out/vod/evt-1/", "default") == ("out", "vod/evt-1/")
    assert split_s3_location("/vod/evt-1/", "default") == ("default", "vod/evt-1/")


@pytest.mark.asyncio
async def test_live_teardown_runs_in_dependency_order(events, secrets, media, clock):
    events.add(live_event())
    secrets.sealed["evt-1"] = "sealed"

    assert await pipeline(events, secrets, media, clock).run("evt-1") is True

    assert media.names == [
        "stop_live_channel",
        "describe_live_channel_state",
        "delete_live_channel",
        "describe_live_channel_state",
        "delete_input",
        "delete_input_security_group",
        "delete_packager_endpoint",
        "delete_packager_channel",
        "remove_cache_behaviors",
        "remove_origin",
        "purge_prefix",
    ]
    assert media.calls[-1] == ("purge_prefix", "rec-bucket", "recordings/evt-1/")
    assert "evt-1" not in events.events
    assert "evt-1" not in secrets.sealed


@pytest.mark.asyncio
async def test_waits_for_channel_to_stop(events, secrets, clock):
    events.add(live_event(input_id=None, input_security_group_id=None))
    media = FakeMedia(channel_states=["RUNNING", "STOPPING", "IDLE", None])
    naps = []

    async def sleep(seconds):
        naps.append(seconds)

    await pipeline(events, secrets, media, clock, sleep=sleep, poll_interval=5).run("evt-1")

    assert media.names[:5] == [
        "stop_live_channel",
        "describe_live_channel_state",
        "describe_live_channel_state",
        "describe_live_channel_state",
        "delete_live_channel",
    ]
    assert naps == [5, 5]
    assert "evt-1" not in events.events


@pytest.mark.asyncio
async def test_timeout_records_failure_and_releases_flag(events, secrets, clock):
    events.add(live_event())
    media = FakeMedia(channel_states=["RUNNING"])

    done = await pipeline(events, secrets, media, clock, poll_interval=15, budget=30).run("evt-1")

    assert done is False
    event = events.events["evt-1"]
    assert event.is_deletion_in_progress is False
    assert event.deletion_error == "Timed out waiting for live channel to stop"
    assert event.deletion_failed_at == NOW_ISO
    assert "delete_live_channel" not in media.names


@pytest.mark.asyncio
async def test_step_failure_stops_pipeline(events, secrets, clock):
    events.add(live_event())
    secrets.sealed["evt-1"] = "sealed"
    media = FakeMedia(fail_on="delete_packager_endpoint")

    assert await pipeline(events, secrets, media, clock).run("evt-1") is False

    assert media.names[-1] == "delete_packager_endpoint"
    assert events.events["evt-1"].deletion_error == "delete_packager_endpoint failed"
    assert secrets.sealed["evt-1"] == "sealed"


@pytest.mark.asyncio
async def test_rerun_after_failure_completes(events, secrets, clock):
    events.add(live_event())
    await pipeline(events, secrets, FakeMedia(fail_on="remove_origin"), clock).run("evt-1")

    assert await pipeline(events, secrets, FakeMedia(), clock).run("evt-1") is True
    assert "evt-1" not in events.events


@pytest.mark.asyncio
async def test_event_without_handles_is_just_deleted(events, secrets, media, clock):
    events.add(make_event(cloud_front_url=None))

    assert await pipeline(events, secrets, media, clock).run("evt-1") is True

    assert media.calls == []
    assert events.events == {}


@pytest.mark.asyncio
async def test_vod_teardown_purges_upload_and_output(events, secrets, media, clock):
    events.add(
        make_event(
            event_type="vod",
            status="uploaded",
            s3_key="v/a.mp4",
            s3_prefix="v/",
            vod_output_path="s3://out-bucket/vod/evt-1/",
        )
    )

    await pipeline(events, secrets, media, clock).run("evt-1")

    assert media.calls == [
        ("purge_prefix", settings.vod_upload_bucket, "v/"),
        ("purge_prefix", "out-bucket", "vod/evt-1/"),
    ]


@pytest.mark.asyncio
async def test_missing_event_is_success(events, secrets, media, clock):
    assert await pipeline(events, secrets, media, clock).run("gone") is True
    assert media.calls == []
