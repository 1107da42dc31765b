"""Choose the playback URL for an event at a given instant."""

from datetime import datetime
from typing import NamedTuple, Optional

from golive.models.event import Event
from golive.utils.clock import parse_iso


class StreamDecision(NamedTuple):
    stream_url: Optional[str]
    playback_type: Optional[str]
    blocked_reason: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return self.stream_url is None


def _blocked(reason: str) -> StreamDecision:
    return StreamDecision(None, None, reason)


def resolve_stream(event: Event, now: datetime) -> StreamDecision:
    """
    Resolve the stream for an event.

    A finished recording (vodStatus READY with a URL) always wins over the
    live feed, so a live event flips to VOD as soon as its recording is
    ready. Scheduled events are blocked until their start time.

    Args:
        event: Event to resolve
        now: Current instant

    Returns:
        StreamDecision with a URL and playback type, or a blocked reason
    """
    vod_ready = event.vod_status == "READY" and event.vod_url is not None

    if event.event_type == "vod":
        if vod_ready:
            return StreamDecision(event.vod_url, "vod")
        return _blocked("VOD is still processing")

    if event.event_type == "scheduled" and event.start_time:
        if now < parse_iso(event.start_time, "startTime"):
            return _blocked("Event has not started yet")

    if vod_ready:
        return StreamDecision(event.vod_url, "vod")
    if event.live_url:
        return StreamDecision(event.live_url, "live")
    if event.event_type == "live":
        return _blocked("Live stream not available")
    return _blocked("Stream not available")
