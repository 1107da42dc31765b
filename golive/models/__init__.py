"""Data models for the GoLive Events API."""

from golive.models.event import Event, RegistrationField, VideoConfig
from golive.models.payment import Payment
from golive.models.session import PlaybackSession
from golive.models.viewer import Viewer

__all__ = [
    "Event",
    "Payment",
    "PlaybackSession",
    "RegistrationField",
    "VideoConfig",
    "Viewer",
]
