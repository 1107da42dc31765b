"""Playback session model for DynamoDB."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PlaybackSession(BaseModel):
    """
    Analytics session for one playback, owned by the viewer in the credential.

    ``duration`` is whole seconds and only grows: heartbeats add to it
    atomically and ``end`` keeps the larger of the stored and reported value.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    session_id: str
    event_id: str
    client_viewer_id: str
    playback_type: Literal["live", "vod"] = "vod"
    device_info: Optional[dict[str, Any]] = None
    location: Optional[dict[str, Any]] = None
    network: Optional[dict[str, Any]] = None
    is_paid_viewer: bool = False
    start_time: str
    end_time: Optional[str] = None
    duration: int = 0
    created_at: str

    def to_item(self) -> dict[str, Any]:
        """Serialize for DynamoDB (camelCase keys, None dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)
