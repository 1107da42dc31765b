"""Pydantic schemas for playback session telemetry."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    playback_type: Optional[str] = None
    device_info: Optional[dict[str, Any]] = None
    location: Optional[dict[str, Any]] = None


class HeartbeatRequest(BaseModel):
    seconds: float = 0


class EndSessionRequest(BaseModel):
    duration: float = 0
