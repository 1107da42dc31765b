"""Pydantic schemas for the payments API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ListPaymentsRequest(BaseModel):
    """Body of the admin payment listing call."""

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"limit": 50, "cursor": None}},
    )

    limit: int = Field(50, ge=1, le=200)
    cursor: Optional[str] = None
