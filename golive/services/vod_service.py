"""Pre-signed upload and download links for VOD media."""

import re
from typing import Any

from golive.config import settings
from golive.exceptions import InvalidInputError, NotFoundError
from golive.logging.config import get_logger
from golive.repositories.event_repository import EventRepository
from golive.resources.media import MediaResources
from golive.services.teardown import split_s3_location
from golive.utils.ids import new_id

logger = get_logger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str | None) -> str:
    """Last path segment with anything outside ``[A-Za-z0-9._-]`` collapsed to ``-``."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = UNSAFE_FILENAME_CHARS.sub("-", name).strip("-.")
    if not name:
        raise InvalidInputError("filename is required", details={"field": "filename"})
    return name


class VodService:
    """
    Hands out short-lived S3 links for VOD source uploads and rendition downloads.

    Each upload lands in its own folder so the event's ``s3Prefix`` (derived
    from the key) never covers another event's objects.
    """

    def __init__(
        self,
        events: EventRepository | None = None,
        media: MediaResources | None = None,
    ) -> None:
        self.events = events or EventRepository()
        self.media = media or MediaResources()

    async def presign_upload(
        self, filename: str | None, content_type: str = "video/mp4"
    ) -> dict[str, Any]:
        key = f"uploads/{new_id()}/{safe_filename(filename)}"
        bucket = settings.vod_upload_bucket
        ttl = settings.signed_url_ttl_seconds
        url = await self.media.presign_upload(bucket, key, content_type, ttl)

        logger.info("Issued VOD upload URL", extra={"context": {"bucket": bucket, "s3_key": key}})
        return {"uploadUrl": url, "bucket": bucket, "s3Key": key, "expiresIn": ttl}

    async def download_url(self, event_id: str) -> dict[str, Any]:
        """
        Locate the full-length MP4 rendition of an event and sign a GET for it.

        The rendition is looked up under ``vodOutputPath`` when the pipeline
        reported one, otherwise under ``vod-output/{eventId}/`` in the output
        bucket.

        Raises:
            NotFoundError: Event missing or no MP4 rendition under the prefix
        """
        event = await self.events.get_by_id(event_id)
        if event is None:
            raise NotFoundError(
                message=f"Event not found: {event_id}", resource="event", resource_id=event_id
            )

        if event.vod_output_path:
            bucket, prefix = split_s3_location(event.vod_output_path, settings.vod_output_bucket)
        else:
            bucket, prefix = settings.vod_output_bucket, f"vod-output/{event_id}/"

        key = await self.media.find_object(bucket, prefix, ".mp4")
        if key is None:
            raise NotFoundError(
                message="Full-length MP4 not found for this event",
                resource="vod",
                resource_id=event_id,
                details={"bucket": bucket, "prefix": prefix},
            )

        ttl = settings.signed_url_ttl_seconds
        url = await self.media.presign_download(bucket, key, ttl)
        return {
            "eventId": event_id,
            "bucket": bucket,
            "key": key,
            "downloadUrl": url,
            "expiresIn": ttl,
        }
