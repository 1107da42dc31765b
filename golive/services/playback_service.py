"""Playback authorization: turn a viewer credential into a stream URL."""

from typing import Any

from golive.auth.tokens import ViewerClaims
from golive.exceptions import ForbiddenError, NotFoundError
from golive.logging.config import get_logger
from golive.repositories.event_repository import EventRepository
from golive.repositories.viewer_repository import ViewerRepository
from golive.services.access_policy import enforce_stream_gate
from golive.services.stream_resolution import resolve_stream
from golive.utils.clock import Clock, system_clock

logger = get_logger(__name__)


class PlaybackService:
    """Authorizes stream requests against the current viewer and event records."""

    def __init__(
        self,
        events: EventRepository | None = None,
        viewers: ViewerRepository | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.events = events or EventRepository()
        self.viewers = viewers or ViewerRepository()
        self.clock = clock

    async def get_stream(self, event_id: str, claims: ViewerClaims) -> dict[str, Any]:
        """
        Resolve the playback URL for an authorized viewer.

        Args:
            event_id: Event in the request path
            claims: Verified viewer credential

        Returns:
            Dict with streamUrl, playbackType and eventType

        Raises:
            ForbiddenError: Credential/event mismatch, unknown viewer, gate
                not satisfied or stream not yet available
            PaymentRequiredError: Paid event without payment
            NotFoundError: Unknown event
        """
        if claims.event_id != event_id:
            raise ForbiddenError("Event mismatch")

        viewer = await self.viewers.get(event_id, claims.client_viewer_id)
        if viewer is None:
            raise ForbiddenError("Viewer not authorized")

        event = await self.events.get_by_id(event_id)
        if event is None or event.is_deletion_in_progress:
            raise NotFoundError(
                message="Event not found", resource="event", resource_id=event_id
            )

        enforce_stream_gate(event.access_mode, viewer)

        decision = resolve_stream(event, self.clock.now())
        if decision.blocked:
            raise ForbiddenError(decision.blocked_reason)

        await self.viewers.touch_join(event_id, viewer.client_viewer_id, self.clock.now_iso())

        logger.info(
            "Stream authorized",
            extra={
                "context": {
                    "event_id": event_id,
                    "client_viewer_id": viewer.client_viewer_id,
                    "playback_type": decision.playback_type,
                }
            },
        )
        return {
            "success": True,
            "streamUrl": decision.stream_url,
            "playbackType": decision.playback_type,
            "eventType": event.event_type,
        }
