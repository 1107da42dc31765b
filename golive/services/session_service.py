"""Playback session telemetry: start, heartbeat, end."""

from typing import Any

from golive.auth.tokens import ViewerClaims
from golive.exceptions import (
    ConditionFailedError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from golive.logging.config import get_logger
from golive.models.session import PlaybackSession
from golive.repositories.session_repository import SessionRepository
from golive.repositories.viewer_repository import ViewerRepository
from golive.schemas.session import StartSessionRequest
from golive.utils.clock import Clock, system_clock
from golive.utils.ids import new_id
from golive.utils.viewer_context import normalize_device

logger = get_logger(__name__)

PLAYBACK_TYPES = ("live", "vod")


def whole_seconds(value: float | int | None) -> int:
    """Round reported seconds to a whole, non-negative number."""
    if value is None:
        return 0
    return max(0, int(round(value)))


class SessionService:
    """
    Records analytics sessions for authorized viewers.

    Durations only grow: heartbeats add atomically and ``end`` keeps the
    larger of the stored and reported duration.
    """

    def __init__(
        self,
        sessions: SessionRepository | None = None,
        viewers: ViewerRepository | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.sessions = sessions or SessionRepository()
        self.viewers = viewers or ViewerRepository()
        self.clock = clock

    async def start(
        self,
        event_id: str,
        claims: ViewerClaims,
        request: StartSessionRequest,
        network: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Open a session owned by the viewer in the credential.

        Raises:
            ForbiddenError: If the credential belongs to another event or the
                viewer is unknown
            InvalidInputError: If the playback type is not live or vod
        """
        if claims.event_id != event_id:
            raise ForbiddenError("Event mismatch")
        playback_type = (request.playback_type or "vod").strip().lower()
        if playback_type not in PLAYBACK_TYPES:
            raise InvalidInputError("playbackType must be live or vod")

        viewer = await self.viewers.get(event_id, claims.client_viewer_id)
        if viewer is None:
            raise ForbiddenError("Viewer not authorized")

        now = self.clock.now_iso()
        session = PlaybackSession(
            session_id=new_id(),
            event_id=event_id,
            client_viewer_id=claims.client_viewer_id,
            playback_type=playback_type,
            device_info=normalize_device(request.device_info) if request.device_info else None,
            location=request.location,
            network=network,
            is_paid_viewer=viewer.is_paid_viewer,
            start_time=now,
            duration=0,
            created_at=now,
        )
        await self.sessions.create(session)
        await self.viewers.record_session_start(event_id, claims.client_viewer_id, now)

        logger.info(
            "Playback session started",
            extra={
                "context": {
                    "event_id": event_id,
                    "session_id": session.session_id,
                    "playback_type": playback_type,
                }
            },
        )
        return {"success": True, "sessionId": session.session_id, "startTime": now}

    async def heartbeat(
        self, session_id: str, claims: ViewerClaims, seconds: float
    ) -> dict[str, Any]:
        """
        Add watched seconds to a session and to the viewer's total.

        Raises:
            NotFoundError: If the session does not exist or is not the caller's
        """
        increment = whole_seconds(seconds)
        try:
            session = await self.sessions.add_duration(
                session_id, claims.event_id, claims.client_viewer_id, increment
            )
        except ConditionFailedError:
            raise NotFoundError(
                message="Session not found", resource="session", resource_id=session_id
            )
        if increment:
            await self.viewers.add_watch_time(
                claims.event_id, claims.client_viewer_id, increment, self.clock.now_iso()
            )
        return {"success": True, "duration": session.duration}

    async def end(
        self, session_id: str, claims: ViewerClaims, duration: float
    ) -> dict[str, Any]:
        """
        Close a session.

        Raises:
            NotFoundError: If the session does not exist or is not the caller's
        """
        end_time = self.clock.now_iso()
        try:
            session = await self.sessions.close(
                session_id,
                claims.event_id,
                claims.client_viewer_id,
                whole_seconds(duration),
                end_time,
            )
        except ConditionFailedError:
            raise NotFoundError(
                message="Session not found", resource="session", resource_id=session_id
            )
        logger.info(
            "Playback session ended",
            extra={"context": {"session_id": session_id, "duration": session.duration}},
        )
        return {"success": True, "duration": session.duration, "endTime": session.end_time}
