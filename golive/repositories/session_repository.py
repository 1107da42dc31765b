"""Playback session repository for DynamoDB operations."""

from golive.config import settings
from golive.exceptions import ConditionFailedError
from golive.models.session import PlaybackSession
from golive.repositories.base import BaseRepository

OWNED_BY_CALLER = (
    "attribute_exists(sessionId) AND eventId = :eventId "
    "AND clientViewerId = :clientViewerId"
)


class SessionRepository(BaseRepository):
    """
    Repository for analytics sessions.

    Heartbeat and end writes are conditional on the session belonging to the
    calling viewer, so no read is needed before writing.
    """

    def __init__(self) -> None:
        """Initialize SessionRepository with sessions table."""
        super().__init__(settings.dynamodb_table_sessions)

    async def create(self, session: PlaybackSession) -> PlaybackSession:
        await self.put_item(
            session.to_item(), condition_expression="attribute_not_exists(sessionId)"
        )
        return session

    async def get(self, session_id: str) -> PlaybackSession | None:
        item = await self.get_item({"sessionId": session_id})
        return PlaybackSession.model_validate(item) if item else None

    async def add_duration(
        self,
        session_id: str,
        event_id: str,
        client_viewer_id: str,
        seconds: int,
    ) -> PlaybackSession:
        """
        Atomically add seconds to a session's duration.

        Raises:
            ConditionFailedError: If the session is missing or owned by someone else
        """
        item = await self.update_item(
            {"sessionId": session_id},
            "ADD #duration :seconds",
            expression_values={
                ":seconds": seconds,
                ":eventId": event_id,
                ":clientViewerId": client_viewer_id,
            },
            expression_names={"#duration": "duration"},
            condition_expression=OWNED_BY_CALLER,
        )
        return PlaybackSession.model_validate(item)

    async def close(
        self,
        session_id: str,
        event_id: str,
        client_viewer_id: str,
        duration: int,
        end_time: str,
    ) -> PlaybackSession:
        """
        Close a session, keeping the larger of the stored and reported duration.

        Raises:
            ConditionFailedError: If the session is missing or owned by someone else
        """
        values = {
            ":endTime": end_time,
            ":duration": duration,
            ":eventId": event_id,
            ":clientViewerId": client_viewer_id,
        }
        try:
            item = await self.update_item(
                {"sessionId": session_id},
                "SET endTime = :endTime, #duration = :duration",
                expression_values=values,
                expression_names={"#duration": "duration"},
                condition_expression=(
                    f"{OWNED_BY_CALLER} AND "
                    "(attribute_not_exists(#duration) OR #duration <= :duration)"
                ),
            )
        except ConditionFailedError:
            # Stored duration is already larger (or the owner check failed)
            values.pop(":duration")
            item = await self.update_item(
                {"sessionId": session_id},
                "SET endTime = :endTime",
                expression_values=values,
                condition_expression=OWNED_BY_CALLER,
            )
        return PlaybackSession.model_validate(item)
