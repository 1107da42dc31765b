"""Viewer repository for DynamoDB operations."""

from typing import Any

from golive.config import settings
from golive.models.viewer import Viewer
from golive.repositories.base import BaseRepository, build_set_expression

VIEWER_EXISTS = "attribute_exists(clientViewerId)"


class ViewerRepository(BaseRepository):
    """
    Repository for Viewer operations in DynamoDB.

    Viewers are keyed by (eventId, clientViewerId). Counters are maintained
    with atomic ADD so concurrent sessions never lose increments.
    """

    def __init__(self) -> None:
        """Initialize ViewerRepository with viewers table."""
        super().__init__(settings.dynamodb_table_viewers)

    @staticmethod
    def _key(event_id: str, client_viewer_id: str) -> dict[str, str]:
        return {"eventId": event_id, "clientViewerId": client_viewer_id}

    async def get(self, event_id: str, client_viewer_id: str) -> Viewer | None:
        """
        Get a viewer registration.

        Args:
            event_id: Event partition key
            client_viewer_id: Viewer sort key

        Returns:
            Viewer if found, None otherwise
        """
        item = await self.get_item(self._key(event_id, client_viewer_id))
        return Viewer.model_validate(item) if item else None

    async def create(self, viewer: Viewer) -> Viewer:
        """
        Persist a first-time registration.

        Raises:
            ConditionFailedError: If the viewer already exists
        """
        await self.put_item(
            viewer.to_item(), condition_expression="attribute_not_exists(clientViewerId)"
        )
        return viewer

    async def find_by_identity(
        self,
        event_id: str,
        identity_key: str | None,
        normalized_email: str | None,
    ) -> list[Viewer]:
        """
        Find viewers of an event whose identity key or normalized email matches.

        Args:
            event_id: Event partition key
            identity_key: Registration identity key to match
            normalized_email: Normalized email to match

        Returns:
            Matching viewers, oldest registration first
        """
        clauses = []
        values: dict[str, Any] = {":eventId": event_id}
        if identity_key:
            clauses.append("registrationIdentityKey = :identityKey")
            values[":identityKey"] = identity_key
        if normalized_email:
            clauses.append("normalizedEmail = :email")
            values[":email"] = normalized_email
        if not clauses:
            return []

        items = await self.query_all(
            "eventId = :eventId",
            values,
            filter_expression=" OR ".join(clauses),
        )
        viewers = [Viewer.model_validate(item) for item in items]
        return sorted(viewers, key=lambda v: v.created_at)

    async def update_fields(
        self,
        event_id: str,
        client_viewer_id: str,
        fields: dict[str, Any],
    ) -> Viewer:
        """
        Set attributes on an existing viewer.

        Raises:
            ConditionFailedError: If the viewer does not exist
        """
        expression, names, values = build_set_expression(fields)
        item = await self.update_item(
            self._key(event_id, client_viewer_id),
            expression,
            expression_values=values,
            expression_names=names,
            condition_expression=VIEWER_EXISTS,
        )
        return Viewer.model_validate(item)

    async def apply_payment_state(
        self,
        event_id: str,
        client_viewer_id: str,
        fields: dict[str, Any],
        grants_access: bool,
    ) -> Viewer:
        """
        Mirror a payment outcome onto the viewer.

        A viewer who already holds paid access is never demoted by another
        payment's failure or expiry.

        Args:
            event_id: Event partition key
            client_viewer_id: Viewer sort key
            fields: camelCase attributes to set
            grants_access: True when the payment outcome is success

        Raises:
            ConditionFailedError: If the viewer is missing or already paid
                and this outcome would revoke access
        """
        expression, names, values = build_set_expression(fields)
        condition = VIEWER_EXISTS
        if not grants_access:
            condition += " AND (attribute_not_exists(isPaidViewer) OR isPaidViewer = :notPaid)"
            values[":notPaid"] = False
        item = await self.update_item(
            self._key(event_id, client_viewer_id),
            expression,
            expression_values=values,
            expression_names=names,
            condition_expression=condition,
        )
        return Viewer.model_validate(item)

    async def touch_join(self, event_id: str, client_viewer_id: str, now: str) -> None:
        """Stamp lastJoinAt after a successful stream authorization."""
        await self.update_item(
            self._key(event_id, client_viewer_id),
            "SET lastJoinAt = :now, updatedAt = :now",
            expression_values={":now": now},
            condition_expression=VIEWER_EXISTS,
        )

    async def record_session_start(
        self, event_id: str, client_viewer_id: str, now: str
    ) -> None:
        """Stamp join/activity times and atomically count one more session."""
        await self.update_item(
            self._key(event_id, client_viewer_id),
            "SET lastJoinAt = :now, lastActiveAt = :now, updatedAt = :now "
            "ADD totalSessions :one",
            expression_values={":now": now, ":one": 1},
            condition_expression=VIEWER_EXISTS,
        )

    async def add_watch_time(
        self, event_id: str, client_viewer_id: str, seconds: int, now: str
    ) -> None:
        """Atomically add watched seconds to the viewer's running total."""
        await self.update_item(
            self._key(event_id, client_viewer_id),
            "SET lastActiveAt = :now, updatedAt = :now ADD totalWatchTime :seconds",
            expression_values={":now": now, ":seconds": seconds},
            condition_expression=VIEWER_EXISTS,
        )
