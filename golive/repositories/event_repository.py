"""Event repository for DynamoDB operations."""

from collections.abc import Iterable
from typing import Any

from golive.config import settings
from golive.models.event import Event
from golive.repositories.base import BaseRepository, build_set_expression

EVENT_EXISTS = "attribute_exists(eventId)"


class EventRepository(BaseRepository):
    """
    Repository for Event operations in DynamoDB.

    Provides async methods for creating, retrieving, updating, flagging for
    deletion and deleting events.
    """

    decimal_fields = frozenset({"paymentAmount"})

    def __init__(self) -> None:
        """Initialize EventRepository with events table."""
        super().__init__(settings.dynamodb_table_events)

    def _deserialize_event(self, item: dict[str, Any]) -> Event:
        return Event.model_validate(item)

    async def create(self, event: Event) -> Event:
        """
        Create a new event; the write fails if the eventId is taken.

        Raises:
            ConditionFailedError: If an event with the same id already exists
        """
        await self.put_item(
            event.to_item(), condition_expression="attribute_not_exists(eventId)"
        )
        return event

    async def get_by_id(self, event_id: str) -> Event | None:
        """
        Get event by ID.

        Args:
            event_id: Event partition key

        Returns:
            Event if found, None otherwise
        """
        item = await self.get_item({"eventId": event_id})
        if item:
            return self._deserialize_event(item)
        return None

    async def list_events(
        self,
        query: str | None = None,
        event_type: str | None = None,
        limit: int = 50,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> tuple[list[Event], dict[str, Any] | None]:
        """
        List events, optionally filtered by type and a title/description search.

        Scans page by page until ``limit`` matches are collected. When a page
        yields more matches than needed, the cursor points at the last event
        returned so the next call resumes right after it.

        Args:
            query: Case-insensitive substring matched against title and description
            event_type: Restrict to one event type
            limit: Maximum events to return
            exclusive_start_key: Cursor key from a previous call

        Returns:
            Tuple of (events, next cursor key or None)
        """
        filter_expression = None
        values = None
        names = None
        if event_type:
            filter_expression = "#type = :type"
            values = {":type": event_type}
            names = {"#type": "eventType"}

        needle = query.strip().lower() if query else None
        events: list[Event] = []
        start_key = exclusive_start_key

        while True:
            items, start_key = await self.scan(
                filter_expression=filter_expression,
                expression_values=values,
                expression_names=names,
                limit=limit,
                exclusive_start_key=start_key,
            )
            for item in items:
                if needle and not _matches(item, needle):
                    continue
                events.append(self._deserialize_event(item))
                if len(events) == limit:
                    return events, {"eventId": item["eventId"]}
            if not start_key:
                return events, None

    async def update_fields(
        self,
        event_id: str,
        fields: dict[str, Any],
        remove: Iterable[str] = (),
        condition_expression: str = EVENT_EXISTS,
        condition_values: dict[str, Any] | None = None,
    ) -> Event:
        """
        Set (and optionally remove) attributes on an existing event.

        Args:
            event_id: Event partition key
            fields: camelCase attributes to set
            remove: camelCase attributes to remove
            condition_expression: Guard for the update (defaults to existence)
            condition_values: Placeholder values used by the guard

        Returns:
            The updated Event

        Raises:
            ConditionFailedError: If the event is missing or the guard fails
        """
        expression, names, values = build_set_expression(fields)
        removed = list(remove)
        if removed:
            placeholders = []
            for index, attribute in enumerate(removed):
                names[f"#r{index}"] = attribute
                placeholders.append(f"#r{index}")
            expression += " REMOVE " + ", ".join(placeholders)
        if condition_values:
            values.update(condition_values)

        item = await self.update_item(
            {"eventId": event_id},
            expression,
            expression_values=values,
            expression_names=names,
            condition_expression=condition_expression,
        )
        return self._deserialize_event(item)

    async def mark_deletion_started(self, event_id: str, started_at: str) -> Event:
        """
        Claim the single deletion slot for an event.

        Raises:
            ConditionFailedError: If the event is gone or a deletion is already running
        """
        item = await self.update_item(
            {"eventId": event_id},
            "SET isDeletionInProgress = :true, deletionStartedAt = :now, "
            "updatedAt = :now REMOVE deletionError, deletionFailedAt",
            expression_values={":true": True, ":false": False, ":now": started_at},
            condition_expression=(
                "attribute_exists(eventId) AND "
                "(attribute_not_exists(isDeletionInProgress) OR isDeletionInProgress = :false)"
            ),
        )
        return self._deserialize_event(item)

    async def take_over_deletion(
        self, event_id: str, previous_started_at: str | None, started_at: str
    ) -> Event:
        """
        Re-claim a deletion slot whose run was abandoned.

        Raises:
            ConditionFailedError: If the slot was released or claimed again meanwhile
        """
        values: dict[str, Any] = {":true": True, ":now": started_at}
        condition = "attribute_exists(eventId) AND isDeletionInProgress = :true AND "
        if previous_started_at is None:
            condition += "attribute_not_exists(deletionStartedAt)"
        else:
            condition += "deletionStartedAt = :previous"
            values[":previous"] = previous_started_at
        item = await self.update_item(
            {"eventId": event_id},
            "SET deletionStartedAt = :now, updatedAt = :now REMOVE deletionError, deletionFailedAt",
            expression_values=values,
            condition_expression=condition,
        )
        return self._deserialize_event(item)

    async def mark_deletion_failed(
        self, event_id: str, error: str, failed_at: str
    ) -> Event:
        """Release the deletion slot and record why teardown stopped."""
        item = await self.update_item(
            {"eventId": event_id},
            "SET isDeletionInProgress = :false, deletionError = :error, "
            "deletionFailedAt = :now, updatedAt = :now",
            expression_values={":false": False, ":error": error, ":now": failed_at},
            condition_expression=EVENT_EXISTS,
        )
        return self._deserialize_event(item)

    async def delete(self, event_id: str) -> None:
        """Delete the event record (no-op when it is already gone)."""
        await self.delete_item({"eventId": event_id})


def _matches(item: dict[str, Any], needle: str) -> bool:
    haystack = f"{item.get('title', '')} {item.get('description', '')}".lower()
    return needle in haystack
