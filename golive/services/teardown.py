"""
Ordered teardown of an event's cloud resources after a delete request.

Runs after the HTTP response (202) has been sent. Each step treats "not
found" as success, so a teardown that failed part-way can simply be run
again once the deletion flag has been cleared.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from golive.config import settings
from golive.exceptions import ConditionFailedError, UpstreamFailureError
from golive.logging.config import get_logger
from golive.models.event import Event
from golive.repositories.event_repository import EventRepository
from golive.repositories.event_secret_repository import EventSecretRepository
from golive.resources.media import MediaResources
from golive.utils.clock import Clock, system_clock

logger = get_logger(__name__)


def split_s3_location(location: str, default_bucket: str) -> tuple[str, str]:
    """
    Split ``s3://bucket/prefix`` into (bucket, prefix).

    A bare prefix is resolved against ``default_bucket``.
    """
    if location.startswith("s3://"):
        bucket, _, prefix = location[len("s3://") :].partition("/")
        return bucket, prefix
    return default_bucket, location.lstrip("/")


class TeardownPipeline:
    """
    Deletes an event's media resources in dependency order, then the event.

    Live and scheduled events: stop channel, wait for IDLE, delete channel,
    wait until it is gone, delete input and its security group, delete the
    packager endpoint and channel, remove the CDN cache behaviors and then
    the origin, purge the recording prefix. VOD events: purge the upload and
    output prefixes. Finally the sealed password and the event record go.
    """

    def __init__(
        self,
        events: EventRepository | None = None,
        secrets: EventSecretRepository | None = None,
        media: MediaResources | None = None,
        clock: Clock = system_clock,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        poll_interval: int | None = None,
        budget: int | None = None,
    ) -> None:
        self.events = events or EventRepository()
        self.secrets = secrets or EventSecretRepository()
        self.media = media or MediaResources()
        self.clock = clock
        self.sleep = sleep
        self.poll_interval = poll_interval or settings.teardown_poll_interval_seconds
        self.budget = budget or settings.teardown_budget_seconds

    async def run(self, event_id: str) -> bool:
        """
        Tear down every resource of an event and delete the record.

        Failures are recorded on the event (``deletionError``,
        ``deletionFailedAt``) and the deletion flag is released.

        Returns:
            True if the event is gone, False if teardown stopped on an error
        """
        event = await self.events.get_by_id(event_id)
        if event is None:
            logger.info("Teardown skipped; event already gone", extra={"context": {"event_id": event_id}})
            return True

        logger.info(
            "Teardown started",
            extra={"context": {"event_id": event_id, "event_type": event.event_type}},
        )
        try:
            if event.event_type == "vod":
                await self._teardown_vod(event)
            else:
                await self._teardown_live(event)
            await self.secrets.delete(event_id)
            await self.events.delete(event_id)
        except Exception as exc:
            logger.exception(
                "Teardown failed",
                extra={"context": {"event_id": event_id, "error": str(exc)}},
            )
            await self._record_failure(event_id, exc)
            return False

        logger.info("Teardown complete", extra={"context": {"event_id": event_id}})
        return True

    async def _record_failure(self, event_id: str, exc: Exception) -> None:
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        try:
            await self.events.mark_deletion_failed(event_id, message, self.clock.now_iso())
        except ConditionFailedError:
            logger.warning(
                "Event vanished before the teardown failure could be recorded",
                extra={"context": {"event_id": event_id}},
            )

    async def _teardown_live(self, event: Event) -> None:
        media = self.media
        channel_id = event.live_channel_id

        if channel_id:
            await self._step(event, "stop_live_channel", media.stop_live_channel(channel_id))
            await self._wait_for(
                "live channel to stop",
                lambda: media.describe_live_channel_state(channel_id),
                lambda state: state in (None, "IDLE"),
            )
            await self._step(event, "delete_live_channel", media.delete_live_channel(channel_id))
            await self._wait_for(
                "live channel deletion",
                lambda: media.describe_live_channel_state(channel_id),
                lambda state: state is None,
            )
        if event.input_id:
            await self._step(event, "delete_input", media.delete_input(event.input_id))
        if event.input_security_group_id:
            await self._step(
                event,
                "delete_input_security_group",
                media.delete_input_security_group(event.input_security_group_id),
            )
        if event.packager_endpoint_id:
            await self._step(
                event,
                "delete_packager_endpoint",
                media.delete_packager_endpoint(event.packager_endpoint_id),
            )
        if event.packager_channel_id:
            await self._step(
                event,
                "delete_packager_channel",
                media.delete_packager_channel(event.packager_channel_id),
            )
        if event.distribution_id:
            await self._step(
                event,
                "remove_cache_behaviors",
                media.remove_cache_behaviors(
                    event.distribution_id, event.origin_id, event.cache_behavior_ids
                ),
            )
            if event.origin_id:
                await self._step(
                    event,
                    "remove_origin",
                    media.remove_origin(event.distribution_id, event.origin_id),
                )
        if event.recording_bucket and event.recording_prefix:
            await self._step(
                event,
                "purge_recording",
                media.purge_prefix(event.recording_bucket, event.recording_prefix),
            )

    async def _teardown_vod(self, event: Event) -> None:
        if event.s3_prefix:
            await self._step(
                event,
                "purge_upload",
                self.media.purge_prefix(settings.vod_upload_bucket, event.s3_prefix),
            )
        if event.vod_output_path:
            bucket, prefix = split_s3_location(event.vod_output_path, settings.vod_output_bucket)
            await self._step(event, "purge_output", self.media.purge_prefix(bucket, prefix))

    async def _step(self, event: Event, name: str, call: Awaitable[Any]) -> Any:
        result = await call
        logger.info(
            "Teardown step complete",
            extra={"context": {"event_id": event.event_id, "step": name}},
        )
        return result

    async def _wait_for(
        self,
        what: str,
        fetch_state: Callable[[], Awaitable[Any]],
        done: Callable[[Any], bool],
    ) -> None:
        """
        Poll ``fetch_state`` every poll interval until ``done`` accepts its result.

        Raises:
            UpstreamFailureError: If the budget runs out first
        """
        attempts = max(1, self.budget // self.poll_interval)
        state = None
        for attempt in range(attempts):
            state = await fetch_state()
            if done(state):
                return
            if attempt < attempts - 1:
                await self.sleep(self.poll_interval)
        raise UpstreamFailureError(
            f"Timed out waiting for {what}",
            service="medialive",
            details={"last_state": state},
        )
