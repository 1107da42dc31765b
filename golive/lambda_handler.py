"""AWS Lambda handler for the GoLive Events API.

API Gateway requests go through the Mangum adapter. Direct invocations
carrying an ``action`` key are worker signals:

- ``{"action": "teardown", "eventId": ..., "deletionStartedAt": ...}`` runs a
  dispatched teardown; without ``deletionStartedAt`` it resumes one out of band
- ``{"action": "provisioningResult", "eventId": ..., ...handles}``
- ``{"action": "vodStatus", "eventId": ..., "vodStatus": ..., ...urls}``
"""

import asyncio
from typing import Any

from mangum import Mangum

from golive.exceptions import GoLiveError, InvalidInputError
from golive.logging.config import get_logger
from golive.main import app
from golive.schemas.event import ProvisioningResultRequest, VodStatusRequest
from golive.services.event_service import EventService
from golive.services.teardown import TeardownPipeline

logger = get_logger(__name__)

# Mangum converts API Gateway events to ASGI requests and back;
# api_gateway_base_path strips the stage name from paths
handler = Mangum(app, lifespan="off", api_gateway_base_path="/v1")


async def resume_teardown(event_id: str, deletion_started_at: str | None = None) -> dict[str, Any]:
    """
    Run an event teardown to completion under a valid deletion claim.

    Raises:
        ConflictError: If another run still holds the deletion slot
    """
    await EventService().claim_teardown(event_id, deletion_started_at)
    deleted = await TeardownPipeline().run(event_id)
    return {"success": deleted, "eventId": event_id}


async def handle_action(event: dict[str, Any]) -> dict[str, Any]:
    """
    Dispatch a direct worker invocation.

    Args:
        event: Invocation payload with ``action`` and ``eventId``

    Returns:
        Dict with ``success`` and either ``eventId`` or an error message
    """
    action = event.get("action")
    event_id = event.get("eventId")
    if not event_id:
        raise InvalidInputError("eventId is required")

    if action == "teardown":
        return await resume_teardown(event_id, event.get("deletionStartedAt"))

    service = EventService()
    if action == "provisioningResult":
        updated = await service.apply_provisioning_result(
            event_id, ProvisioningResultRequest.model_validate(event)
        )
    elif action == "vodStatus":
        updated = await service.apply_vod_status(
            event_id, VodStatusRequest.model_validate(event)
        )
    else:
        raise InvalidInputError(f"Unknown action: {action}")
    return {"success": True, "eventId": updated.event_id}


def lambda_handler(event: dict, context: object) -> dict:
    """
    AWS Lambda function handler.

    Args:
        event: API Gateway event, or a direct worker invocation with ``action``
        context: Lambda context object with runtime information

    Returns:
        API Gateway response dict, or the action result for direct invocations
    """
    if isinstance(event, dict) and "action" in event:
        try:
            return asyncio.run(handle_action(event))
        except GoLiveError as exc:
            logger.warning(
                "Direct invocation rejected",
                extra={"context": {"action": event.get("action"), "error": exc.message}},
            )
            return {"success": False, "message": exc.message, "error_code": exc.error_code}
    return handler(event, context)
