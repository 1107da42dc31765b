"""Fire-and-forget invocations of the worker Lambdas (password email, provisioning, teardown)."""

import json
from typing import Any

import aioboto3

from golive.config import settings
from golive.logging.config import get_logger
from golive.resources.aws import get_aws_config

logger = get_logger(__name__)


async def _invoke_async(
    session: aioboto3.Session, function_name: str, payload: dict[str, Any]
) -> None:
    async with session.client("lambda", **get_aws_config()) as client:
        await client.invoke(
            FunctionName=function_name,
            InvocationType="Event",
            Payload=json.dumps(payload).encode("utf-8"),
        )


class PasswordMailer:
    """Hands the event password to the email worker for delivery."""

    def __init__(
        self,
        session: aioboto3.Session | None = None,
        function_name: str | None = None,
    ) -> None:
        self.session = session or aioboto3.Session()
        self.function_name = function_name or settings.password_email_function_name

    async def send_event_password(
        self,
        *,
        email: str,
        event_id: str,
        event_title: str,
        password: str,
    ) -> None:
        """
        Queue the password email.

        Args:
            email: Recipient
            event_id: Event the password unlocks
            event_title: Title used in the subject line
            password: Plaintext event password
        """
        await _invoke_async(
            self.session,
            self.function_name,
            {
                "email": email,
                "eventId": event_id,
                "eventTitle": event_title,
                "password": password,
            },
        )
        logger.info(
            "Password email dispatched",
            extra={"context": {"event_id": event_id}},
        )


class ProvisioningDispatcher:
    """Asks the live provisioner to build the streaming stack for an event."""

    def __init__(
        self,
        session: aioboto3.Session | None = None,
        function_name: str | None = None,
    ) -> None:
        self.session = session or aioboto3.Session()
        self.function_name = function_name or settings.provisioning_function_name

    async def dispatch(self, event_id: str) -> bool:
        """
        Request provisioning for a live or scheduled event.

        Returns:
            True if a request was sent, False when no provisioner is configured
        """
        if not self.function_name:
            logger.info(
                "No provisioner configured; skipping",
                extra={"context": {"event_id": event_id}},
            )
            return False
        await _invoke_async(self.session, self.function_name, {"eventId": event_id})
        logger.info(
            "Provisioning requested",
            extra={"context": {"event_id": event_id}},
        )
        return True


class TeardownDispatcher:
    """Hands an accepted deletion to its own Lambda invocation."""

    def __init__(
        self,
        session: aioboto3.Session | None = None,
        function_name: str | None = None,
    ) -> None:
        self.session = session or aioboto3.Session()
        self.function_name = function_name or settings.teardown_function_name

    async def dispatch(self, event_id: str, deletion_started_at: str | None) -> bool:
        """
        Queue the teardown of a marked event.

        ``deletion_started_at`` identifies the deletion claim the invocation
        is allowed to run under.

        Returns:
            True if an invocation was queued, False when no function is configured
        """
        if not self.function_name:
            return False
        await _invoke_async(
            self.session,
            self.function_name,
            {"action": "teardown", "eventId": event_id, "deletionStartedAt": deletion_started_at},
        )
        logger.info(
            "Teardown dispatched",
            extra={"context": {"event_id": event_id, "function_name": self.function_name}},
        )
        return True
