"""Table layouts must match the keys and indexes the repositories use."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from golive.config import settings
from golive.repositories.payment_repository import EVENT_INDEX, EVENT_VIEWER_INDEX
from infrastructure.dynamodb_tables import create_table, table_definitions


def by_name():
    return {definition["TableName"]: definition for definition in table_definitions(settings)}


def test_every_configured_table_defined():
    assert set(by_name()) == {
        settings.dynamodb_table_events,
        settings.dynamodb_table_viewers,
        settings.dynamodb_table_payments,
        settings.dynamodb_table_sessions,
        settings.dynamodb_table_admins,
        settings.dynamodb_table_event_secrets,
    }


def test_payment_indexes_match_repository():
    payments = by_name()[settings.dynamodb_table_payments]
    indexes = {index["IndexName"]: index["KeySchema"] for index in payments["GlobalSecondaryIndexes"]}

    assert [key["AttributeName"] for key in payments["KeySchema"]] == ["paymentId", "createdAt"]
    assert [key["AttributeName"] for key in indexes[EVENT_INDEX]] == ["eventId", "createdAt"]
    assert [key["AttributeName"] for key in indexes[EVENT_VIEWER_INDEX]] == ["eventId", "clientViewerId"]


def test_viewer_key_is_event_and_client_viewer():
    viewers = by_name()[settings.dynamodb_table_viewers]

    assert [key["AttributeName"] for key in viewers["KeySchema"]] == ["eventId", "clientViewerId"]


@pytest.mark.asyncio
async def test_existing_table_is_skipped():
    dynamodb = MagicMock()
    dynamodb.create_table = AsyncMock(
        side_effect=ClientError({"Error": {"Code": "ResourceInUseException", "Message": "exists"}}, "CreateTable")
    )

    assert await create_table(dynamodb, {"TableName": "golive-events"}) is False
