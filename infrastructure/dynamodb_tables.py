"""Script to create DynamoDB tables for LocalStack or AWS."""

import asyncio
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

THROUGHPUT = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}


def _key_schema(hash_key: str, range_key: str | None = None) -> list[dict[str, str]]:
    schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return schema


def _index(name: str, hash_key: str, range_key: str | None = None) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": _key_schema(hash_key, range_key),
        "Projection": {"ProjectionType": "ALL"},
        "ProvisionedThroughput": THROUGHPUT,
    }


def table_definitions(settings: Any) -> list[dict[str, Any]]:
    """
    Table layouts for every store the API uses.

    Args:
        settings: Application settings providing the table names

    Returns:
        ``create_table`` keyword arguments, one dict per table
    """
    return [
        {
            "TableName": settings.dynamodb_table_events,
            "KeySchema": _key_schema("eventId"),
            "AttributeDefinitions": [{"AttributeName": "eventId", "AttributeType": "S"}],
        },
        {
            "TableName": settings.dynamodb_table_viewers,
            "KeySchema": _key_schema("eventId", "clientViewerId"),
            "AttributeDefinitions": [
                {"AttributeName": "eventId", "AttributeType": "S"},
                {"AttributeName": "clientViewerId", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [_index("email-index", "email")],
        },
        {
            "TableName": settings.dynamodb_table_payments,
            "KeySchema": _key_schema("paymentId", "createdAt"),
            "AttributeDefinitions": [
                {"AttributeName": "paymentId", "AttributeType": "S"},
                {"AttributeName": "createdAt", "AttributeType": "S"},
                {"AttributeName": "eventId", "AttributeType": "S"},
                {"AttributeName": "clientViewerId", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                _index("eventId-index", "eventId", "createdAt"),
                _index("eventId-clientViewerId-index", "eventId", "clientViewerId"),
            ],
        },
        {
            "TableName": settings.dynamodb_table_sessions,
            "KeySchema": _key_schema("sessionId"),
            "AttributeDefinitions": [
                {"AttributeName": "sessionId", "AttributeType": "S"},
                {"AttributeName": "eventId", "AttributeType": "S"},
                {"AttributeName": "startTime", "AttributeType": "S"},
                {"AttributeName": "clientViewerId", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                _index("eventId-startTime-index", "eventId", "startTime"),
                _index("clientViewerId-index", "clientViewerId"),
            ],
        },
        {
            "TableName": settings.dynamodb_table_admins,
            "KeySchema": _key_schema("adminId"),
            "AttributeDefinitions": [
                {"AttributeName": "adminId", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [_index("email-index", "email")],
        },
        {
            "TableName": settings.dynamodb_table_event_secrets,
            "KeySchema": _key_schema("eventId"),
            "AttributeDefinitions": [{"AttributeName": "eventId", "AttributeType": "S"}],
        },
    ]


async def create_table(dynamodb: Any, definition: dict[str, Any]) -> bool:
    """
    Create one table and wait until it exists.

    Args:
        dynamodb: DynamoDB resource
        definition: ``create_table`` keyword arguments

    Returns:
        True if created, False if it already existed
    """
    table_name = definition["TableName"]
    try:
        table = await dynamodb.create_table(
            **definition,
            BillingMode="PROVISIONED",
            ProvisionedThroughput=THROUGHPUT,
        )
        await table.wait_until_exists()
        print(f"✓ Created table: {table_name}")
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            print(f"→ Table already exists: {table_name}")
            return False
        raise


async def main() -> None:
    """Create all required DynamoDB tables."""
    from golive.config import settings
    from golive.repositories.base import get_dynamodb_config

    print("Creating DynamoDB tables...")
    print(f"Region: {settings.aws_region}")
    print(f"Endpoint: {settings.dynamodb_endpoint_url or 'AWS'}")
    print()

    session = aioboto3.Session()
    async with session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
        for definition in table_definitions(settings):
            await create_table(dynamodb, definition)

    print()
    print("✓ All tables created successfully!")


if __name__ == "__main__":
    asyncio.run(main())
