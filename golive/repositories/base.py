"""Base repository class with common DynamoDB operations."""

from decimal import Decimal
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

from golive.config import settings
from golive.exceptions import ConditionFailedError
from golive.resources.aws import get_aws_config


def get_dynamodb_config() -> dict[str, Any]:
    """
    Build DynamoDB resource parameters for the current environment.

    Adds ``endpoint_url`` when a local endpoint (LocalStack) is configured;
    everything else comes from the shared AWS client configuration.

    Returns:
        Keyword arguments for ``session.resource("dynamodb", ...)``
    """
    return get_aws_config(endpoint_url=settings.dynamodb_endpoint_url)


def to_dynamo(value: Any) -> Any:
    """Convert floats (at any depth) to Decimal, which DynamoDB requires."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int or float; sets become lists."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [from_dynamo(v) for v in value]
    return value


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class BaseRepository:
    """
    Base repository providing common DynamoDB operations.

    All repository methods are async and use aioboto3 for non-blocking
    database operations. Rejected conditional writes surface as
    ``ConditionFailedError``; every other store error propagates.
    """

    # Attributes that keep Decimal precision when read back (money)
    decimal_fields: frozenset[str] = frozenset()

    def __init__(self, table_name: str) -> None:
        """
        Initialize repository with table name.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.session = aioboto3.Session()

    def _from_item(self, item: dict[str, Any]) -> dict[str, Any]:
        return {
            key: value if key in self.decimal_fields else from_dynamo(value)
            for key, value in item.items()
        }

    async def put_item(
        self,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_names: dict[str, str] | None = None,
        expression_values: dict[str, Any] | None = None,
    ) -> None:
        """
        Put item into DynamoDB table.

        Args:
            item: Dictionary representing the item to store
            condition_expression: Optional condition (e.g. attribute_not_exists)
            expression_names: Attribute name placeholders for the condition
            expression_values: Attribute value placeholders for the condition

        Raises:
            ConditionFailedError: If the condition rejects the write
        """
        params: dict[str, Any] = {"Item": to_dynamo(item)}
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        if expression_names:
            params["ExpressionAttributeNames"] = expression_names
        if expression_values:
            params["ExpressionAttributeValues"] = to_dynamo(expression_values)

        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.put_item(**params)
            except ClientError as exc:
                if _is_condition_failure(exc):
                    raise ConditionFailedError(self.table_name) from exc
                raise

    async def get_item(
        self, key: dict[str, Any], consistent: bool = True
    ) -> dict[str, Any] | None:
        """
        Get item from DynamoDB table by key.

        Args:
            key: Dictionary with partition key and optionally sort key
            consistent: Use a strongly consistent read

        Returns:
            Item dictionary or None if not found
        """
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            response = await table.get_item(Key=key, ConsistentRead=consistent)
            item = response.get("Item")
            return self._from_item(item) if item else None

    async def delete_item(
        self, key: dict[str, Any], condition_expression: str | None = None
    ) -> None:
        """
        Delete item from DynamoDB table.

        Args:
            key: Dictionary with partition key and optionally sort key
            condition_expression: Optional condition guarding the delete
        """
        params: dict[str, Any] = {"Key": key}
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.delete_item(**params)
            except ClientError as exc:
                if _is_condition_failure(exc):
                    raise ConditionFailedError(self.table_name) from exc
                raise

    async def update_item(
        self,
        key: dict[str, Any],
        update_expression: str,
        expression_values: dict[str, Any] | None = None,
        expression_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """
        Update item in DynamoDB table.

        Args:
            key: Dictionary with partition key and optionally sort key
            update_expression: DynamoDB update expression (SET/ADD/REMOVE)
            expression_values: Values for the update expression
            expression_names: Attribute name mappings for reserved keywords
            condition_expression: Optional condition guarding the update

        Returns:
            Updated item attributes

        Raises:
            ConditionFailedError: If the condition rejects the update
        """
        update_params: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ReturnValues": "ALL_NEW",
        }
        if expression_values:
            update_params["ExpressionAttributeValues"] = to_dynamo(expression_values)
        if expression_names:
            update_params["ExpressionAttributeNames"] = expression_names
        if condition_expression:
            update_params["ConditionExpression"] = condition_expression

        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                response = await table.update_item(**update_params)
            except ClientError as exc:
                if _is_condition_failure(exc):
                    raise ConditionFailedError(self.table_name) from exc
                raise
            return self._from_item(response.get("Attributes", {}))

    async def query(
        self,
        key_condition: str,
        expression_values: dict[str, Any],
        index_name: str | None = None,
        filter_expression: str | None = None,
        expression_names: dict[str, str] | None = None,
        limit: int | None = None,
        exclusive_start_key: dict[str, Any] | None = None,
        scan_forward: bool = True,
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        Query a table or secondary index for one page of items.

        Args:
            key_condition: Key condition expression
            expression_values: Values for key condition and filter
            index_name: Secondary index to query, or None for the base table
            filter_expression: Optional post-read filter
            expression_names: Attribute name mappings
            limit: Maximum items evaluated for this page
            exclusive_start_key: Cursor from a previous page
            scan_forward: Ascending sort-key order when True

        Returns:
            Tuple of (items, LastEvaluatedKey or None)
        """
        params: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ExpressionAttributeValues": to_dynamo(expression_values),
            "ScanIndexForward": scan_forward,
        }
        if index_name:
            params["IndexName"] = index_name
        if filter_expression:
            params["FilterExpression"] = filter_expression
        if expression_names:
            params["ExpressionAttributeNames"] = expression_names
        if limit:
            params["Limit"] = limit
        if exclusive_start_key:
            params["ExclusiveStartKey"] = exclusive_start_key

        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            response = await table.query(**params)
            items = [self._from_item(item) for item in response.get("Items", [])]
            return items, response.get("LastEvaluatedKey")

    async def query_all(
        self,
        key_condition: str,
        expression_values: dict[str, Any],
        **kwargs: Any,
    ) -> list[dict[str, Any]]:
        """Follow LastEvaluatedKey until every matching item has been read."""
        items: list[dict[str, Any]] = []
        start_key = None
        while True:
            page, start_key = await self.query(
                key_condition,
                expression_values,
                exclusive_start_key=start_key,
                **kwargs,
            )
            items.extend(page)
            if not start_key:
                return items

    async def scan(
        self,
        filter_expression: str | None = None,
        expression_values: dict[str, Any] | None = None,
        expression_names: dict[str, str] | None = None,
        limit: int | None = None,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        Scan one page of the table.

        Returns:
            Tuple of (items, LastEvaluatedKey or None)
        """
        params: dict[str, Any] = {}
        if filter_expression:
            params["FilterExpression"] = filter_expression
        if expression_values:
            params["ExpressionAttributeValues"] = to_dynamo(expression_values)
        if expression_names:
            params["ExpressionAttributeNames"] = expression_names
        if limit:
            params["Limit"] = limit
        if exclusive_start_key:
            params["ExclusiveStartKey"] = exclusive_start_key

        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            response = await table.scan(**params)
            items = [self._from_item(item) for item in response.get("Items", [])]
            return items, response.get("LastEvaluatedKey")


def build_set_expression(
    fields: dict[str, Any], prefix: str = "f"
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """
    Build ``SET #f0 = :f0, ...`` from a dict of camelCase attributes.

    Placeholders are used for every name so reserved words (status, name,
    duration) never need special-casing.

    Returns:
        Tuple of (SET clause, expression names, expression values)
    """
    clauses = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for index, (attribute, value) in enumerate(fields.items()):
        names[f"#{prefix}{index}"] = attribute
        values[f":{prefix}{index}"] = value
        clauses.append(f"#{prefix}{index} = :{prefix}{index}")
    return "SET " + ", ".join(clauses), names, values

