"""Shared AWS client configuration for every aioboto3 client and resource."""

from typing import Any

from botocore.config import Config
from botocore.exceptions import ClientError

from golive.config import settings
from golive.logging.config import get_logger

logger = get_logger(__name__)

# Error codes that mean the resource is already gone
NOT_FOUND_CODES = frozenset(
    {
        "NotFoundException",
        "ResourceNotFoundException",
        "NoSuchDistribution",
        "NoSuchOrigin",
        "NoSuchBucket",
        "NoSuchKey",
        "404",
    }
)


def get_aws_config(endpoint_url: str | None = None) -> dict[str, Any]:
    """
    Build aioboto3 client parameters based on environment.

    For AWS Lambda with IAM roles, returns region plus retry/timeout config.
    For LocalStack, also includes endpoint_url and explicit credentials.
    Every call gets bounded timeouts and standard-mode bounded retries.

    Args:
        endpoint_url: Optional endpoint override (LocalStack)

    Returns:
        Keyword arguments for ``session.client(...)`` / ``session.resource(...)``
    """
    config: dict[str, Any] = {
        "region_name": settings.aws_region,
        "config": Config(
            retries={"max_attempts": settings.aws_max_attempts, "mode": "standard"},
            connect_timeout=settings.aws_connect_timeout,
            read_timeout=settings.aws_read_timeout,
        ),
    }

    if endpoint_url:
        config["endpoint_url"] = endpoint_url

    # In Lambda, AWS provides all three values for temporary credentials
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        config["aws_access_key_id"] = settings.aws_access_key_id
        config["aws_secret_access_key"] = settings.aws_secret_access_key
        if settings.aws_session_token:
            config["aws_session_token"] = settings.aws_session_token
    else:
        logger.debug("AWS config: using default credential chain")

    return config


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def is_not_found(exc: ClientError) -> bool:
    """True when the error says the target resource does not exist."""
    if error_code(exc) in NOT_FOUND_CODES:
        return True
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404
