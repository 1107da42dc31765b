"""Media pipeline resources touched by event teardown."""

from typing import Any

import aioboto3
from botocore.exceptions import ClientError

from golive.exceptions import InvariantViolationError, UpstreamFailureError
from golive.logging.config import get_logger
from golive.resources.aws import error_code, get_aws_config, is_not_found

logger = get_logger(__name__)

S3_DELETE_BATCH = 1000


class MediaResources:
    """
    Thin async facade over MediaLive, MediaPackage, CloudFront and S3.

    Every delete treats "not found" as success so a teardown can be re-run
    after a partial failure. Retries for throttling and transient errors come
    from the botocore retry configuration.
    """

    def __init__(self, session: aioboto3.Session | None = None) -> None:
        self.session = session or aioboto3.Session()

    def _client(self, service: str):
        return self.session.client(service, **get_aws_config())

    # MediaLive

    async def stop_live_channel(self, channel_id: str) -> None:
        async with self._client("medialive") as medialive:
            try:
                await medialive.stop_channel(ChannelId=channel_id)
            except ClientError as exc:
                if is_not_found(exc):
                    return
                # Channel already stopping or idle
                if error_code(exc) == "ConflictException":
                    logger.info(
                        "Live channel not running",
                        extra={"context": {"channel_id": channel_id}},
                    )
                    return
                raise

    async def describe_live_channel_state(self, channel_id: str) -> str | None:
        """
        Current MediaLive channel state.

        Returns:
            State such as RUNNING or IDLE, or None when the channel no longer exists
        """
        async with self._client("medialive") as medialive:
            try:
                response = await medialive.describe_channel(ChannelId=channel_id)
            except ClientError as exc:
                if is_not_found(exc):
                    return None
                raise
            state = response.get("State")
            return None if state == "DELETED" else state

    async def delete_live_channel(self, channel_id: str) -> None:
        async with self._client("medialive") as medialive:
            try:
                await medialive.delete_channel(ChannelId=channel_id)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

    async def delete_input(self, input_id: str) -> None:
        async with self._client("medialive") as medialive:
            try:
                await medialive.delete_input(InputId=input_id)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

    async def delete_input_security_group(self, group_id: str) -> None:
        async with self._client("medialive") as medialive:
            try:
                await medialive.delete_input_security_group(InputSecurityGroupId=group_id)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

    # MediaPackage

    async def delete_packager_endpoint(self, endpoint_id: str) -> None:
        async with self._client("mediapackage") as mediapackage:
            try:
                await mediapackage.delete_origin_endpoint(Id=endpoint_id)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

    async def delete_packager_channel(self, channel_id: str) -> None:
        async with self._client("mediapackage") as mediapackage:
            try:
                await mediapackage.delete_channel(Id=channel_id)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

    # CloudFront

    async def remove_cache_behaviors(
        self,
        distribution_id: str,
        origin_id: str | None,
        path_patterns: list[str],
    ) -> int:
        """
        Remove cache behaviors matching the given paths or targeting the origin.

        Returns:
            Number of behaviors removed
        """
        patterns = set(path_patterns)

        def keep(behavior: dict[str, Any]) -> bool:
            if behavior.get("PathPattern") in patterns:
                return False
            return not (origin_id and behavior.get("TargetOriginId") == origin_id)

        async with self._client("cloudfront") as cloudfront:
            loaded = await self._load_distribution_config(cloudfront, distribution_id)
            if loaded is None:
                return 0
            etag, config = loaded

            behaviors = (config.get("CacheBehaviors") or {}).get("Items") or []
            kept = [behavior for behavior in behaviors if keep(behavior)]
            removed = len(behaviors) - len(kept)
            if not removed:
                return 0

            config["CacheBehaviors"] = {"Quantity": len(kept), "Items": kept}
            await cloudfront.update_distribution(
                Id=distribution_id, IfMatch=etag, DistributionConfig=config
            )
            return removed

    async def remove_origin(self, distribution_id: str, origin_id: str) -> bool:
        """
        Remove an origin from a shared distribution.

        Returns:
            True if the origin was removed, False if it was already absent
        """
        async with self._client("cloudfront") as cloudfront:
            loaded = await self._load_distribution_config(cloudfront, distribution_id)
            if loaded is None:
                return False
            etag, config = loaded

            if config.get("DefaultCacheBehavior", {}).get("TargetOriginId") == origin_id:
                raise UpstreamFailureError(
                    "Origin is the distribution's default target and cannot be removed",
                    service="cloudfront",
                    details={"distribution_id": distribution_id, "origin_id": origin_id},
                )

            origins = config.get("Origins", {}).get("Items") or []
            kept = [origin for origin in origins if origin.get("Id") != origin_id]
            if len(kept) == len(origins):
                return False

            config["Origins"] = {"Quantity": len(kept), "Items": kept}
            await cloudfront.update_distribution(
                Id=distribution_id, IfMatch=etag, DistributionConfig=config
            )
            return True

    async def _load_distribution_config(
        self, cloudfront: Any, distribution_id: str
    ) -> tuple[str, dict[str, Any]] | None:
        try:
            response = await cloudfront.get_distribution_config(Id=distribution_id)
        except ClientError as exc:
            if is_not_found(exc):
                return None
            raise
        return response["ETag"], response["DistributionConfig"]

    # S3

    async def purge_prefix(self, bucket: str, prefix: str) -> int:
        """
        Delete every object under a prefix.

        Args:
            bucket: Bucket name
            prefix: Key prefix; an empty prefix is refused

        Returns:
            Number of objects deleted
        """
        if not prefix or not prefix.strip("/"):
            raise InvariantViolationError(
                "Refusing to purge an empty prefix", details={"bucket": bucket}
            )

        deleted = 0
        async with self._client("s3") as s3:
            paginator = s3.get_paginator("list_objects_v2")
            try:
                async for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                    keys = [{"Key": obj["Key"]} for obj in page.get("Contents", [])]
                    for start in range(0, len(keys), S3_DELETE_BATCH):
                        batch = keys[start : start + S3_DELETE_BATCH]
                        response = await s3.delete_objects(
                            Bucket=bucket, Delete={"Objects": batch, "Quiet": True}
                        )
                        errors = response.get("Errors") or []
                        if errors:
                            raise UpstreamFailureError(
                                f"Failed to delete {len(errors)} objects",
                                service="s3",
                                details={"bucket": bucket, "prefix": prefix},
                            )
                        deleted += len(batch)
            except ClientError as exc:
                if not is_not_found(exc):
                    raise

        logger.info(
            "Purged object prefix",
            extra={"context": {"bucket": bucket, "prefix": prefix, "deleted": deleted}},
        )
        return deleted

    async def presign_upload(
        self, bucket: str, key: str, content_type: str, expires_in: int
    ) -> str:
        """Pre-signed PUT URL; the uploader must send the same Content-Type."""
        async with self._client("s3") as s3:
            return await s3.generate_presigned_url(
                "put_object",
                Params={"Bucket": bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=expires_in,
            )

    async def find_object(self, bucket: str, prefix: str, suffix: str) -> str | None:
        """First key under ``prefix`` ending with ``suffix`` (case-insensitive)."""
        async with self._client("s3") as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    if obj["Key"].lower().endswith(suffix.lower()):
                        return obj["Key"]
        return None

    async def presign_download(self, bucket: str, key: str, expires_in: int) -> str:
        filename = key.rsplit("/", 1)[-1]
        async with self._client("s3") as s3:
            return await s3.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": bucket,
                    "Key": key,
                    "ResponseContentDisposition": f'attachment; filename="{filename}"',
                },
                ExpiresIn=expires_in,
            )
