"""
Thin wrappers around the S3 calls the pipeline depends on.

Session resolution, listing and copying are the only remote operations.
Each one translates botocore failures into the application's own
exceptions so the pipeline stages never deal with botocore error types.
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Optional

from aiobotocore.session import AioSession
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from bucket_copier.config import Config
from bucket_copier.exceptions import ConfigError, CopyError, ListingError
from bucket_copier.models import CopyTask, ListingPage

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client
    from types_aiobotocore_s3.type_defs import ListObjectsV2OutputTypeDef

logger: logging.Logger = logging.getLogger(__name__)


def resolve_session(profile: str, region: str) -> AioSession:
    """
    Resolves credentials and settings for a shared config profile.

    Args:
        profile (str): The shared config/credentials profile name.
        region (str): The region used when the profile does not set one.

    Returns:
        AioSession: A session bound to the profile.

    Raises:
        ConfigError: If the profile does not exist or the shared
            configuration cannot be read.
    """
    try:
        session: AioSession = AioSession(profile=profile)
        # Forces the profile lookup now instead of at first request.
        session.get_scoped_config()
    except BotoCoreError as e:
        raise ConfigError(
            f"Could not resolve configuration for profile '{profile}': {e}"
        ) from e

    if not session.get_config_variable("region"):
        session.set_config_variable("region", region)
    logger.debug(f"Resolved session for profile '{profile}' ({region}).")
    return session


@asynccontextmanager
async def create_client(
    session: AioSession, config: Config
) -> AsyncIterator["S3Client"]:
    """
    Opens the S3 client shared by the lister and all workers.

    Args:
        session (AioSession): The resolved session.
        config (Config): The application configuration.

    Yields:
        S3Client: The open client; it is closed when the context exits.
    """
    boto_config: BotoConfig = BotoConfig(
        max_pool_connections=config.app.num_workers + 10,
        # Failed calls are surfaced to the caller, never retried.
        retries={"max_attempts": 1, "mode": "standard"},
    )
    client_kwargs: Dict[str, Any] = {"config": boto_config}
    if config.run.endpoint_url:
        client_kwargs["endpoint_url"] = config.run.endpoint_url

    async with session.create_client("s3", **client_kwargs) as client:
        yield client


async def fetch_listing_page(
    client: "S3Client",
    bucket: str,
    continuation_token: Optional[str] = None,
) -> ListingPage:
    """
    Fetches one page of the bucket listing.

    Args:
        client (S3Client): The S3 client.
        bucket (str): The bucket to list.
        continuation_token (str, optional): Cursor from the previous page;
            omitted for the first page.

    Returns:
        ListingPage: The converted page.

    Raises:
        ListingError: If the listing call fails.
    """
    request: Dict[str, Any] = {"Bucket": bucket}
    if continuation_token:
        request["ContinuationToken"] = continuation_token

    try:
        response: "ListObjectsV2OutputTypeDef" = await client.list_objects_v2(
            **request
        )
    except (ClientError, BotoCoreError) as e:
        raise ListingError(f"Failed to list 's3://{bucket}': {e}") from e
    return ListingPage.from_response(response)


async def copy_object(client: "S3Client", task: CopyTask) -> None:
    """
    Performs a server-side copy of one object.

    Args:
        client (S3Client): The S3 client.
        task (CopyTask): What to copy where.

    Raises:
        CopyError: If the copy call fails.
    """
    try:
        await client.copy_object(
            Bucket=task.destination_bucket,
            CopySource=task.source_reference,
            Key=task.destination_key,
        )
    except (ClientError, BotoCoreError) as e:
        raise CopyError(
            f"Failed to copy 's3://{task.source_reference}' to "
            f"'s3://{task.destination_bucket}/{task.destination_key}': {e}"
        ) from e
