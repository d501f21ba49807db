"""
Pytest configuration and fixtures shared by the bucket-copier tests.

This module provides:
- An in-memory, asyncio-based fake of the S3 client calls used by the
  pipeline (paginated listing and server-side copy), with injectable
  failures and delays.
- Fixtures for application configuration with small worker pools.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Set

import pytest
from botocore.exceptions import ClientError

from bucket_copier.config import AppConfig, Config, RunConfig

# --- Constants ---
SOURCE_BUCKET: str = "source-bucket"
DEST_BUCKET: str = "dest-bucket"


def make_client_error(code: str, operation: str) -> ClientError:
    """
    Build a botocore `ClientError` like the ones raised by a real client.

    Args:
        code (str): The S3 error code, e.g. "AccessDenied".
        operation (str): The API operation name.

    Returns:
        ClientError: The error instance.
    """
    return ClientError(
        {"Error": {"Code": code, "Message": f"Simulated {code}"}}, operation
    )


class FakeS3Client:
    """
    In-memory stand-in for the aiobotocore S3 client.

    Objects live in `buckets` as key -> size mappings. Listing pages hold at
    most `page_size` entries and use the start offset as continuation token.
    """

    def __init__(
        self,
        buckets: Optional[Dict[str, Dict[str, int]]] = None,
        page_size: int = 1000,
        copy_delay_s: float = 0.0,
    ) -> None:
        self.buckets: Dict[str, Dict[str, int]] = buckets or {}
        self.page_size: int = page_size
        self.copy_delay_s: float = copy_delay_s
        self.failing_keys: Set[str] = set()
        self.fail_listing_on_page: Optional[int] = None
        self.listing_exception: Optional[Exception] = None
        self.list_calls: List[Dict[str, Any]] = []
        self.copied_keys: List[str] = []
        self.in_flight: int = 0
        self.max_in_flight: int = 0

    async def list_objects_v2(
        self, Bucket: str, ContinuationToken: Optional[str] = None
    ) -> Dict[str, Any]:
        self.list_calls.append(
            {"Bucket": Bucket, "ContinuationToken": ContinuationToken}
        )
        start: int = int(ContinuationToken) if ContinuationToken else 0
        page_number: int = start // self.page_size + 1
        if self.fail_listing_on_page == page_number:
            raise self.listing_exception or make_client_error(
                "AccessDenied", "ListObjectsV2"
            )
        if Bucket not in self.buckets:
            raise make_client_error("NoSuchBucket", "ListObjectsV2")

        keys: List[str] = list(self.buckets[Bucket])
        chunk: List[str] = keys[start : start + self.page_size]
        end: int = start + len(chunk)
        response: Dict[str, Any] = {
            "KeyCount": len(chunk),
            "IsTruncated": end < len(keys),
        }
        if chunk:
            response["Contents"] = [
                {"Key": key, "Size": self.buckets[Bucket][key]} for key in chunk
            ]
        if end < len(keys):
            response["NextContinuationToken"] = str(end)
        return response

    async def copy_object(
        self, Bucket: str, CopySource: str, Key: str
    ) -> Dict[str, Any]:
        source_bucket, source_key = CopySource.split("/", 1)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.copy_delay_s)
            if source_key in self.failing_keys:
                raise make_client_error("InternalError", "CopyObject")
            if Bucket not in self.buckets:
                raise make_client_error("NoSuchBucket", "CopyObject")
            self.buckets[Bucket][Key] = self.buckets[source_bucket][source_key]
            self.copied_keys.append(source_key)
        finally:
            self.in_flight -= 1
        return {"CopyObjectResult": {"ETag": f'"{source_key}"'}}


@pytest.fixture(scope="function")
def fake_s3() -> Callable[..., FakeS3Client]:
    """
    Provide a factory for fake S3 clients holding the given source objects.

    Returns:
        A factory accepting a key -> size mapping plus `FakeS3Client`
        keyword arguments. The destination bucket starts empty.
    """

    def _creator(objects: Dict[str, int], **kwargs: Any) -> FakeS3Client:
        return FakeS3Client(
            buckets={SOURCE_BUCKET: dict(objects), DEST_BUCKET: {}}, **kwargs
        )

    return _creator


@pytest.fixture(scope="function")
def run_config() -> RunConfig:
    """Provide a RunConfig pointing at the fake buckets."""
    return RunConfig(source_bucket=SOURCE_BUCKET, destination_bucket=DEST_BUCKET)


@pytest.fixture(scope="function")
def test_config(run_config: RunConfig) -> Config:
    """
    Provide a Config with a small worker pool and no live progress display.

    Args:
        run_config (RunConfig): The fake-bucket run configuration.

    Returns:
        Config: A Config instance for use in tests.
    """
    return Config(run=run_config, app=AppConfig(num_workers=2, show_progress=False))
