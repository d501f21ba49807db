"""
Fixtures for the end-to-end tests against a Docker-based MinIO service.

This module sets up:
- A MinIO container through pytest-docker, waiting for its health check.
- Isolated source and destination buckets per test, with guaranteed cleanup.
- Environment-based credentials so the pipeline resolves the default
  profile exactly as it would in production.
"""

import uuid
from pathlib import Path
from typing import Any, AsyncGenerator, Dict

import boto3
import pytest
import pytest_asyncio
import requests
from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from requests.exceptions import ConnectionError

from bucket_copier.config import AppConfig, Config, RunConfig

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"


# --- Docker Fixtures ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the test suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration object.

    Returns:
        str: The absolute path to the docker-compose.yml file.
    """
    return str(Path(pytestconfig.rootdir) / "tests" / "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_compose_project_name() -> str:
    return "bucket-copier-tests"


def _is_s3_responsive(url: str) -> bool:
    """
    Check if the MinIO health endpoint is responsive.

    Args:
        url (str): The base URL of the MinIO API.

    Returns:
        bool: True if the service is responsive, False otherwise.
    """
    try:
        response: requests.Response = requests.get(f"{url}/minio/health/live")
        return response.status_code == 200
    except ConnectionError:
        return False


@pytest.fixture(scope="session")
def s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the MinIO service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Client keyword arguments for the service.
    """
    port: int = docker_services.port_for("minio", 9000)
    api_url: str = f"http://{docker_ip}:{port}"
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.1, check=lambda: _is_s3_responsive(api_url)
    )
    return {
        "endpoint_url": api_url,
        "aws_access_key_id": S3_ACCESS_KEY,
        "aws_secret_access_key": S3_SECRET_KEY,
        "region_name": S3_REGION,
    }


# --- Application Fixtures ---
@pytest_asyncio.fixture(scope="function")
async def s3_buckets(
    s3_service: Dict[str, Any],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Create unique source and destination buckets for a single test.

    Credentials are exported through the standard AWS environment variables
    and the shared config files are pointed at empty paths, so the default
    profile resolves to the MinIO credentials.

    Args:
        s3_service (Dict[str, Any]): Connection details for MinIO.
        monkeypatch (pytest.MonkeyPatch): Used to set the environment.
        tmp_path (Path): The pytest temporary directory.

    Yields:
        Dict[str, str]: The names of the created buckets.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", S3_ACCESS_KEY)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", S3_SECRET_KEY)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "aws-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws-credentials"))
    monkeypatch.delenv("AWS_PROFILE", raising=False)

    session: AioSession = get_session()
    suffix: str = f"test-bucket-{uuid.uuid4()}"
    source_bucket: str = f"source-{suffix}"
    dest_bucket: str = f"dest-{suffix}"

    async with session.create_client("s3", **s3_service) as client:
        await client.create_bucket(Bucket=source_bucket)
        await client.create_bucket(Bucket=dest_bucket)

    yield {"source": source_bucket, "destination": dest_bucket}

    # Cleanup: boto3 is simpler for synchronous, recursive delete
    resource = boto3.resource(
        "s3",
        **s3_service,
        config=BotoConfig(retries={"max_attempts": 0, "mode": "standard"}),
    )
    for bucket in (source_bucket, dest_bucket):
        try:
            bucket_obj = resource.Bucket(bucket)
            bucket_obj.objects.all().delete()
            bucket_obj.delete()
        except ClientError as e:
            if e.response["Error"]["Code"] != "NoSuchBucket":
                raise


@pytest.fixture(scope="function")
def e2e_config(s3_service: Dict[str, Any], s3_buckets: Dict[str, str]) -> Config:
    """
    Provide a Config targeting the MinIO buckets with a small worker pool.

    Args:
        s3_service (Dict[str, Any]): Connection details for MinIO.
        s3_buckets (Dict[str, str]): The bucket names for this test.

    Returns:
        Config: A Config instance for use in tests.
    """
    return Config(
        run=RunConfig(
            source_bucket=s3_buckets["source"],
            destination_bucket=s3_buckets["destination"],
            endpoint_url=s3_service["endpoint_url"],
        ),
        app=AppConfig(num_workers=5, show_progress=False),
    )
