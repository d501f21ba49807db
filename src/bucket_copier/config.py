"""
Configuration for the bucket-copier pipeline.

Settings are collected once by the CLI and frozen into typed dataclasses,
which are then shared read-only by the lister, the workers and the
coordinator for the lifetime of a run.
"""

from dataclasses import dataclass, field
from typing import Optional

from bucket_copier.exceptions import ConfigError


@dataclass(frozen=True)
class RunConfig:
    """
    Describes what is copied where.

    The destination region is recorded for reference only: the source
    session is used for both listing and copying, and the destination is
    addressed by bucket name within that session.

    Attributes:
        source_profile (str): Shared config profile used for credentials.
        source_bucket (str): The bucket to list and copy from.
        destination_bucket (str): The bucket to copy into.
        source_region (str): Region of the source bucket and the client.
        destination_region (str): Region of the destination bucket.
        endpoint_url (str, optional): Endpoint of an S3-compatible service.
    """

    source_profile: str = "default"
    source_bucket: str = "srcBucket"
    destination_bucket: str = "dstBucket"
    source_region: str = "us-east-1"
    destination_region: str = "us-east-1"
    endpoint_url: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("source_profile", "source_bucket", "destination_bucket"):
            if not getattr(self, name):
                raise ConfigError(f"'{name}' must not be empty.")


@dataclass(frozen=True)
class AppConfig:
    """
    Defines the application's operational parameters.

    Attributes:
        num_workers (int): Fixed size of the copy worker pool.
        show_progress (bool): Whether to render the live progress line.
    """

    num_workers: int = 20
    show_progress: bool = True

    def __post_init__(self) -> None:
        if self.num_workers < 1:
            raise ConfigError(
                f"The worker pool needs at least one worker, got {self.num_workers}."
            )


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for the entire application.

    Attributes:
        run (RunConfig): Source and destination settings.
        app (AppConfig): General application settings.
    """

    run: RunConfig = field(default_factory=RunConfig)
    app: AppConfig = field(default_factory=AppConfig)
