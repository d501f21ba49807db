"""Command-line interface for the bucket-copier tool."""

import asyncio
import logging
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from bucket_copier.config import AppConfig, Config, RunConfig
from bucket_copier.exceptions import BucketCopierError
from bucket_copier.models import RunSummary
from bucket_copier.signals import GracefulShutdown

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["aiobotocore", "botocore", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


async def main_async(config: Config) -> RunSummary:
    """
    Asynchronously execute the copy pipeline.

    Args:
        config (Config): The application configuration.

    Returns:
        RunSummary: The outcome of the run.
    """
    # Lazily import to keep CLI startup fast
    from bucket_copier.pipeline import CopyPipeline

    async with GracefulShutdown() as shutdown_event:
        pipeline: CopyPipeline = CopyPipeline(config, shutdown_event)
        return await pipeline.run()


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--srcProfile",
    "src_profile",
    default="default",
    envvar="BUCKET_COPIER_SRC_PROFILE",
    help="Profile of the source account.",
    show_default=True,
)
@click.option(
    "--srcBucket",
    "src_bucket",
    default="srcBucket",
    envvar="BUCKET_COPIER_SRC_BUCKET",
    help="Name of the source bucket.",
    show_default=True,
)
@click.option(
    "--dstBucket",
    "dst_bucket",
    default="dstBucket",
    envvar="BUCKET_COPIER_DST_BUCKET",
    help="Name of the destination bucket.",
    show_default=True,
)
@click.option(
    "--srcRegion",
    "src_region",
    default="us-east-1",
    envvar="BUCKET_COPIER_SRC_REGION",
    help="Region of the source bucket.",
    show_default=True,
)
@click.option(
    "--dstRegion",
    "dst_region",
    default="us-east-1",
    envvar="BUCKET_COPIER_DST_REGION",
    help="Region of the destination bucket.",
    show_default=True,
)
@click.option(
    "--endpoint-url",
    default=None,
    envvar="BUCKET_COPIER_ENDPOINT_URL",
    help="Endpoint of an S3-compatible service, e.g. MinIO.",
)
@click.option(
    "--workers",
    type=int,
    default=20,
    envvar="BUCKET_COPIER_WORKERS",
    help="Number of concurrent copy workers.",
    show_default=True,
)
@click.option(
    "--no-progress",
    is_flag=True,
    default=False,
    help="Disable the live progress line.",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy every object from one bucket to another.

    The source bucket is listed page by page and each object is copied
    server-side by a fixed pool of concurrent workers, while a running
    total of copied bytes is displayed.

    Credentials come from the selected shared config profile. Options can
    also be set through BUCKET_COPIER_* environment variables or a .env file.
    """
    load_dotenv()
    setup_logging(kwargs["log_level"])

    summary: Optional[RunSummary] = None
    try:
        config: Config = Config(
            run=RunConfig(
                source_profile=kwargs["src_profile"],
                source_bucket=kwargs["src_bucket"],
                destination_bucket=kwargs["dst_bucket"],
                source_region=kwargs["src_region"],
                destination_region=kwargs["dst_region"],
                endpoint_url=kwargs["endpoint_url"],
            ),
            app=AppConfig(
                num_workers=kwargs["workers"],
                show_progress=not kwargs["no_progress"],
            ),
        )
        summary = asyncio.run(main_async(config))
    except BucketCopierError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)

    if not summary.succeeded:
        logger.error("Run finished with errors; not every object was copied.")
        sys.exit(1)
    logger.info("✅ Run completed successfully.")


if __name__ == "__main__":
    cli()
