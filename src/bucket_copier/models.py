"""
Data passed between the stages of the copy pipeline.

Copy tasks flow from the lister to the workers, size reports from the
workers to the aggregator. Both are immutable and handed off exactly once.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

from bucket_copier.exceptions import CopyError, ListingError

if TYPE_CHECKING:
    from bucket_copier.config import RunConfig


@dataclass(frozen=True)
class CopyTask:
    """
    The unit of work for a worker: copy one object to the destination bucket.

    Attributes:
        destination_bucket (str): The bucket the object is copied into.
        source_reference (str): The ``"<bucket>/<key>"`` copy source.
        destination_key (str): The key of the new object.
        size (int): Size of the source object in bytes, as listed.
    """

    destination_bucket: str
    source_reference: str
    destination_key: str
    size: int

    @classmethod
    def from_listing_entry(
        cls, run_config: "RunConfig", key: str, size: int
    ) -> "CopyTask":
        """
        Builds the task for one entry of a source listing page.

        Args:
            run_config (RunConfig): The run configuration naming both buckets.
            key (str): The source object key, reused as the destination key.
            size (int): The listed object size in bytes.

        Returns:
            CopyTask: The new task.
        """
        return cls(
            destination_bucket=run_config.destination_bucket,
            source_reference=f"{run_config.source_bucket}/{key}",
            destination_key=key,
            size=size,
        )


@dataclass(frozen=True)
class SizeReport:
    """Bytes transferred by one successful copy."""

    bytes: int


@dataclass
class RunStats:
    """
    Running totals accumulated by the aggregator.

    Attributes:
        total_bytes (int): Sum of all reported sizes.
        item_count (int): Number of reports received.
    """

    total_bytes: int = 0
    item_count: int = 0

    def record(self, report: SizeReport) -> None:
        """Adds one size report to the totals."""
        self.item_count += 1
        self.total_bytes += report.bytes


@dataclass(frozen=True)
class ListingPage:
    """
    One page of a paginated source bucket listing.

    Attributes:
        entries (Dict[str, int]): Object key to size, in listing order.
        is_truncated (bool): Whether more pages follow this one.
        next_continuation_token (str, optional): Cursor for the next page.
    """

    entries: Dict[str, int] = field(default_factory=dict)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "ListingPage":
        """
        Converts a ``ListObjectsV2`` response into a listing page.

        Args:
            response (Mapping[str, Any]): The raw S3 response.

        Returns:
            ListingPage: The page; an absent ``Contents`` yields no entries.

        Raises:
            ListingError: If the page is truncated but carries no token.
        """
        entries: Dict[str, int] = {
            obj["Key"]: int(obj.get("Size", 0))
            for obj in response.get("Contents", [])
        }
        is_truncated: bool = bool(response.get("IsTruncated", False))
        token: Optional[str] = response.get("NextContinuationToken")
        if is_truncated and not token:
            raise ListingError(
                "Listing page is truncated but has no continuation token."
            )
        return cls(
            entries=entries,
            is_truncated=is_truncated,
            next_continuation_token=token,
        )


@dataclass(frozen=True)
class RunSummary:
    """
    Outcome of one pipeline run.

    Attributes:
        stats (RunStats): Final totals from the aggregator.
        enqueued (int): Copy tasks handed to workers by the lister.
        elapsed_s (float): Wall-clock duration of the run in seconds.
        copy_errors (Tuple[CopyError, ...]): Errors that stopped a worker.
        listing_error (ListingError, optional): Failure while paginating.
        interrupted (bool): Whether a shutdown signal cut the run short.
    """

    stats: RunStats
    enqueued: int
    elapsed_s: float
    copy_errors: Tuple[CopyError, ...] = ()
    listing_error: Optional[ListingError] = None
    interrupted: bool = False

    @property
    def elapsed_minutes(self) -> float:
        return self.elapsed_s / 60

    @property
    def succeeded(self) -> bool:
        return (
            not self.copy_errors
            and self.listing_error is None
            and not self.interrupted
        )
