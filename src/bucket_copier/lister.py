"""
The producer stage: enumerates the source bucket and emits copy tasks.

The lister walks the paginated listing page by page and hands one
`CopyTask` per object to the task queue. Because the queue is unbuffered,
each hand-off waits for an idle worker, so enumeration never outruns the
copies.
"""

import logging
from typing import TYPE_CHECKING

from bucket_copier.channel import Channel
from bucket_copier.config import RunConfig
from bucket_copier.models import CopyTask, ListingPage
from bucket_copier.storage import fetch_listing_page

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)


class Lister:
    """Turns every listed source object into exactly one copy task."""

    def __init__(
        self,
        run_config: RunConfig,
        client: "S3Client",
        task_queue: Channel[CopyTask],
    ) -> None:
        """
        Initialize the lister.

        Args:
            run_config (RunConfig): The run configuration.
            client (S3Client): The S3 client used to fetch further pages.
            task_queue (Channel[CopyTask]): The queue feeding the workers.
                The lister is its only sender and closes it when done.
        """
        self._run_config: RunConfig = run_config
        self._client: "S3Client" = client
        self._task_queue: Channel[CopyTask] = task_queue
        self.pages: int = 0

    @property
    def enqueued(self) -> int:
        """Copy tasks taken by workers so far, counted at the hand-off."""
        return self._task_queue.delivered

    async def run(self, first_page: ListingPage) -> int:
        """
        Enqueues every object of the listing, starting from `first_page`.

        The task queue is closed whenever this method exits, whether the
        listing was exhausted, a page failed to load or the task was
        cancelled, so workers always get to drain and finish.

        Args:
            first_page (ListingPage): The already fetched first page.

        Returns:
            int: The number of copy tasks handed to workers.

        Raises:
            ListingError: If a later page cannot be fetched.
        """
        try:
            await self._enumerate(first_page)
        finally:
            self._task_queue.close()
        return self.enqueued

    async def _enumerate(self, page: ListingPage) -> None:
        bucket: str = self._run_config.source_bucket
        while True:
            self.pages += 1
            for key, size in page.entries.items():
                await self._task_queue.send(
                    CopyTask.from_listing_entry(self._run_config, key, size)
                )

            if not page.is_truncated:
                break

            logger.info(
                f"Listing of 's3://{bucket}' is truncated, fetching page "
                f"{self.pages + 1}."
            )
            page = await fetch_listing_page(
                self._client, bucket, page.next_continuation_token
            )

        logger.info(
            f"Listed {self.enqueued} objects from 's3://{bucket}' "
            f"in {self.pages} page(s)."
        )
