"""Core orchestration logic for the bucket-copier pipeline."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, List, Optional, Tuple

from aiobotocore.session import AioSession
from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from bucket_copier.aggregator import Aggregator, describe_progress
from bucket_copier.channel import Channel
from bucket_copier.config import Config
from bucket_copier.exceptions import CopyError, ListingError
from bucket_copier.formatting import format_size
from bucket_copier.lister import Lister
from bucket_copier.models import (
    CopyTask,
    ListingPage,
    RunStats,
    RunSummary,
    SizeReport,
)
from bucket_copier.storage import create_client, fetch_listing_page, resolve_session
from bucket_copier.worker import start_worker_pool

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)


class CopyPipeline:
    """
    Copies every object of the source bucket into the destination bucket.

    The pipeline wires three stages together through two unbuffered
    channels: the lister feeds copy tasks to a fixed pool of workers, and
    the workers feed size reports to the aggregator.
    """

    def __init__(self, config: Config, shutdown_event: asyncio.Event) -> None:
        """
        Initializes the pipeline with the given configuration.

        Args:
            config (Config): The application configuration.
            shutdown_event (asyncio.Event): Event to signal graceful shutdown.
        """
        self._config: Config = config
        self._shutdown_event: asyncio.Event = shutdown_event

    async def run(self) -> RunSummary:
        """
        Resolves credentials, opens the S3 client and runs the copy.

        Returns:
            RunSummary: The outcome of the run.

        Raises:
            ConfigError: If the source profile cannot be resolved.
            ListingError: If the first listing page cannot be fetched.
        """
        logger.info(f"Starting bucket-copier with {self._config.run}")
        session: AioSession = resolve_session(
            self._config.run.source_profile, self._config.run.source_region
        )
        async with create_client(session, self._config) as client:
            return await self.run_with_client(client)

    async def run_with_client(self, client: "S3Client") -> RunSummary:
        """
        Runs the copy pipeline with an already open S3 client.

        Args:
            client (S3Client): The client shared by the lister and workers.

        Returns:
            RunSummary: The outcome of the run.

        Raises:
            ListingError: If the first listing page cannot be fetched. No
                copy is attempted in that case.
        """
        start_time: float = time.monotonic()
        task_queue: Channel[CopyTask] = Channel("tasks")
        report_queue: Channel[SizeReport] = Channel("size-reports")

        worker_tasks: List[asyncio.Task[None]] = start_worker_pool(
            self._config.app.num_workers, client, task_queue, report_queue
        )

        try:
            first_page: ListingPage = await fetch_listing_page(
                client, self._config.run.source_bucket
            )
        except BaseException:
            # Workers are idle on the still-open task queue.
            await self._cancel_pending(worker_tasks)
            raise

        progress: Optional[Progress] = None
        progress_task_id: Optional[TaskID] = None
        if self._config.app.show_progress:
            progress = Progress(
                SpinnerColumn(),
                TextColumn("{task.description}"),
                TimeElapsedColumn(),
                transient=True,
            )
            progress.start()
            progress_task_id = progress.add_task(
                describe_progress(RunStats()), total=None
            )

        aggregator: Aggregator = Aggregator(report_queue, progress, progress_task_id)
        aggregator_task: asyncio.Task[RunStats] = asyncio.create_task(
            aggregator.run(), name="aggregator"
        )
        lister: Lister = Lister(self._config.run, client, task_queue)
        lister_task: asyncio.Task[int] = asyncio.create_task(
            lister.run(first_page), name="lister"
        )

        try:
            interrupted: bool = await self._wait_for_workers(
                worker_tasks, lister_task
            )
            worker_results: List[Optional[BaseException]] = await asyncio.gather(
                *worker_tasks, return_exceptions=True
            )

            if not lister_task.done():
                # Every worker has stopped, so nothing will take the next task.
                logger.error("All workers stopped before the listing was exhausted.")
                lister_task.cancel()
            listing_error: Optional[ListingError] = await self._collect_lister(
                lister_task
            )
        finally:
            # Stages still running here are abandoned by an error.
            await self._cancel_pending([lister_task, *worker_tasks])
            # No worker is left to send, so the report queue can be closed.
            report_queue.close()
            try:
                stats: RunStats = await aggregator_task
            finally:
                if progress is not None:
                    progress.stop()

        copy_errors: Tuple[CopyError, ...] = tuple(
            result for result in worker_results if isinstance(result, CopyError)
        )
        for result in worker_results:
            if isinstance(result, BaseException) and not isinstance(
                result, CopyError
            ):
                raise result

        summary: RunSummary = RunSummary(
            stats=stats,
            enqueued=lister.enqueued,
            elapsed_s=time.monotonic() - start_time,
            copy_errors=copy_errors,
            listing_error=listing_error,
            interrupted=interrupted,
        )
        self._log_summary(summary)
        return summary

    async def _wait_for_workers(
        self,
        worker_tasks: List[asyncio.Task[None]],
        lister_task: asyncio.Task[int],
    ) -> bool:
        """
        Waits for the worker pool, stopping enumeration on shutdown.

        A shutdown signal cancels the lister, which closes the task queue.
        Workers then finish their in-flight copy and exit, so the pool is
        still awaited to completion.

        Args:
            worker_tasks (List[asyncio.Task[None]]): The worker pool.
            lister_task (asyncio.Task[int]): The running lister.

        Returns:
            bool: True if the run was interrupted by a shutdown signal.
        """
        pool: asyncio.Future[List[Optional[BaseException]]] = asyncio.gather(
            *worker_tasks, return_exceptions=True
        )
        shutdown_task: asyncio.Task[bool] = asyncio.create_task(
            self._shutdown_event.wait()
        )
        done, _ = await asyncio.wait(
            {pool, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )

        interrupted: bool = False
        if pool not in done:
            logger.warning("Shutdown signal received. Stopping enumeration.")
            interrupted = True
            lister_task.cancel()
            await pool
        else:
            shutdown_task.cancel()
            await asyncio.gather(shutdown_task, return_exceptions=True)
        return interrupted

    async def _cancel_pending(self, tasks: List[asyncio.Task]) -> None:
        pending: List[asyncio.Task] = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _collect_lister(
        self, lister_task: asyncio.Task[int]
    ) -> Optional[ListingError]:
        """
        Awaits the lister and returns the listing error it ended with, if any.

        Args:
            lister_task (asyncio.Task[int]): The lister task.

        Returns:
            Optional[ListingError]: The error that stopped enumeration.
        """
        try:
            await lister_task
        except asyncio.CancelledError:
            if not lister_task.cancelled():
                raise
            logger.debug("Lister cancelled.")
        except ListingError as e:
            logger.error(f"Enumeration stopped: {e}")
            return e
        return None

    def _log_summary(self, summary: RunSummary) -> None:
        logger.info(
            f"total copied: {format_size(summary.stats.total_bytes)} "
            f"({summary.stats.item_count} items)"
        )
        logger.info(f"the whole process took: {summary.elapsed_minutes:.2f} minutes")
        if summary.copy_errors:
            logger.error(
                f"{len(summary.copy_errors)} worker(s) stopped after a failed copy."
            )
        skipped: int = summary.enqueued - summary.stats.item_count
        if skipped > 0:
            logger.warning(f"{skipped} enqueued object(s) were not copied.")
