"""
Defines the copy worker and the fixed-size worker pool.

Each worker pulls copy tasks from the task queue until it is closed and
drained, performs a server-side copy per task, and reports the copied size
to the aggregator.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, List

from bucket_copier.channel import Channel
from bucket_copier.exceptions import CopyError
from bucket_copier.formatting import format_size
from bucket_copier.models import CopyTask, SizeReport
from bucket_copier.storage import copy_object

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)


async def copy_worker(
    worker_id: int,
    client: "S3Client",
    task_queue: Channel[CopyTask],
    report_queue: Channel[SizeReport],
) -> None:
    """
    A long-lived worker task that copies objects from the task queue.

    The worker returns once the task queue is closed and empty. A failed
    copy stops this worker only: the task is dropped, the error is raised
    to the pool, and sibling workers keep draining the queue.

    Args:
        worker_id (int): Identifier used in log output.
        client (S3Client): The shared S3 client.
        task_queue (Channel[CopyTask]): The queue to pull copy tasks from.
        report_queue (Channel[SizeReport]): The queue to report sizes to.

    Raises:
        CopyError: If a copy fails.
    """
    logger.debug(f"Worker {worker_id} started.")
    async for task in task_queue:
        logger.info(
            f"worker {worker_id} -> copying: {task.destination_key} "
            f"size of: {format_size(task.size)}"
        )
        try:
            await copy_object(client, task)
        except CopyError as e:
            logger.error(f"Worker {worker_id} stopped: {e}")
            raise
        await report_queue.send(SizeReport(bytes=task.size))
    logger.debug(f"Worker {worker_id} finished, task queue drained.")


def start_worker_pool(
    num_workers: int,
    client: "S3Client",
    task_queue: Channel[CopyTask],
    report_queue: Channel[SizeReport],
) -> List[asyncio.Task[None]]:
    """
    Starts a fixed number of copy workers on the running event loop.

    Args:
        num_workers (int): The number of workers to start.
        client (S3Client): The S3 client shared by all workers.
        task_queue (Channel[CopyTask]): The shared task queue.
        report_queue (Channel[SizeReport]): The shared size-report queue.

    Returns:
        List[asyncio.Task[None]]: One task per worker. The pool is complete
            once every task is done, successfully or not.
    """
    logger.debug(f"Starting {num_workers} copy workers.")
    return [
        asyncio.create_task(
            copy_worker(
                worker_id=i,
                client=client,
                task_queue=task_queue,
                report_queue=report_queue,
            ),
            name=f"copy-worker-{i}",
        )
        for i in range(num_workers)
    ]
