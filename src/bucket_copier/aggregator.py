"""The aggregation stage: totals the sizes reported by the workers."""

import logging
from typing import TYPE_CHECKING, Optional

from bucket_copier.channel import Channel
from bucket_copier.formatting import format_size
from bucket_copier.models import RunStats, SizeReport

if TYPE_CHECKING:
    from rich.progress import Progress, TaskID

logger: logging.Logger = logging.getLogger(__name__)


def describe_progress(stats: RunStats) -> str:
    """Renders the running totals as a one-line progress message."""
    return (
        f"currently {format_size(stats.total_bytes)} copied "
        f"-> items {stats.item_count}"
    )


class Aggregator:
    """
    Consumes size reports and keeps the run's totals.

    The aggregator is the only owner of its `RunStats`. The totals are
    final once `run` has returned, which happens after the report queue is
    closed and drained.
    """

    def __init__(
        self,
        report_queue: Channel[SizeReport],
        progress: Optional["Progress"] = None,
        progress_task_id: Optional["TaskID"] = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            report_queue (Channel[SizeReport]): The queue of size reports.
            progress (Progress, optional): The rich Progress instance that
                displays the live progress line.
            progress_task_id (TaskID, optional): The progress task to update.
        """
        self._report_queue: Channel[SizeReport] = report_queue
        self._progress: Optional["Progress"] = progress
        self._progress_task_id: Optional["TaskID"] = progress_task_id
        self.stats: RunStats = RunStats()

    async def run(self) -> RunStats:
        """
        Accumulates reports until the report queue is closed and drained.

        Returns:
            RunStats: The final totals.
        """
        async for report in self._report_queue:
            self.stats.record(report)
            if self._progress is not None and self._progress_task_id is not None:
                self._progress.update(
                    self._progress_task_id,
                    description=describe_progress(self.stats),
                )
            else:
                logger.debug(describe_progress(self.stats))
        return self.stats
