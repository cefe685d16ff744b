"""
Incremental Analytics Scheduler.

Computes ``AdvancedAnalytics`` in fixed-size batches on the running event
loop, handing control back to the loop between batches so that other tasks
can interleave with a long computation. Cancellation is cooperative and is
only observed at batch boundaries.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config import SchedulerConfig
from ..data.schema import AdvancedAnalytics, Transaction
from ..scoring.heuristics import HeuristicIndex
from ..utils.logging import EngineLogger, default_logger
from .engine import AnalyticsAccumulator


ProgressCallback = Callable[[int, int], None]
CompletionCallback = Callable[[AdvancedAnalytics], None]


class SchedulerState(str, Enum):
    """Lifecycle states of an ``IncrementalScheduler``."""
    IDLE = "idle"
    RUNNING = "running"
    YIELDING = "yielding"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class IncrementalScheduler:
    """
    Batch-at-a-time advanced analytics with cooperative yielding.

    State machine::

        IDLE -> RUNNING -> (YIELDING <-> PROCESSING) -> COMPLETED
                  \\___________________________________-> CANCELLED

    A scheduler runs once. Datasets smaller than
    ``config.min_transactions`` complete immediately without analytics.
    """

    def __init__(
        self,
        transactions: Sequence[Transaction],
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompletionCallback] = None,
        config: Optional[SchedulerConfig] = None,
        logger: Optional[EngineLogger] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            transactions: Full dataset; every batch is scored against it.
            on_progress: Called as ``on_progress(processed, total)`` after each batch.
            on_complete: Called with the final analytics on normal completion only.
            config: Batch size, skip threshold and high-risk threshold.
            logger: Logger instance.
        """
        self.transactions = list(transactions)
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.config = config or SchedulerConfig()
        self.log = (logger or default_logger()).bind(component="scheduler")

        self._state = SchedulerState.IDLE
        self._cancel_requested = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next batch boundary."""
        if self._state in (SchedulerState.COMPLETED, SchedulerState.CANCELLED):
            return
        self._cancel_requested = True

    def _transition(self, state: SchedulerState) -> None:
        self.log.debug("Scheduler state change", old=self._state.value, new=state.value)
        self._state = state

    def _batches(self):
        size = self.config.batch_size
        for start in range(0, len(self.transactions), size):
            yield self.transactions[start:start + size]

    async def run(self) -> Optional[AdvancedAnalytics]:
        """
        Run the analytics to completion or cancellation.

        Returns:
            The accumulated analytics, or None when the dataset was too small
            or the run was cancelled.

        Raises:
            RuntimeError: If the scheduler has already been started.
            MissingFieldError, NoHistoryError: Propagated from the evaluators
                after the scheduler has moved to CANCELLED.
        """
        if self._state is not SchedulerState.IDLE:
            raise RuntimeError(f"Scheduler already started (state={self._state.value})")

        total = len(self.transactions)
        if total < self.config.min_transactions:
            self.log.debug(
                "Dataset below analytics threshold, skipping",
                transactions=total,
                min_transactions=self.config.min_transactions,
            )
            self._transition(SchedulerState.COMPLETED)
            return None

        self._transition(SchedulerState.RUNNING)
        accumulator = AnalyticsAccumulator(high_risk_threshold=self.config.high_risk_threshold)
        index = HeuristicIndex(self.transactions)

        try:
            for batch in self._batches():
                if self._cancel_requested:
                    return self._cancelled(accumulator.processed, total)

                if self._state is SchedulerState.YIELDING:
                    self._transition(SchedulerState.PROCESSING)

                accumulator.add_batch(batch, index)
                self.log.debug("Batch processed", processed=accumulator.processed, total=total)
                if self.on_progress is not None:
                    self.on_progress(accumulator.processed, total)

                self._transition(SchedulerState.YIELDING)
                await asyncio.sleep(0)
        except Exception:
            self._transition(SchedulerState.CANCELLED)
            raise

        if self._cancel_requested:
            return self._cancelled(accumulator.processed, total)

        analytics = accumulator.result()
        self._transition(SchedulerState.COMPLETED)
        self.log.info(
            "Advanced analytics completed",
            transactions=total,
            high_risk_transactions=analytics.high_risk_transactions,
            total_risk=round(analytics.total_risk, 3),
        )
        if self.on_complete is not None:
            self.on_complete(analytics)
        return analytics

    def _cancelled(self, processed: int, total: int) -> None:
        self._transition(SchedulerState.CANCELLED)
        self.log.info("Advanced analytics cancelled", processed=processed, total=total)
        return None


async def run_advanced_analytics(
    transactions: Sequence[Transaction],
    on_progress: Optional[ProgressCallback] = None,
    on_complete: Optional[CompletionCallback] = None,
    config: Optional[SchedulerConfig] = None,
    logger: Optional[EngineLogger] = None,
) -> Optional[AdvancedAnalytics]:
    """Run an ``IncrementalScheduler`` over ``transactions`` and return its result."""
    scheduler = IncrementalScheduler(
        transactions,
        on_progress=on_progress,
        on_complete=on_complete,
        config=config,
        logger=logger,
    )
    return await scheduler.run()
