"""Tests for the incremental analytics scheduler."""

import asyncio

import pytest

from risk_engine.analytics.engine import get_advanced_analytics
from risk_engine.analytics.scheduler import (
    IncrementalScheduler,
    SchedulerState,
    run_advanced_analytics,
)
from risk_engine.config import SchedulerConfig
from risk_engine.exceptions import MissingFieldError


SMALL_BATCHES = SchedulerConfig(batch_size=100)


class TestIncrementalScheduler:
    """Tests for the batch state machine."""

    def test_initial_state(self, bulk_transactions):
        assert IncrementalScheduler(bulk_transactions).state is SchedulerState.IDLE

    def test_small_dataset_skipped(self, mock_transactions):
        """Test fewer than 100 transactions complete without analytics."""
        completed = []
        scheduler = IncrementalScheduler(mock_transactions, on_complete=completed.append)

        result = asyncio.run(scheduler.run())

        assert result is None
        assert scheduler.state is SchedulerState.COMPLETED
        assert completed == []

    def test_runs_all_batches(self, bulk_transactions):
        progress = []
        completed = []
        scheduler = IncrementalScheduler(
            bulk_transactions,
            on_progress=lambda done, total: progress.append((done, total)),
            on_complete=completed.append,
            config=SMALL_BATCHES,
        )

        result = asyncio.run(scheduler.run())

        assert progress == [(100, 300), (200, 300), (300, 300)]
        assert scheduler.state is SchedulerState.COMPLETED
        assert completed == [result]
        assert len(result.patterns) == len(result.anomalies) == 300
        assert result.generated_at is not None

    def test_matches_single_pass(self, bulk_transactions):
        """Test batching does not change the accumulated analytics."""
        incremental = asyncio.run(run_advanced_analytics(bulk_transactions, config=SMALL_BATCHES))
        single = get_advanced_analytics(bulk_transactions)

        assert incremental.total_risk == pytest.approx(single.total_risk)
        assert incremental.high_risk_transactions == single.high_risk_transactions
        assert incremental.patterns == single.patterns
        assert incremental.anomalies == single.anomalies

    def test_state_transitions(self, bulk_transactions):
        """Test the first batch runs in RUNNING and later ones in PROCESSING."""
        states = []
        scheduler = IncrementalScheduler(bulk_transactions, config=SMALL_BATCHES)
        scheduler.on_progress = lambda done, total: states.append(scheduler.state)

        asyncio.run(scheduler.run())

        assert states == [SchedulerState.RUNNING, SchedulerState.PROCESSING, SchedulerState.PROCESSING]

    def test_yields_between_batches(self, bulk_transactions):
        """Test other tasks on the loop run between batches."""
        events = []
        scheduler = IncrementalScheduler(
            bulk_transactions,
            on_progress=lambda done, total: events.append("batch"),
            config=SMALL_BATCHES,
        )

        async def ticker():
            for _ in range(3):
                events.append("tick")
                await asyncio.sleep(0)

        async def main():
            await asyncio.gather(scheduler.run(), ticker())

        asyncio.run(main())

        assert events[0] == "batch"
        assert events.index("tick") < len(events) - 1 - events[::-1].index("batch")

    def test_cancel_discards_partial_results(self, bulk_transactions):
        """Test cancelling mid-run delivers nothing to the completion callback."""
        completed = []
        progress = []

        def on_progress(done, total):
            progress.append(done)
            scheduler.cancel()

        scheduler = IncrementalScheduler(
            bulk_transactions,
            on_progress=on_progress,
            on_complete=completed.append,
            config=SMALL_BATCHES,
        )

        result = asyncio.run(scheduler.run())

        assert result is None
        assert completed == []
        assert progress == [100]
        assert scheduler.state is SchedulerState.CANCELLED

    def test_cancel_from_another_task(self, bulk_transactions):
        completed = []
        scheduler = IncrementalScheduler(
            bulk_transactions, on_complete=completed.append, config=SMALL_BATCHES
        )

        async def main():
            task = asyncio.ensure_future(scheduler.run())
            await asyncio.sleep(0)
            scheduler.cancel()
            return await task

        assert asyncio.run(main()) is None
        assert scheduler.state is SchedulerState.CANCELLED
        assert completed == []

    def test_cancel_after_completion_is_ignored(self, bulk_transactions):
        scheduler = IncrementalScheduler(bulk_transactions, config=SMALL_BATCHES)
        asyncio.run(scheduler.run())

        scheduler.cancel()
        assert scheduler.state is SchedulerState.COMPLETED

    def test_evaluator_error_propagates(self, bulk_transactions, transaction_factory):
        """Test a malformed transaction cancels the run and re-raises."""
        completed = []
        data = bulk_transactions + [transaction_factory("broken", user_id=None)]
        scheduler = IncrementalScheduler(data, on_complete=completed.append, config=SMALL_BATCHES)

        with pytest.raises(MissingFieldError):
            asyncio.run(scheduler.run())

        assert scheduler.state is SchedulerState.CANCELLED
        assert completed == []

    def test_runs_once(self, bulk_transactions):
        scheduler = IncrementalScheduler(bulk_transactions, config=SMALL_BATCHES)
        asyncio.run(scheduler.run())

        with pytest.raises(RuntimeError):
            asyncio.run(scheduler.run())
