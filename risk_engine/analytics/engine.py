"""
Risk Assessment Engine.

Composes the fraud score matrix, time series, category correlation and
behaviour clusters into a single ``RiskAssessment``, and computes the
lighter ``AdvancedAnalytics`` summary from the per-transaction heuristics.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..config import EngineConfig, SchedulerConfig
from ..data.schema import AdvancedAnalytics, RiskAssessment, Transaction
from ..scoring.fraud_matrix import calculate_fraud_scores
from ..scoring.heuristics import HeuristicIndex
from ..utils.logging import EngineLogger, default_logger
from .clustering import perform_behavior_clustering
from .correlation import calculate_market_correlation
from .time_series import generate_time_series


def generate_risk_assessment(
    transactions: Sequence[Transaction],
    config: Optional[EngineConfig] = None,
    logger: Optional[EngineLogger] = None,
) -> RiskAssessment:
    """
    Run the full risk assessment over a set of transactions.

    The four sub-computations are independent and each one sees the whole
    input. Any error they raise aborts the assessment unchanged.

    Args:
        transactions: Transactions to assess; never modified.
        config: Engine configuration.
        logger: Logger instance.

    Returns:
        RiskAssessment with ``processing_time`` in milliseconds and
        ``data_points`` equal to the square of the input length.
    """
    config = config or EngineConfig()
    log = logger or default_logger()
    n = len(transactions)

    log.debug("Starting risk assessment", transactions=n)
    start = time.perf_counter()

    fraud_scores = calculate_fraud_scores(transactions, config.fraud_matrix)
    time_series_data = generate_time_series(transactions, config.time_series)
    market_correlation = calculate_market_correlation(transactions)
    behavior_clusters = perform_behavior_clustering(transactions, config.clustering)

    processing_time = (time.perf_counter() - start) * 1000.0

    log.log_assessment_result(
        num_transactions=n,
        num_flagged=sum(1 for t in fraud_scores if t.fraud_score > 0),
        num_clusters=len(behavior_clusters),
        duration_ms=processing_time,
    )

    return RiskAssessment(
        fraud_scores=fraud_scores,
        time_series_data=time_series_data,
        market_correlation=market_correlation,
        behavior_clusters=behavior_clusters,
        processing_time=processing_time,
        data_points=n ** 2,
    )


@dataclass
class AnalyticsAccumulator:
    """Running totals for ``AdvancedAnalytics``, fed one batch at a time."""

    high_risk_threshold: float = 0.7
    total_risk: float = 0.0
    high_risk_transactions: int = 0
    patterns: dict[str, float] = field(default_factory=dict)
    anomalies: dict[str, float] = field(default_factory=dict)
    processed: int = 0

    def add_batch(self, batch: Sequence[Transaction], index: HeuristicIndex) -> None:
        """Score each transaction of ``batch`` against the full set behind ``index``."""
        for txn in batch:
            risk = index.risk_factors(txn)
            self.patterns[txn.id] = index.pattern_score(txn)
            self.anomalies[txn.id] = index.anomaly_score(txn)

            self.total_risk += risk
            if risk > self.high_risk_threshold:
                self.high_risk_transactions += 1

        self.processed += len(batch)

    def result(self) -> AdvancedAnalytics:
        return AdvancedAnalytics(
            total_risk=self.total_risk,
            high_risk_transactions=self.high_risk_transactions,
            patterns=dict(self.patterns),
            anomalies=dict(self.anomalies),
            generated_at=datetime.now(timezone.utc),
        )


def get_advanced_analytics(
    transactions: Sequence[Transaction],
    config: Optional[SchedulerConfig] = None,
) -> AdvancedAnalytics:
    """
    Compute advanced analytics for every transaction in a single pass.

    Same accumulation rules as the incremental scheduler, without the
    small-dataset skip and without yielding.
    """
    config = config or SchedulerConfig()
    accumulator = AnalyticsAccumulator(high_risk_threshold=config.high_risk_threshold)
    accumulator.add_batch(transactions, HeuristicIndex(transactions))
    return accumulator.result()
