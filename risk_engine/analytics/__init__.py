"""Assessment orchestration and dataset-level analytics."""

from .time_series import generate_time_series
from .correlation import calculate_market_correlation, group_amounts_by_category
from .clustering import (
    ClusterSummary,
    SpendingPattern,
    analyze_spending_pattern,
    perform_behavior_clustering,
    summarize_clusters,
)
from .engine import AnalyticsAccumulator, generate_risk_assessment, get_advanced_analytics
from .scheduler import IncrementalScheduler, SchedulerState, run_advanced_analytics

__all__ = [
    "generate_time_series",
    "calculate_market_correlation",
    "group_amounts_by_category",
    "ClusterSummary",
    "SpendingPattern",
    "analyze_spending_pattern",
    "perform_behavior_clustering",
    "summarize_clusters",
    "AnalyticsAccumulator",
    "generate_risk_assessment",
    "get_advanced_analytics",
    "IncrementalScheduler",
    "SchedulerState",
    "run_advanced_analytics",
]
