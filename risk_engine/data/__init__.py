"""Transaction data model and synthetic data generation.

Queries live in ``risk_engine.data.queries``; they depend on the scoring
heuristics, which in turn import the schema from this package.
"""
from .schema import (
    AdvancedAnalytics,
    EnrichedTransaction,
    FilterOptions,
    FraudScoredTransaction,
    RiskAssessment,
    TimeSeriesData,
    Transaction,
    TransactionStatus,
    TransactionSummary,
    TransactionType,
    UserPreferences,
    transactions_from_records,
    transactions_to_frame,
)
from .generator import TransactionGenerator

__all__ = [
    "AdvancedAnalytics",
    "EnrichedTransaction",
    "FilterOptions",
    "FraudScoredTransaction",
    "RiskAssessment",
    "TimeSeriesData",
    "Transaction",
    "TransactionStatus",
    "TransactionSummary",
    "TransactionType",
    "UserPreferences",
    "transactions_from_records",
    "transactions_to_frame",
    "TransactionGenerator",
]
