"""Scoring package for transaction risk.

This package provides:
- calculate_risk_factors / analyze_transaction_patterns / detect_anomalies:
  per-transaction heuristics judged against the full set
- HeuristicIndex: the same heuristics over a precomputed index, for whole sets
- FraudScoreMatrix: all-pairs near-duplicate matching

Usage:
    from risk_engine.scoring import calculate_fraud_scores
    scored = calculate_fraud_scores(transactions)
"""

from .heuristics import (
    HeuristicIndex,
    analyze_transaction_patterns,
    calculate_risk_factors,
    detect_anomalies,
)
from .fraud_matrix import FraudScoreMatrix, calculate_fraud_scores

__all__ = [
    "HeuristicIndex",
    "calculate_risk_factors",
    "analyze_transaction_patterns",
    "detect_anomalies",
    "FraudScoreMatrix",
    "calculate_fraud_scores",
]
