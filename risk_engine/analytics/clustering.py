"""
Behaviour Clustering Module.

Groups users into spending clusters by bucketing their average transaction
amount, and collects each user's transactions under their cluster key.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import ClusteringConfig
from ..data.schema import Transaction, require_fields


@dataclass
class SpendingPattern:
    """Spending profile of a single user."""

    user_id: str
    avg_amount: float
    total_amount: float
    category_distribution: dict[str, int]


@dataclass
class ClusterSummary:
    """Size and average spend of one behaviour cluster."""

    cluster_key: str
    user_count: int
    transaction_count: int
    mean_amount: float


def analyze_spending_pattern(user_id: str, user_transactions: Sequence[Transaction]) -> SpendingPattern:
    """Average, total and per-category counts for one user's transactions."""
    total = sum(t.amount for t in user_transactions)
    categories: dict[str, int] = {}
    for t in user_transactions:
        categories[t.category] = categories.get(t.category, 0) + 1

    return SpendingPattern(
        user_id=user_id,
        avg_amount=total / len(user_transactions),
        total_amount=total,
        category_distribution=categories,
    )


def cluster_key(avg_amount: float, bucket_size: float = 100.0) -> str:
    """Cluster key for an average spend, e.g. ``cluster_3`` for 350.0."""
    return f"cluster_{math.floor(avg_amount / bucket_size)}"


def perform_behavior_clustering(
    transactions: Sequence[Transaction],
    config: Optional[ClusteringConfig] = None,
) -> dict[str, list[Transaction]]:
    """
    Assign every user to a spend bucket and collect their transactions there.

    Users are visited in order of first appearance; a cluster holds the
    concatenation of its users' transactions, unmodified.

    Args:
        transactions: Transactions to cluster.
        config: Bucket width configuration.

    Returns:
        Mapping of cluster key to transactions.

    Raises:
        MissingFieldError: If a transaction lacks ``user_id`` or ``amount``.
    """
    config = config or ClusteringConfig()

    by_user: dict[str, list[Transaction]] = {}
    for txn in transactions:
        require_fields(txn, "user_id", "amount")
        by_user.setdefault(txn.user_id, []).append(txn)

    clusters: dict[str, list[Transaction]] = {}
    for user_id, user_transactions in by_user.items():
        pattern = analyze_spending_pattern(user_id, user_transactions)
        key = cluster_key(pattern.avg_amount, config.bucket_size)
        clusters.setdefault(key, []).extend(user_transactions)

    return clusters


def summarize_clusters(clusters: dict[str, list[Transaction]]) -> list[ClusterSummary]:
    """Per-cluster user count, transaction count and mean amount, largest first."""
    summaries = []
    for key, members in clusters.items():
        summaries.append(ClusterSummary(
            cluster_key=key,
            user_count=len({t.user_id for t in members}),
            transaction_count=len(members),
            mean_amount=sum(t.amount for t in members) / len(members),
        ))

    return sorted(summaries, key=lambda s: s.transaction_count, reverse=True)
