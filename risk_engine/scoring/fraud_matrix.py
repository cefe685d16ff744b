"""
Pairwise Fraud Score Matrix.

Scores every transaction against every other transaction in the set. A
peer counts as a match when the merchant names are near-identical, the
amounts are within 10% of the larger one, and the timestamps are less than
an hour apart. Each match adds a fixed increment to the transaction's
score, so a transaction with many near-duplicates accumulates an unbounded
score, and a reciprocal match is counted once for each side.
"""

from typing import Optional, Sequence

import numpy as np

from ..config import FraudMatrixConfig
from ..data.schema import FraudScoredTransaction, Transaction, require_fields
from ..utils.text import string_similarity

REQUIRED_FIELDS = ("merchant_name", "amount", "timestamp")


class FraudScoreMatrix:
    """
    All-pairs fraud scoring over a transaction set.

    Merchant similarity is evaluated once per distinct merchant pair; the
    amount and time conditions are evaluated with numpy over blocks of
    rows so memory stays proportional to ``block_size * n``.

    Example:
        matrix = FraudScoreMatrix()
        scores = matrix.compute(transactions)
    """

    def __init__(self, config: Optional[FraudMatrixConfig] = None):
        """
        Initialize the matrix builder.

        Args:
            config: Thresholds and block size. Uses defaults if not provided.
        """
        self.config = config or FraudMatrixConfig()

    def merchant_similarity_matrix(self, merchants: list[str]) -> np.ndarray:
        """
        Boolean matrix of merchant pairs whose similarity exceeds the threshold.

        Args:
            merchants: Distinct merchant names.

        Returns:
            Symmetric KxK boolean matrix.
        """
        k = len(merchants)
        similar = np.zeros((k, k), dtype=bool)

        for i in range(k):
            similar[i, i] = 1.0 > self.config.similarity_threshold
            for j in range(i + 1, k):
                is_similar = (
                    string_similarity(merchants[i], merchants[j])
                    > self.config.similarity_threshold
                )
                similar[i, j] = similar[j, i] = is_similar

        return similar

    def match_counts(self, transactions: Sequence[Transaction]) -> np.ndarray:
        """
        Count matching peers for every transaction.

        Warning: This is O(n^2) in time.

        Args:
            transactions: Transactions to compare.

        Returns:
            Integer array with one match count per transaction, in input order.

        Raises:
            MissingFieldError: If a transaction lacks merchant_name, amount or timestamp.
        """
        for txn in transactions:
            require_fields(txn, *REQUIRED_FIELDS)

        n = len(transactions)
        if n == 0:
            return np.zeros(0, dtype=np.int64)

        merchant_index: dict[str, int] = {}
        codes = np.empty(n, dtype=np.int64)
        for pos, txn in enumerate(transactions):
            codes[pos] = merchant_index.setdefault(txn.merchant_name, len(merchant_index))
        similar = self.merchant_similarity_matrix(list(merchant_index))

        amounts = np.fromiter((t.amount for t in transactions), dtype=float, count=n)
        times = np.fromiter((t.timestamp.timestamp() for t in transactions), dtype=float, count=n)

        counts = np.zeros(n, dtype=np.int64)
        block = self.config.block_size

        for start in range(0, n, block):
            stop = min(start + block, n)
            rows = np.arange(start, stop)

            amount_diff = np.abs(amounts[rows, None] - amounts[None, :])
            relative_diff = amount_diff / np.maximum(amounts[rows, None], amounts[None, :])
            time_diff = np.abs(times[rows, None] - times[None, :])

            matches = (
                similar[codes[rows, None], codes[None, :]]
                & (relative_diff < self.config.amount_tolerance)
                & (time_diff < self.config.time_window_seconds)
            )
            # A transaction never matches itself
            matches[np.arange(stop - start), rows] = False

            counts[start:stop] = matches.sum(axis=1)

        return counts

    def compute(self, transactions: Sequence[Transaction]) -> np.ndarray:
        """Fraud score per transaction: match count times the match increment."""
        return self.match_counts(transactions) * self.config.match_increment


def calculate_fraud_scores(
    transactions: Sequence[Transaction],
    config: Optional[FraudMatrixConfig] = None,
) -> list[FraudScoredTransaction]:
    """
    Attach a pairwise fraud score to every transaction.

    Args:
        transactions: Input transactions; never modified.
        config: Matching thresholds.

    Returns:
        New scored records, same length and order as the input.
    """
    scores = FraudScoreMatrix(config).compute(transactions)

    return [
        FraudScoredTransaction.model_construct(**dict(txn), fraud_score=float(score))
        for txn, score in zip(transactions, scores)
    ]
