"""Per-transaction risk heuristics.

Each heuristic scores one transaction against the full set it belongs to.
Scoring is pure: no state is kept between calls, and invalid input raises
immediately instead of being defaulted.

Heuristics:
- Risk factors: merchant familiarity, amount magnitude, time of day
- Pattern score: repeated near-identical payments and user velocity
- Anomaly score: deviation from the user's average spend and new locations

``HeuristicIndex`` precomputes the per-merchant and per-user lookups once,
so scoring every transaction of a set costs O(n log n) instead of O(n^2).
The module-level functions build a throwaway index for a single call.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import numpy as np

from ..data.schema import Transaction, require_fields
from ..exceptions import NoHistoryError

# Risk factor weights
FAMILIAR_MERCHANT_MIN_COUNT = 5
UNFAMILIAR_MERCHANT_RISK = 0.8
FAMILIAR_MERCHANT_RISK = 0.2
LARGE_AMOUNT_THRESHOLD = 1000.0
LARGE_AMOUNT_RISK = 0.6
NORMAL_AMOUNT_RISK = 0.1
NIGHT_END_HOUR = 6
NIGHT_RISK = 0.4
DAY_RISK = 0.1

# Pattern thresholds
SIMILAR_AMOUNT_DELTA = 10.0
SIMILAR_COUNT_THRESHOLD = 3
SIMILAR_PATTERN_SCORE = 0.3
VELOCITY_WINDOW_SECONDS = 3600
VELOCITY_COUNT_THRESHOLD = 5
VELOCITY_PATTERN_SCORE = 0.5

# Anomaly weights
AMOUNT_DEVIATION_WEIGHT = 0.3
LOCATION_ANOMALY_SCORE = 0.4
RECENT_LOCATION_WINDOW = 10

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)
_VELOCITY_WINDOW_MICROS = VELOCITY_WINDOW_SECONDS * 1_000_000


def _epoch_micros(timestamp: datetime) -> int:
    """Exact integer microseconds since the epoch."""
    return (timestamp - _EPOCH) // _MICROSECOND


@dataclass(frozen=True)
class _UserProfile:
    avg_amount: float
    recent_locations: frozenset


class HeuristicIndex:
    """
    Lookups for scoring many transactions against one fixed set.

    Built once from ``all_transactions``:
    - merchant name -> number of transactions
    - merchant name -> sorted amounts (for the similar-payment window)
    - user id -> sorted timestamps in epoch microseconds (velocity window)
    - user id -> mean amount and locations of the last 10 transactions

    Usage:
        index = HeuristicIndex(transactions)
        scores = [index.pattern_score(t) for t in transactions]
    """

    def __init__(self, all_transactions: Sequence[Transaction]):
        self.size = len(all_transactions)
        self._merchant_counts = Counter(t.merchant_name for t in all_transactions)

        amounts_by_merchant: dict[Optional[str], list[float]] = defaultdict(list)
        times_by_user: dict[Optional[str], list[int]] = defaultdict(list)
        history_by_user: dict[Optional[str], list[Transaction]] = defaultdict(list)

        for txn in all_transactions:
            if txn.amount is not None:
                amounts_by_merchant[txn.merchant_name].append(txn.amount)
                history_by_user[txn.user_id].append(txn)
            if txn.timestamp is not None:
                times_by_user[txn.user_id].append(_epoch_micros(txn.timestamp))

        self._amounts = {
            merchant: np.sort(np.asarray(amounts, dtype=float))
            for merchant, amounts in amounts_by_merchant.items()
        }
        self._times = {
            user: np.sort(np.asarray(times, dtype=np.int64))
            for user, times in times_by_user.items()
        }
        self._profiles = {
            user: _UserProfile(
                avg_amount=sum(t.amount for t in history) / len(history),
                recent_locations=frozenset(
                    t.location for t in history[-RECENT_LOCATION_WINDOW:]
                ),
            )
            for user, history in history_by_user.items()
        }

    def risk_factors(self, transaction: Transaction) -> float:
        """Merchant, amount and time-of-day risk; see ``calculate_risk_factors``."""
        require_fields(transaction, "amount", "timestamp")

        merchant_risk = (
            UNFAMILIAR_MERCHANT_RISK
            if self._merchant_counts[transaction.merchant_name] < FAMILIAR_MERCHANT_MIN_COUNT
            else FAMILIAR_MERCHANT_RISK
        )
        amount_risk = (
            LARGE_AMOUNT_RISK if transaction.amount > LARGE_AMOUNT_THRESHOLD else NORMAL_AMOUNT_RISK
        )
        # Wall-clock hour in the timestamp's own timezone
        time_risk = NIGHT_RISK if transaction.timestamp.hour < NIGHT_END_HOUR else DAY_RISK

        return merchant_risk + amount_risk + time_risk

    def similar_count(self, transaction: Transaction) -> int:
        """Same-merchant transactions whose amount differs by less than 10."""
        amounts = self._amounts.get(transaction.merchant_name)
        if amounts is None:
            return 0

        x = transaction.amount
        # Widen the search slightly, then apply the exact test to the slice
        slack = 1e-9 * (abs(x) + SIMILAR_AMOUNT_DELTA)
        lo = np.searchsorted(amounts, x - SIMILAR_AMOUNT_DELTA - slack, side="left")
        hi = np.searchsorted(amounts, x + SIMILAR_AMOUNT_DELTA + slack, side="right")
        window = amounts[lo:hi]
        return int(np.count_nonzero(np.abs(window - x) < SIMILAR_AMOUNT_DELTA))

    def velocity_count(self, transaction: Transaction) -> int:
        """Same-user transactions within one hour either side, inclusive."""
        times = self._times.get(transaction.user_id)
        if times is None:
            return 0

        t = _epoch_micros(transaction.timestamp)
        lo = np.searchsorted(times, t - _VELOCITY_WINDOW_MICROS, side="left")
        hi = np.searchsorted(times, t + _VELOCITY_WINDOW_MICROS, side="right")
        return int(hi - lo)

    def pattern_score(self, transaction: Transaction) -> float:
        """Similar-payment and velocity score; see ``analyze_transaction_patterns``."""
        require_fields(transaction, "merchant_name", "amount", "timestamp", "user_id")

        score = 0.0
        if self.similar_count(transaction) > SIMILAR_COUNT_THRESHOLD:
            score += SIMILAR_PATTERN_SCORE
        if self.velocity_count(transaction) > VELOCITY_COUNT_THRESHOLD:
            score += VELOCITY_PATTERN_SCORE

        return score

    def anomaly_score(self, transaction: Transaction) -> float:
        """Spend deviation and new-location score; see ``detect_anomalies``."""
        require_fields(transaction, "amount", "user_id")

        profile = self._profiles.get(transaction.user_id)
        if profile is None:
            raise NoHistoryError(transaction.user_id)

        amount_deviation = abs(transaction.amount - profile.avg_amount) / profile.avg_amount

        location_anomaly = 0.0
        if transaction.location and transaction.location not in profile.recent_locations:
            location_anomaly = LOCATION_ANOMALY_SCORE

        return min(amount_deviation * AMOUNT_DEVIATION_WEIGHT + location_anomaly, 1.0)


def calculate_risk_factors(
    transaction: Transaction,
    all_transactions: Sequence[Transaction],
) -> float:
    """
    Combine merchant, amount and time-of-day risk for a transaction.

    Merchant risk is 0.8 when fewer than 5 transactions in the set share the
    merchant name, else 0.2. Amount risk is 0.6 above 1000, else 0.1. Time
    risk is 0.4 before 06:00, else 0.1.

    Args:
        transaction: Transaction to score.
        all_transactions: Set the transaction is judged against; may be empty.

    Returns:
        Sum of the three risk components, in [0.3, 1.8].

    Raises:
        MissingFieldError: If ``amount`` or ``timestamp`` is missing.
    """
    require_fields(transaction, "amount", "timestamp")
    return HeuristicIndex(all_transactions).risk_factors(transaction)


def analyze_transaction_patterns(
    transaction: Transaction,
    all_transactions: Sequence[Transaction],
) -> float:
    """
    Score repeated near-identical payments and high transaction velocity.

    A transaction is "similar" when it shares the merchant and its amount
    differs by less than 10. Velocity counts the same user's transactions
    within one hour either side (inclusive).

    Returns:
        0.0, 0.3, 0.5 or 0.8.

    Raises:
        MissingFieldError: If merchant_name, amount, timestamp or user_id is missing.
    """
    require_fields(transaction, "merchant_name", "amount", "timestamp", "user_id")
    return HeuristicIndex(all_transactions).pattern_score(transaction)


def detect_anomalies(
    transaction: Transaction,
    all_transactions: Sequence[Transaction],
) -> float:
    """
    Score deviation from the user's average spend and unseen locations.

    The amount deviation is relative to the mean amount of the user's
    transactions in ``all_transactions``. A location counts as new when it
    does not appear in the user's last 10 transactions (input order).

    Returns:
        ``min(deviation * 0.3 + location_anomaly, 1.0)``.

    Raises:
        MissingFieldError: If ``amount`` or ``user_id`` is missing.
        NoHistoryError: If the user has no transactions in the set.
    """
    require_fields(transaction, "amount", "user_id")
    return HeuristicIndex(all_transactions).anomaly_score(transaction)
