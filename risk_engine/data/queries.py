"""
Transaction Queries.

Summary statistics, free-text search and structured filtering over an
in-memory list of transactions. Large filtered result sets are enriched
with the per-transaction risk heuristics.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from ..scoring.heuristics import HeuristicIndex
from ..utils.text import normalize_text
from .schema import (
    EnrichedTransaction,
    EnrichmentData,
    FilterOptions,
    Transaction,
    TransactionSummary,
    TransactionType,
    UserPreferences,
)


# Filtered result sets larger than this are enriched with risk scores
ENRICHMENT_THRESHOLD = 1000

ALL_OPTION = "all"


def calculate_summary(transactions: Sequence[Transaction]) -> TransactionSummary:
    """
    Headline statistics for a set of transactions.

    Transactions without an amount count towards ``total_transactions`` and
    ``category_counts`` but contribute nothing to the amount totals.
    """
    total_amount = 0.0
    total_credits = 0.0
    total_debits = 0.0
    category_counts: dict[str, int] = {}

    for txn in transactions:
        amount = txn.amount or 0.0
        total_amount += amount
        if txn.type == TransactionType.CREDIT:
            total_credits += amount
        else:
            total_debits += amount
        category_counts[txn.category] = category_counts.get(txn.category, 0) + 1

    count = len(transactions)
    return TransactionSummary(
        total_transactions=count,
        total_amount=total_amount,
        total_credits=total_credits,
        total_debits=total_debits,
        avg_transaction_amount=total_amount / count if count else 0.0,
        category_counts=category_counts,
    )


def search_transactions(transactions: Sequence[Transaction], term: str) -> list[Transaction]:
    """
    Case- and accent-insensitive substring search.

    Matches against merchant name, description and category. An empty or
    whitespace-only term returns every transaction.
    """
    needle = normalize_text(term)
    if not needle:
        return list(transactions)

    results = []
    for txn in transactions:
        haystacks = (txn.merchant_name, txn.description, txn.category)
        if any(needle in normalize_text(value) for value in haystacks):
            results.append(txn)
    return results


def _matches(txn: Transaction, filters: FilterOptions) -> bool:
    if filters.date_range is not None:
        if txn.timestamp is None:
            return False
        if not filters.date_range.start <= txn.timestamp <= filters.date_range.end:
            return False

    if filters.amount_range is not None:
        if txn.amount is None:
            return False
        if not filters.amount_range.min <= txn.amount <= filters.amount_range.max:
            return False

    if filters.type != ALL_OPTION and txn.type.value != filters.type:
        return False

    if filters.category and filters.category != ALL_OPTION and txn.category != filters.category:
        return False

    if filters.status != ALL_OPTION and txn.status.value != filters.status:
        return False

    return True


def filter_transactions(
    transactions: Sequence[Transaction],
    filters: FilterOptions,
) -> list[Transaction]:
    """
    Keep transactions satisfying every set criterion.

    Date and amount ranges are inclusive at both ends. ``"all"`` (or an
    unset category) disables the corresponding criterion. ``search_term`` is
    not applied here; see ``get_filtered_transactions``. Naive datetimes on
    either side are read as UTC.
    """
    return [txn for txn in transactions if _matches(txn, filters)]


def enrich_transactions(transactions: Sequence[Transaction]) -> list[EnrichedTransaction]:
    """Attach risk, pattern and anomaly scores, each judged against ``transactions``."""
    scored_at = datetime.now(timezone.utc)
    index = HeuristicIndex(transactions)
    enriched = []
    for txn in transactions:
        risk_factors = index.risk_factors(txn)
        pattern_score = index.pattern_score(txn)
        anomaly_score = index.anomaly_score(txn)

        enriched.append(EnrichedTransaction.model_construct(
            **dict(txn),
            risk_score=risk_factors + pattern_score + anomaly_score,
            enriched_data=EnrichmentData(
                risk_factors=risk_factors,
                pattern_score=pattern_score,
                anomaly_score=anomaly_score,
                scored_at=scored_at,
            ),
        ))
    return enriched


def get_filtered_transactions(
    transactions: Sequence[Transaction],
    filters: FilterOptions,
    preferences: Optional[UserPreferences] = None,
) -> Union[list[Transaction], list[EnrichedTransaction]]:
    """
    Search, filter and page a transaction list for display.

    Steps, in order: free-text search on ``filters.search_term``, structured
    filtering, truncation to ``items_per_page`` in compact view, and finally
    risk enrichment if more than 1000 transactions remain. Enrichment scores
    each transaction against the remaining result set, not the full input.
    """
    preferences = preferences or UserPreferences()

    filtered = list(transactions)
    if filters.search_term:
        filtered = search_transactions(filtered, filters.search_term)

    filtered = filter_transactions(filtered, filters)

    if preferences.compact_view:
        filtered = filtered[:preferences.items_per_page]

    if len(filtered) > ENRICHMENT_THRESHOLD:
        return enrich_transactions(filtered)

    return filtered
