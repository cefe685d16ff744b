"""Transaction data model and engine result types.

All records are pydantic v2 models so that they validate on input and
serialise to plain JSON when they cross the offload channel. Input
transactions are frozen; the engine only ever builds new records from them.

Fields that individual evaluators require (amount, timestamp, merchant
name, user id) are optional here on purpose: a malformed record must be
able to reach the evaluator, which rejects it with ``MissingFieldError``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Iterable, Literal, Optional

import pandas as pd
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..exceptions import MissingFieldError


def _assume_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


# Naive datetimes are read as UTC so every timestamp in a set is comparable
Timestamp = Annotated[datetime, AfterValidator(_assume_utc)]


class TransactionType(str, Enum):
    """Direction of a transaction."""
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionStatus(str, Enum):
    """Settlement status of a transaction."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(BaseModel):
    """A single immutable financial transaction."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str
    timestamp: Optional[Timestamp] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: str = "USD"
    type: TransactionType = TransactionType.DEBIT
    category: str = "Other"
    description: str = ""
    merchant_name: Optional[str] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    user_id: Optional[str] = None
    account_id: str = ""
    location: Optional[str] = None
    reference: Optional[str] = None


class FraudScoredTransaction(Transaction):
    """A transaction with its accumulated pairwise fraud score."""

    fraud_score: float = Field(default=0.0, ge=0.0)


class EnrichmentData(BaseModel):
    """Per-heuristic breakdown attached to an enriched transaction."""

    risk_factors: float
    pattern_score: float
    anomaly_score: float
    scored_at: datetime


class EnrichedTransaction(Transaction):
    """A transaction annotated with its combined heuristic risk score."""

    risk_score: float
    enriched_data: EnrichmentData


class DailyBucket(BaseModel):
    """Aggregated amounts for one calendar day."""

    total: float
    count: int
    average: float


class MovingAveragePoint(BaseModel):
    """Trailing moving average of daily totals."""

    date: str
    moving_average: float


class TimeSeriesData(BaseModel):
    """Daily aggregates and their trailing moving average."""

    daily_data: dict[str, DailyBucket] = Field(default_factory=dict)
    moving_averages: list[MovingAveragePoint] = Field(default_factory=list)


class RiskAssessment(BaseModel):
    """Full output of one risk assessment run."""

    fraud_scores: list[FraudScoredTransaction]
    time_series_data: TimeSeriesData
    market_correlation: dict[str, dict[str, float]]
    behavior_clusters: dict[str, list[Transaction]]
    processing_time: float  # milliseconds
    data_points: int


class AdvancedAnalytics(BaseModel):
    """Aggregated risk, pattern and anomaly scores for a dataset."""

    total_risk: float = 0.0
    high_risk_transactions: int = 0
    patterns: dict[str, float] = Field(default_factory=dict)
    anomalies: dict[str, float] = Field(default_factory=dict)
    generated_at: Optional[datetime] = None


class TransactionSummary(BaseModel):
    """Headline statistics over a set of transactions."""

    total_transactions: int
    total_amount: float
    total_credits: float
    total_debits: float
    avg_transaction_amount: float
    category_counts: dict[str, int] = Field(default_factory=dict)


class DateRange(BaseModel):
    start: Timestamp
    end: Timestamp


class AmountRange(BaseModel):
    min: float
    max: float


class FilterOptions(BaseModel):
    """Structured filter applied by ``filter_transactions``."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    date_range: Optional[DateRange] = None
    amount_range: Optional[AmountRange] = None
    type: Literal["debit", "credit", "all"] = "all"
    category: Optional[str] = None
    status: Literal["pending", "completed", "failed", "all"] = "all"
    search_term: Optional[str] = None


class UserPreferences(BaseModel):
    """Display preferences that affect how many filtered rows are returned."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    compact_view: bool = False
    items_per_page: int = Field(default=50, ge=1)


# Field names and aliases whose default applies when a dataset cell is blank
_DEFAULTED_KEYS = frozenset(
    key
    for name, info in Transaction.model_fields.items()
    if not info.is_required() and info.default is not None
    for key in (name, info.alias)
    if key
)


def transactions_from_records(records: Iterable[dict]) -> list[Transaction]:
    """Validate raw dictionaries (e.g. rows of a dataset file) into transactions.

    Missing values coming from pandas (NaN/NaT) are turned into ``None``, or
    dropped for fields such as ``category`` that have a non-None default.
    """
    transactions = []
    for record in records:
        cleaned = {}
        for key, value in record.items():
            if not isinstance(value, (list, dict)) and pd.isna(value):
                if key in _DEFAULTED_KEYS:
                    continue
                value = None
            cleaned[key] = value
        transactions.append(Transaction.model_validate(cleaned))
    return transactions


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Convert transactions to a DataFrame with snake_case columns.

    Adds a ``day`` column holding the ISO calendar date of each timestamp,
    taken in the timestamp's own timezone so the key is locale independent.
    """
    rows = []
    for txn in transactions:
        row = dict(txn)
        row["day"] = txn.timestamp.date().isoformat() if txn.timestamp else None
        rows.append(row)

    columns = list(Transaction.model_fields) + ["day"]
    return pd.DataFrame(rows, columns=columns)


def require_fields(transaction: Transaction, *fields: str) -> None:
    """Raise ``MissingFieldError`` listing every named field that is None."""
    missing = [name for name in fields if getattr(transaction, name, None) is None]
    if missing:
        raise MissingFieldError(transaction.id, missing)
