"""
Offload Channel Protocol.

Message types exchanged between ``OffloadChannel`` and its worker thread.
Every request variant is a pydantic model tagged by a literal ``method``
field, so the set of methods is closed and each variant carries its own
typed parameters. Messages cross the thread boundary as JSON text only.
"""

from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from ..data.schema import (
    AdvancedAnalytics,
    EnrichedTransaction,
    FilterOptions,
    RiskAssessment,
    Transaction,
    TransactionSummary,
    UserPreferences,
)
from ..exceptions import MissingFieldError, NoHistoryError, RemoteError


class _Request(BaseModel):
    """Common behaviour of request variants."""

    result_adapter: ClassVar[TypeAdapter]

    @classmethod
    def parse_result(cls, data: Any):
        """Validate JSON-compatible result data into the variant's result type."""
        return cls.result_adapter.validate_python(data)

    @classmethod
    def dump_result(cls, result: Any) -> Any:
        """Convert a result object into JSON-compatible data."""
        return cls.result_adapter.dump_python(result, mode="json")


class AssessmentRequest(_Request):
    """Run ``generate_risk_assessment``."""

    method: Literal["assessment"] = "assessment"
    transactions: list[Transaction]

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(RiskAssessment)


class AdvancedAnalyticsRequest(_Request):
    """Run ``get_advanced_analytics`` in a single pass."""

    method: Literal["advanced_analytics"] = "advanced_analytics"
    transactions: list[Transaction]

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(AdvancedAnalytics)


class GenerationRequest(_Request):
    """Generate synthetic transactions."""

    method: Literal["generation"] = "generation"
    count: int = Field(ge=0)
    seed: Optional[int] = None

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(list[Transaction])


class SummarizationRequest(_Request):
    """Compute ``calculate_summary``."""

    method: Literal["summarization"] = "summarization"
    transactions: list[Transaction]

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(TransactionSummary)


class SearchRequest(_Request):
    """Free-text search over transactions."""

    method: Literal["search"] = "search"
    transactions: list[Transaction]
    term: str

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(list[Transaction])


# Enriched rows must be tried first: a plain Transaction ignores extra keys
FilteredRow = Annotated[
    Union[EnrichedTransaction, Transaction],
    Field(union_mode="left_to_right"),
]


class FilteringRequest(_Request):
    """Search, filter, page and (for large results) enrich transactions."""

    method: Literal["filtering"] = "filtering"
    transactions: list[Transaction]
    filters: FilterOptions = Field(default_factory=FilterOptions)
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    result_adapter: ClassVar[TypeAdapter] = TypeAdapter(list[FilteredRow])


EngineRequest = Annotated[
    Union[
        AssessmentRequest,
        AdvancedAnalyticsRequest,
        GenerationRequest,
        SummarizationRequest,
        SearchRequest,
        FilteringRequest,
    ],
    Field(discriminator="method"),
]


class RequestEnvelope(BaseModel):
    """A request paired with the correlation id its response will carry."""

    correlation_id: str
    request: EngineRequest


class ErrorPayload(BaseModel):
    """Serialisable description of an exception raised in the worker."""

    type: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ResponseEnvelope(BaseModel):
    """Outcome of one request: either ``result`` or ``error`` is set."""

    correlation_id: str
    result: Any = None
    error: Optional[ErrorPayload] = None
    elapsed_ms: float = 0.0


def error_from_exception(exc: BaseException) -> ErrorPayload:
    """Describe an exception so it can be rebuilt on the caller's side."""
    details: dict[str, Any] = {}
    if isinstance(exc, MissingFieldError):
        details = {"transaction_id": exc.transaction_id, "fields": exc.fields}
    elif isinstance(exc, NoHistoryError):
        details = {"user_id": exc.user_id}

    return ErrorPayload(type=type(exc).__name__, message=str(exc), details=details)


def exception_from_error(error: ErrorPayload) -> Exception:
    """Rebuild an engine exception from its payload; anything else becomes RemoteError."""
    match error.type:
        case "MissingFieldError":
            return MissingFieldError(error.details.get("transaction_id"), error.details.get("fields", []))
        case "NoHistoryError":
            return NoHistoryError(error.details.get("user_id"))
        case _:
            return RemoteError(error.type, error.message)
