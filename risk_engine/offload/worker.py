"""Worker side of the offload channel: decode, dispatch, encode."""

import time
from typing import Any, Optional

from pydantic import ValidationError

from ..analytics.engine import generate_risk_assessment, get_advanced_analytics
from ..config import EngineConfig
from ..data.generator import TransactionGenerator
from ..data.queries import calculate_summary, get_filtered_transactions, search_transactions
from ..utils.logging import EngineLogger, default_logger
from .protocol import (
    AdvancedAnalyticsRequest,
    AssessmentRequest,
    EngineRequest,
    ErrorPayload,
    FilteringRequest,
    GenerationRequest,
    RequestEnvelope,
    ResponseEnvelope,
    SearchRequest,
    SummarizationRequest,
    error_from_exception,
)


def dispatch(request: EngineRequest, config: Optional[EngineConfig] = None) -> Any:
    """Run the engine operation named by a request variant and return its result object."""
    config = config or EngineConfig()

    match request:
        case AssessmentRequest(transactions=transactions):
            return generate_risk_assessment(transactions, config)
        case AdvancedAnalyticsRequest(transactions=transactions):
            return get_advanced_analytics(transactions, config.scheduler)
        case GenerationRequest(count=count, seed=seed):
            generator = TransactionGenerator(
                seed=seed,
                locale=config.data.locale,
                num_users=config.data.num_users,
            )
            return generator.generate_transactions(count)
        case SummarizationRequest(transactions=transactions):
            return calculate_summary(transactions)
        case SearchRequest(transactions=transactions, term=term):
            return search_transactions(transactions, term)
        case FilteringRequest(transactions=transactions, filters=filters, preferences=preferences):
            return get_filtered_transactions(transactions, filters, preferences)
        case _:
            raise TypeError(f"Unsupported request: {type(request).__name__}")


def handle_message(
    raw: str,
    config: Optional[EngineConfig] = None,
    logger: Optional[EngineLogger] = None,
) -> str:
    """
    Process one JSON request envelope and return a JSON response envelope.

    Every failure, including an undecodable request, is reported in the
    response's ``error`` field rather than raised.
    """
    log = logger or default_logger()
    start = time.perf_counter()

    try:
        envelope = RequestEnvelope.model_validate_json(raw)
    except ValidationError as e:
        log.error("Rejected malformed request", error=str(e))
        return ResponseEnvelope(
            correlation_id=_correlation_id_of(raw),
            error=ErrorPayload(type="ValidationError", message=str(e)),
        ).model_dump_json()

    request = envelope.request
    try:
        result = dispatch(request, config)
        response = ResponseEnvelope(
            correlation_id=envelope.correlation_id,
            result=request.dump_result(result),
        )
    except Exception as e:
        log.warning(
            "Offloaded request failed",
            correlation_id=envelope.correlation_id,
            method=request.method,
            error=f"{type(e).__name__}: {e}",
        )
        response = ResponseEnvelope(
            correlation_id=envelope.correlation_id,
            error=error_from_exception(e),
        )

    response.elapsed_ms = (time.perf_counter() - start) * 1000.0
    log.debug(
        "Offloaded request handled",
        correlation_id=envelope.correlation_id,
        method=request.method,
        elapsed_ms=round(response.elapsed_ms, 3),
    )
    return response.model_dump_json()


def _correlation_id_of(raw: str) -> str:
    """Best-effort correlation id from a request that failed validation."""
    try:
        data = ResponseEnvelope.model_validate_json(raw)
    except ValidationError:
        return ""
    return data.correlation_id
