"""Offload channel: run engine requests on a dedicated worker thread.

Usage:
    from risk_engine.offload import AssessmentRequest, OffloadChannel

    with OffloadChannel() as channel:
        future = channel.submit(AssessmentRequest(transactions=transactions))
        assessment = future.result()
"""

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
)
from .worker import dispatch, handle_message
from .channel import OffloadChannel, request_timeout_for, should_offload

__all__ = [
    "AdvancedAnalyticsRequest",
    "AssessmentRequest",
    "EngineRequest",
    "ErrorPayload",
    "FilteringRequest",
    "GenerationRequest",
    "RequestEnvelope",
    "ResponseEnvelope",
    "SearchRequest",
    "SummarizationRequest",
    "dispatch",
    "handle_message",
    "OffloadChannel",
    "should_offload",
    "request_timeout_for",
]
