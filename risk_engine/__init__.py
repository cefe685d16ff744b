"""Transaction risk and analytics engine.

Rule-based fraud scoring, time-series trends, category correlation and
behaviour clustering over in-memory transaction sets, with an incremental
asyncio scheduler and a thread-backed offload channel for large datasets.
"""

from .analytics import (
    IncrementalScheduler,
    SchedulerState,
    generate_risk_assessment,
    get_advanced_analytics,
    run_advanced_analytics,
)
from .config import EngineConfig, load_config
from .data import AdvancedAnalytics, RiskAssessment, Transaction
from .exceptions import (
    ChannelNotStarted,
    ChannelTerminated,
    ChannelTimeout,
    MissingFieldError,
    NoHistoryError,
    RemoteError,
    RiskEngineError,
)
from .offload import OffloadChannel, should_offload

__version__ = "0.1.0"

__all__ = [
    "IncrementalScheduler",
    "SchedulerState",
    "generate_risk_assessment",
    "get_advanced_analytics",
    "run_advanced_analytics",
    "EngineConfig",
    "load_config",
    "AdvancedAnalytics",
    "RiskAssessment",
    "Transaction",
    "ChannelNotStarted",
    "ChannelTerminated",
    "ChannelTimeout",
    "MissingFieldError",
    "NoHistoryError",
    "RemoteError",
    "RiskEngineError",
    "OffloadChannel",
    "should_offload",
]
