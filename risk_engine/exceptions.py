"""Error taxonomy for the risk engine.

Evaluators and the orchestrator raise these synchronously and never catch
them. The incremental scheduler and the offload channel are the only layers
that turn them into asynchronous failures.
"""

from typing import Iterable, Optional


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""


class MissingFieldError(RiskEngineError):
    """A field required by an evaluator is absent on a transaction."""

    def __init__(self, transaction_id: Optional[str], fields: Iterable[str]):
        self.transaction_id = transaction_id
        self.fields = list(fields)
        super().__init__(
            f"Transaction {transaction_id!r}: {', '.join(self.fields)} "
            f"{'is' if len(self.fields) == 1 else 'are'} required"
        )


class NoHistoryError(RiskEngineError):
    """Anomaly detection was requested for a user with no transactions in the set."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id
        super().__init__(f"No transactions found for user {user_id!r}")


class ChannelTerminated(RiskEngineError):
    """The offload worker was torn down while the request was outstanding."""

    def __init__(self, message: str = "Offload channel terminated"):
        super().__init__(message)


class ChannelTimeout(RiskEngineError):
    """A request sent over the offload channel did not complete in time."""

    def __init__(self, correlation_id: str, timeout: float):
        self.correlation_id = correlation_id
        self.timeout = timeout
        super().__init__(f"Request {correlation_id} timed out after {timeout:.1f}s")


class ChannelNotStarted(RiskEngineError):
    """A request was submitted to a channel that is not running."""


class RemoteError(RiskEngineError):
    """An unexpected failure raised inside the offload worker."""

    def __init__(self, error_type: str, message: str):
        self.error_type = error_type
        super().__init__(f"{error_type}: {message}")
