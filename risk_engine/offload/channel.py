"""
Offload Channel.

Runs engine requests on a dedicated worker thread. The caller and the
worker share nothing but a queue of JSON strings: requests are serialised
on submit and results are rebuilt from JSON on the caller's side, so no
object is ever referenced from both threads.

Each submitted request gets a fresh correlation id and a
``concurrent.futures.Future``. Responses may complete in any order; they
are matched to their future through the pending table.
"""

import queue
import threading
import uuid
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..config import ChannelConfig, EngineConfig
from ..exceptions import ChannelNotStarted, ChannelTerminated, ChannelTimeout, RemoteError
from ..utils.logging import EngineLogger, default_logger
from .protocol import (
    EngineRequest,
    RequestEnvelope,
    ResponseEnvelope,
    error_from_exception,
    exception_from_error,
)
from .worker import handle_message


MessageHandler = Callable[[str], str]


@dataclass
class _PendingCall:
    future: Future
    request_type: type
    timer: threading.Timer


class OffloadChannel:
    """
    Request/response channel to a background worker thread.

    Usage:
        with OffloadChannel(config) as channel:
            assessment = channel.call(AssessmentRequest(transactions=txns))
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        logger: Optional[EngineLogger] = None,
        handler: Optional[MessageHandler] = None,
    ):
        """
        Initialize the channel. The worker is not started until ``start()``.

        Args:
            config: Engine configuration; ``channel.request_timeout`` is the
                default per-request timeout and the whole config is passed
                to the worker.
            logger: Logger instance.
            handler: Function turning a JSON request envelope into a JSON
                response envelope. Defaults to ``handle_message``.
        """
        self.config = config or EngineConfig()
        self.log = (logger or default_logger()).bind(component="offload_channel")
        self._handler = handler or (
            lambda raw: handle_message(raw, config=self.config, logger=self.log)
        )

        self._lock = threading.Lock()
        self._pending: dict[str, _PendingCall] = {}
        self._inbox: Optional[queue.Queue] = None
        self._stopped: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._stopped is not None and not self._stopped.is_set()

    @property
    def pending_count(self) -> int:
        """Number of requests still awaiting a response."""
        with self._lock:
            return len(self._pending)

    def start(self) -> "OffloadChannel":
        """Spawn the worker thread. Starting a running channel is a no-op."""
        if self.is_running:
            return self

        inbox: queue.Queue = queue.Queue()
        stopped = threading.Event()
        with self._lock:
            self._inbox, self._stopped = inbox, stopped
        self._thread = threading.Thread(
            target=self._worker_loop,
            args=(inbox, stopped),
            name="risk-engine-offload",
            daemon=True,
        )
        self._thread.start()
        self.log.debug("Offload channel started")
        return self

    def _worker_loop(self, inbox: queue.Queue, stopped: threading.Event) -> None:
        while True:
            item = inbox.get()
            if item is None or stopped.is_set():
                return

            correlation_id, raw = item
            try:
                response = self._handler(raw)
            except Exception as e:
                self.log.error(
                    "Offload handler raised",
                    correlation_id=correlation_id,
                    error=f"{type(e).__name__}: {e}",
                )
                response = ResponseEnvelope(
                    correlation_id=correlation_id,
                    error=error_from_exception(e),
                ).model_dump_json()

            if stopped.is_set():
                return
            self.deliver_response(response)

    def submit(self, request: EngineRequest, timeout: Optional[float] = None) -> Future:
        """
        Send a request to the worker.

        Args:
            request: Any request variant from ``risk_engine.offload.protocol``.
            timeout: Seconds before the request fails with ``ChannelTimeout``;
                defaults to ``config.channel.request_timeout``.

        Returns:
            Future resolving to the request's result type.

        Raises:
            ChannelNotStarted: If the channel is not running, including when
                ``terminate()`` wins a race with this call.
        """
        timeout = self.config.channel.request_timeout if timeout is None else timeout
        correlation_id = str(uuid.uuid4())
        raw = RequestEnvelope(correlation_id=correlation_id, request=request).model_dump_json()

        future: Future = Future()
        future.set_running_or_notify_cancel()
        timer = threading.Timer(timeout, self._expire, args=(correlation_id, timeout))
        timer.daemon = True

        # Running check and registration are atomic with respect to terminate()
        with self._lock:
            if not self.is_running:
                raise ChannelNotStarted("Offload channel is not running; call start() first")
            self._pending[correlation_id] = _PendingCall(future, type(request), timer)
            timer.start()
            self._inbox.put((correlation_id, raw))
        self.log.debug("Request submitted", correlation_id=correlation_id, method=request.method)
        return future

    def call(self, request: EngineRequest, timeout: Optional[float] = None) -> Any:
        """Submit a request and block until its result (or error) arrives."""
        return self.submit(request, timeout=timeout).result()

    def deliver_response(self, raw: str) -> None:
        """
        Resolve the future matching a JSON response envelope.

        Responses whose correlation id is not pending (timed out, terminated
        or never issued) are dropped.
        """
        response = ResponseEnvelope.model_validate_json(raw)

        with self._lock:
            pending = self._pending.pop(response.correlation_id, None)

        if pending is None:
            self.log.debug("Dropping response for unknown request", correlation_id=response.correlation_id)
            return

        pending.timer.cancel()

        if response.error is not None:
            pending.future.set_exception(exception_from_error(response.error))
            return

        try:
            result = pending.request_type.parse_result(response.result)
        except ValidationError as e:
            pending.future.set_exception(RemoteError("ValidationError", str(e)))
            return
        pending.future.set_result(result)

    def _expire(self, correlation_id: str, timeout: float) -> None:
        with self._lock:
            pending = self._pending.pop(correlation_id, None)

        if pending is None:
            return

        self.log.warning("Offloaded request timed out", correlation_id=correlation_id, timeout=timeout)
        pending.future.set_exception(ChannelTimeout(correlation_id, timeout))

    def terminate(self) -> None:
        """
        Stop the worker and reject every pending request with ``ChannelTerminated``.

        Work already running on the worker thread is abandoned; its response,
        if it ever arrives, is discarded.
        """
        with self._lock:
            if self._stopped is not None:
                self._stopped.set()
            if self._inbox is not None:
                self._inbox.put(None)
            abandoned = list(self._pending.values())
            self._pending.clear()

        for pending in abandoned:
            pending.timer.cancel()
            pending.future.set_exception(ChannelTerminated())

        if abandoned:
            self.log.info("Offload channel terminated", rejected_requests=len(abandoned))
        else:
            self.log.debug("Offload channel terminated")

    def __enter__(self) -> "OffloadChannel":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.terminate()


def should_offload(num_transactions: int, config: Optional[ChannelConfig] = None) -> bool:
    """Whether a dataset of this size should go through the offload channel."""
    config = config or ChannelConfig()
    return num_transactions >= config.offload_threshold


def request_timeout_for(num_transactions: int, config: Optional[ChannelConfig] = None) -> float:
    """
    Timeout for a request over ``num_transactions`` records.

    ``request_timeout`` plus ``timeout_per_thousand`` seconds for every
    thousand transactions.
    """
    config = config or ChannelConfig()
    return config.request_timeout + config.timeout_per_thousand * num_transactions / 1000
