"""
Structured Logging Module.

Provides structured logging for the risk engine: JSON output for
production, readable text for development, bound context fields for
the scheduler and offload channel, and run timers for the CLI scripts.
"""

import copy
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class EngineLogger:
    """
    Structured logger for the risk engine.

    Provides:
    - JSON formatted logs for production
    - Human-readable format for development
    - Context fields bound per component
    - Start/stop timers for pipeline steps
    """

    def __init__(
        self,
        name: str = "risk_engine",
        level: str = "INFO",
        format: str = "json",
        log_file: Optional[str] = None,
        configure: bool = True,
    ):
        """
        Initialize the logger.

        Args:
            name: Logger name.
            level: Logging level (DEBUG, INFO, WARNING, ERROR).
            format: Output format ('json' or 'text').
            log_file: Path to log file (optional).
            configure: Install handlers and level. When False, wrap the
                      named logger as it is already configured.
        """
        self.name = name
        self.level = level
        self.format = format
        self.log_file = log_file

        self._logger = self._setup_logger() if configure else logging.getLogger(name)
        self._start_times: dict[str, float] = {}
        self._context: dict = {}

    def _setup_logger(self) -> logging.Logger:
        """Set up the underlying logger."""
        logger = logging.getLogger(self.name)
        logger.setLevel(getattr(logging, self.level.upper()))

        # Replace handlers so repeated get_logger() calls don't duplicate output
        logger.handlers = []

        if self.format == "json":
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if self.log_file:
            path = Path(self.log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        self._log("debug", message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        self._log("info", message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        self._log("warning", message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        self._log("error", message, **kwargs)

    def bind(self, **context) -> "EngineLogger":
        """
        Return a logger that adds ``context`` to every message.

        The bound logger writes through the same handlers and shares running
        timers with this one.
        """
        bound = copy.copy(self)
        bound._context = {**self._context, **context}
        return bound

    def _log(self, level: str, message: str, **kwargs) -> None:
        log_func = getattr(self._logger, level)
        kwargs = {**self._context, **kwargs}

        if self.format == "json":
            extra = {"extra_fields": kwargs} if kwargs else {}
            log_func(message, extra=extra)
        else:
            if kwargs:
                extra_str = " ".join(f"{k}={v}" for k, v in kwargs.items())
                message = f"{message} | {extra_str}"
            log_func(message)

    def start_timer(self, operation: str) -> None:
        """Start timing an operation."""
        self._start_times[operation] = time.perf_counter()

    def stop_timer(self, operation: str) -> float:
        """Stop timing and return duration in seconds."""
        if operation not in self._start_times:
            return 0.0

        return time.perf_counter() - self._start_times.pop(operation)

    def log_metrics(self, **metrics) -> None:
        """Log named run metrics as one message."""
        self.info("Metrics recorded", **metrics)

    def log_assessment_result(
        self,
        num_transactions: int,
        num_flagged: int,
        num_clusters: int,
        duration_ms: float,
        **extra
    ) -> None:
        """Log the outcome of a risk assessment run."""
        self.info(
            "Risk assessment completed",
            total_transactions=num_transactions,
            flagged_transactions=num_flagged,
            flagged_ratio=round(num_flagged / max(num_transactions, 1), 4),
            clusters_found=num_clusters,
            data_points=num_transactions ** 2,
            duration_ms=round(duration_ms, 3),
            **extra
        )


class JsonFormatter(logging.Formatter):
    """One JSON object per record; context fields are merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def get_logger(
    name: str = "risk_engine",
    level: str = "INFO",
    format: str = "text",
    log_file: Optional[str] = None
) -> EngineLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name.
        level: Logging level.
        format: Output format ('json' or 'text').
        log_file: Path to log file.

    Returns:
        Configured EngineLogger instance.
    """
    return EngineLogger(name=name, level=level, format=format, log_file=log_file)


DEFAULT_LOGGER_NAME = "risk_engine"


def default_logger() -> EngineLogger:
    """
    Logger used by library code when the caller passes none.

    If the ``risk_engine`` logger already has handlers (for example from a
    command-line entry point calling ``get_logger``), they are kept and the
    output format is taken from them. Otherwise the logger is configured to
    send warnings and above to stderr as text.
    """
    handlers = logging.getLogger(DEFAULT_LOGGER_NAME).handlers
    if not handlers:
        return EngineLogger(name=DEFAULT_LOGGER_NAME, level="WARNING", format="text")

    json_output = any(isinstance(h.formatter, JsonFormatter) for h in handlers)
    return EngineLogger(
        name=DEFAULT_LOGGER_NAME,
        format="json" if json_output else "text",
        configure=False,
    )
