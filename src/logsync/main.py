"""Logging setup and exit-code mapping for logsync entry points."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from .client import RemoteOperations
from .config import Config
from .reconciler import ReconcileResult, Reconciler

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DRIFT = 3

# Handler installed by setup_logging, replaced on repeated calls
_handler: logging.Handler | None = None

# Attributes every LogRecord carries; everything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(json_output: bool = True, level: int = logging.INFO) -> None:
    """Configure root logging.

    Args:
        json_output: Emit JSON lines to stdout; plain text to stderr otherwise.
        level: Root log level.
    """
    if json_output:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    global _handler
    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    _handler = handler
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def exit_code_for(result: ReconcileResult, fail_on_drift: bool = False) -> int:
    """Map a reconciliation result to a process exit code."""
    if result.error is not None:
        return EXIT_ERROR
    if fail_on_drift and result.drift_found and result.changes_applied == 0:
        return EXIT_DRIFT
    return EXIT_OK


def run_reconciler(
    config: Config,
    client: RemoteOperations,
    fail_on_drift: bool = False,
) -> tuple[int, ReconcileResult]:
    """Run one reconciliation cycle.

    Returns:
        Exit code and the reconciliation result.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Starting logsync",
        extra={
            "service_id": config.service_id,
            "mode": config.mode.value,
            "spec_path": str(config.spec_path),
        },
    )

    result = Reconciler(config, client).reconcile_once()
    return exit_code_for(result, fail_on_drift), result
