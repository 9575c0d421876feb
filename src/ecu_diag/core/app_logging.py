"""
Structured Logging System

Console output for people, JSONL files for audit trails. Negotiation
results and fault-memory changes carry the ECU address and protocol
as structured fields.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "ecu_diag"
DEFAULT_LOG_DIR = Path("./logs")

_loggers: dict[str, logging.Logger] = {}
_log_dir: Path | None = None
_session_id: str = datetime.now().strftime("%Y%m%d_%H%M%S")

# LogRecord extras written to the JSONL file
_STRUCTURED_FIELDS = (
    "action",
    "ecu",
    "protocol",
    "success",
    "error",
    "details",
    "audit_event",
    "audit_description",
    "audit_details",
)


class JSONLFormatter(logging.Formatter):
    """One JSON object per record, tagged with the logging session."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session": _session_id,
        }
        entry.update(
            (key, getattr(record, key))
            for key in _STRUCTURED_FIELDS
            if hasattr(record, key)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Short colored lines for a terminal.

    Records logged through log_diagnostic_action also show which ECU
    and protocol they concern.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True) -> None:
        super().__init__(
            fmt="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        context = [
            f"{key}={getattr(record, key)}"
            for key in ("ecu", "protocol")
            if getattr(record, key, None)
        ]
        if context:
            line = f"{line} ({', '.join(context)})"

        color = self.LEVEL_COLORS.get(record.levelno) if self.use_color else None
        return f"{color}{line}{self.RESET}" if color else line


def _attach(
    logger: logging.Logger,
    handler: logging.Handler,
    level: int,
    formatter: logging.Formatter,
) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logging(log_dir: Path | None = None, debug: bool = False) -> Path:
    """
    Initialize the logging system.

    Calling it again starts a new logging session: earlier handlers
    are closed and a new JSONL file is opened.

    Args:
        log_dir: Directory for log files (default: ./logs)
        debug: Enable debug-level logging (includes raw TX/RX frames)

    Returns:
        Path of the JSONL log file
    """
    global _log_dir, _session_id

    _log_dir = log_dir or DEFAULT_LOG_DIR
    _log_dir.mkdir(parents=True, exist_ok=True)
    _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    log_file = _log_dir / f"session_{_session_id}.jsonl"
    _attach(root_logger, logging.StreamHandler(sys.stdout), level, ConsoleFormatter())
    _attach(
        root_logger,
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.DEBUG,
        JSONLFormatter(),
    )

    root_logger.info(f"Logging session {_session_id} writing to {log_file}")
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Logger for name, placed under the ecu_diag namespace."""
    logger = _loggers.get(name)
    if logger is None:
        qualified = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
        logger = _loggers[name] = logging.getLogger(qualified)
    return logger


def get_session_id() -> str:
    return _session_id


def get_log_dir() -> Path:
    return _log_dir or DEFAULT_LOG_DIR


def log_audit_event(
    event_type: str,
    description: str,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Record an audit event (e.g., "protocol_negotiated", "dtc_clear").

    The description goes into the message; event type and details
    become structured fields.
    """
    get_logger("audit").info(
        f"AUDIT: {event_type} - {description}",
        extra={
            "audit_event": event_type,
            "audit_description": description,
            "audit_details": details or {},
        },
    )


def log_diagnostic_action(
    action: str,
    ecu: str | None = None,
    protocol: str | None = None,
    success: bool = True,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log a diagnostic action against one ECU.

    Args:
        action: Action performed (e.g., "read_dtc", "protocol_negotiation")
        ecu: Target ECU as "0xTX/0xRX"
        protocol: Protocol name, if one is active
        success: Whether the action succeeded; failures log at ERROR
        error: Error text when it failed
        details: Extra action-specific fields
    """
    fields = {
        "action": action,
        "ecu": ecu,
        "protocol": protocol,
        "success": success,
        "error": error,
        "details": details or {},
    }
    if success:
        get_logger("diagnostic").info(f"Diagnostic action: {action}", extra=fields)
    else:
        get_logger("diagnostic").error(f"{action} failed: {error}", extra=fields)
