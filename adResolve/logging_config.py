"""
Centralized logging configuration for adResolve.

Provides structured JSONL logging with rotation, run-id injection and
component-specific loggers. Console output goes to stderr because stdout
carries the resolved computer records.

Run ID Propagation:
    Each resolver batch sets a run ID with `set_run_id()`. Every record
    emitted while the batch is being processed carries it, so the warnings
    of one run can be pulled out of a shared log file.

    Example:
        from adResolve.logging_config import set_run_id, reset_run_id

        token = set_run_id(uuid.uuid4().hex)
        try:
            ...
        finally:
            reset_run_id(token)
"""
import contextvars
import json
import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default=""
)


def set_run_id(run_id: str) -> contextvars.Token:
    """
    Set the current run ID for this context.

    Args:
        run_id: Identifier of the resolver batch

    Returns:
        Token that can be used to reset the context variable
    """
    return _run_id_var.set(run_id)


def get_run_id() -> str:
    """Return the current run ID, or an empty string when none is set."""
    return _run_id_var.get()


def reset_run_id(token: contextvars.Token) -> None:
    _run_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single-line JSON object.
    The current run ID is included automatically when one is set.
    """

    # Attributes passed through `extra=` that are copied into the JSON line
    EXTRA_ATTRS = (
        "run_id", "ip", "computer", "zone", "server", "source_kind",
        "records", "entries", "kind", "outcome", "state", "duration",
        "error_type", "batch_size", "emitted", "diagnostics", "action",
    )

    def __init__(self, component: str = "adresolve"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = get_run_id()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges a fixed context into every record's extras."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "adresolve",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 5,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Set up logging for an adResolve component.

    Args:
        component: Component name (resolver, directory, sources, cli, ...)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to the JSONL log file (default: logs/adresolve.jsonl)
        max_bytes: Max bytes per log file before rotation (default: 10MB)
        backup_count: Number of rotated files to keep
        enable_console: Whether to add the human-readable stderr handler

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("ADRESOLVE_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("ADRESOLVE_LOG_FILE", "logs/adresolve.jsonl")
    max_bytes = max_bytes or int(os.getenv("ADRESOLVE_LOG_MAX_BYTES", str(10 * 1024 * 1024)))

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(f"adresolve.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False
    logger.handlers.clear()

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONLFormatter(component=component))
        logger.addHandler(file_handler)
    except OSError as e:
        sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

    logger.debug(
        "Logging configured",
        extra={"state": "configured", "action": log_file},
    )

    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create the logger for a component.

    Args:
        component: Component name
        context: Optional context dictionary injected into every record

    Returns:
        Logger, or ContextAdapter when context is provided
    """
    logger = logging.getLogger(f"adresolve.{component}")

    if not logger.handlers:
        logger = setup_logging(component)

    if context:
        return ContextAdapter(logger, context)

    return logger


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """
    Redact credentials from a dictionary before it is logged.

    Args:
        data: Dictionary containing log data
        sensitive_keys: Substrings of keys to redact (case-insensitive)

    Returns:
        Sanitized copy of the dictionary
    """
    sensitive_keys = sensitive_keys or [
        "password", "passwd", "secret", "token", "bind_password", "credential",
    ]

    sanitized = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        elif isinstance(value, list) and value and isinstance(value[0], dict):
            sanitized[key] = [sanitize_log_data(item, sensitive_keys) for item in value]
        else:
            sanitized[key] = value

    return sanitized


COMPONENTS = ["resolver", "sources", "directory", "discovery", "ldap", "cli"]


def init_component_loggers(
    log_level: Optional[str] = None,
    enable_console: bool = True,
) -> Dict[str, logging.Logger]:
    """(Re)configure the loggers of every adResolve component."""
    return {
        component: setup_logging(component, log_level=log_level, enable_console=enable_console)
        for component in COMPONENTS
    }
