"""
Logging configuration for the Document Translation Service

Records are tagged with the service name, version, pid and, while a
translation pipeline run is active, the run's id. The run id lives in a
context variable, so it follows the run into threadpool workers and into
the PDF extraction threads that copy the caller's context.
"""
import contextvars
import logging
import logging.handlers
import os
import sys
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional
from config import settings

SERVICE_NAME = "document-service"

_current_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("pipeline_run_id", default=None)

# Attributes every LogRecord carries, plus the ones RunContextFilter adds
_BUILTIN_RECORD_KEYS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "taskName", "service", "version", "pid", "run_id"
}

# Third-party loggers and the level they are held at
_NOISY_LIBRARIES = {
    "pdfminer": logging.WARNING,
    "pdfplumber": logging.WARNING,
    "PyPDF2": logging.ERROR,
    "urllib3": logging.WARNING,
    "httpx": logging.WARNING,
}


@contextmanager
def bind_run_id(run_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with a pipeline run id"""
    token = _current_run_id.set(run_id)
    try:
        yield
    finally:
        _current_run_id.reset(token)


def current_run_id() -> Optional[str]:
    return _current_run_id.get()


class RunContextFilter(logging.Filter):
    """Adds service identity and the active pipeline run id to each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        record.version = settings.app_version
        record.pid = os.getpid()
        if not hasattr(record, "run_id"):
            record.run_id = _current_run_id.get() or "-"
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", SERVICE_NAME),
            "run_id": getattr(record, "run_id", None) or _current_run_id.get(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _BUILTIN_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


def _plain_formatter() -> logging.Formatter:
    return logging.Formatter(
        '%(asctime)s %(levelname)-8s %(service)s [run:%(run_id)s] %(name)s - %(message)s'
    )


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure application logging

    Args:
        log_level: Logging level name, settings.log_level by default
        log_format: "structured" for JSON lines, anything else for plain text
        log_file: Optional path of a rotating log file
        max_file_size: Size in bytes at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The root logger
    """
    log_level = log_level or settings.log_level
    log_format = log_format or settings.log_format
    log_file = log_file if log_file is not None else settings.log_file

    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = StructuredFormatter() if log_format == "structured" else _plain_formatter()
    run_filter = RunContextFilter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(run_filter)
        root_logger.addHandler(handler)

    for name, library_level in _NOISY_LIBRARIES.items():
        logging.getLogger(name).setLevel(max(level, library_level))

    # Security events are always kept, whatever the application level
    get_security_logger().setLevel(logging.INFO)

    root_logger.info(
        "Logging configured",
        extra={"log_level": log_level, "log_format": log_format, "log_file": log_file}
    )
    return root_logger


def get_security_logger() -> logging.Logger:
    """Logger for security events such as path traversal attempts"""
    return logging.getLogger("security")


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: int,
    client_ip: Optional[str] = None,
    run_id: Optional[str] = None
):
    """
    Log one finished API request.

    run_id is the pipeline run that served the request, for translate-file
    responses.
    """
    extra = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
        "client_ip": client_ip
    }
    if run_id:
        extra["run_id"] = run_id

    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.getLogger("api").log(level, f"{method} {path} -> {status_code} ({duration_ms}ms)", extra=extra)


def log_security_event(
    event_type: str,
    description: str,
    severity: str = "medium",
    client_ip: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None
):
    """
    Log a security-related event

    Args:
        event_type: Short event name, e.g. "path_traversal"
        description: What happened, without echoing untrusted input verbatim
        severity: low, medium, high or critical
        client_ip: Client IP address when known
        additional_data: Further fields for the structured log
    """
    extra = {"event_type": event_type, "severity": severity, "client_ip": client_ip}
    if additional_data:
        extra.update(additional_data)

    level = {
        "critical": logging.CRITICAL,
        "high": logging.ERROR,
        "medium": logging.WARNING,
    }.get(severity, logging.INFO)
    get_security_logger().log(level, f"Security event: {description}", extra=extra)


logger = logging.getLogger(SERVICE_NAME)
