"""
Structured JSON logging service for the TrustGraph API.

Provides structured logging with:
- JSON format output when enabled
- Request context integration (request_id, method, path)
- Consistent log structure across ingest, recompute and ranking
- Configurable log levels and formats

Logs include: timestamp, level, logger, message, request_id, method, path,
duration_ms, and any keyword context passed by the caller.
"""

import os
import re
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional
from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = 'X-Request-ID'
_REQUEST_ID_RE = re.compile(r'^[A-Za-z0-9._-]{1,64}$')


def _incoming_request_id() -> Optional[str]:
    value = request.headers.get(REQUEST_ID_HEADER, '').strip()
    return value if _REQUEST_ID_RE.match(value) else None


def _elapsed_ms() -> Optional[float]:
    started = getattr(g, 'request_start_time', None)
    if started is None:
        return None
    return round((time.time() - started) * 1000, 2)


def get_request_id() -> Optional[str]:
    """Current request id, or None outside a request."""
    if not has_request_context():
        return None
    return getattr(g, 'request_id', None)


def get_request_context() -> dict:
    """
    Request fields attached to every log line.

    Agent, skill and window path parameters are included so a log search for
    one agent finds its ingest, read and gate calls alike.
    """
    context = {
        'request_id': getattr(g, 'request_id', None),
        'method': request.method,
        'path': request.path,
        'endpoint': request.endpoint,
    }
    for key in ('agent_id', 'skill_id', 'operator_id', 'window'):
        value = (request.view_args or {}).get(key)
        if value is not None:
            context[key] = value
    elapsed = _elapsed_ms()
    if elapsed is not None:
        context['duration_ms'] = elapsed
    return context


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def __init__(self, json_enabled: bool = True):
        super().__init__()
        self.json_enabled = json_enabled

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON or plain text."""
        if not self.json_enabled:
            return super().format(record)

        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if has_request_context():
            log_entry.update(get_request_context())

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Structured logger with request context integration."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_context(self, level: int, message: str, exc_info=None, **kwargs):
        """Log message with additional context."""
        extra_fields = kwargs.copy()

        if 'request_id' not in extra_fields and has_request_context():
            extra_fields['request_id'] = get_request_id()

        self.logger.log(level, message, exc_info=exc_info, extra={'extra_fields': extra_fields})

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._log_with_context(logging.ERROR, message, **kwargs)

    def log_request_start(self, method: str, path: str, **kwargs):
        """Log request start."""
        self.info(
            f"Request started: {method} {path}",
            event_type='request_start',
            method=method,
            path=path,
            **kwargs
        )

    def log_request_end(self, method: str, path: str, status_code: int, duration_ms: float, **kwargs):
        """Log request completion."""
        self.info(
            f"Request completed: {method} {path} - {status_code} ({duration_ms}ms)",
            event_type='request_end',
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs
        )

    def log_idempotency_event(self, event: str, **kwargs):
        """Log idempotency event (duplicate external ref skipped or rejected)."""
        self.info(
            f"Idempotency {event}",
            event_type='idempotency',
            idempotency_event=event,
            **kwargs
        )

    def log_recompute_event(self, trigger: str, keys: int, duration_ms: float, **kwargs):
        """Log a score recompute pass."""
        level = logging.WARNING if duration_ms > 1000 else logging.INFO
        self._log_with_context(
            level,
            f"Recompute ({trigger}): {keys} key(s) in {duration_ms}ms",
            event_type='recompute',
            trigger=trigger,
            keys=keys,
            duration_ms=duration_ms,
            **kwargs
        )

    def log_error_event(self, error: str, error_type: str = 'application', **kwargs):
        """Log error event."""
        self.error(
            f"Error: {error}",
            event_type='error',
            error_type=error_type,
            error_message=error,
            **kwargs
        )


def get_logger(name: str) -> StructuredLogger:
    """Get structured logger instance."""
    return StructuredLogger(name)


def configure_logging(app: Flask):
    """Configure structured logging for Flask application."""
    json_enabled = os.environ.get('TRUSTGRAPH_LOG_JSON', 'true').lower() == 'true'
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(StructuredFormatter(json_enabled=json_enabled))
    root_logger.addHandler(console_handler)

    app.logger.setLevel(getattr(logging, log_level, logging.INFO))

    loggers_to_configure = [
        'trustgraph.ingest',
        'trustgraph.recompute',
        'trustgraph.ranking',
        'trustgraph.badges',
        'trustgraph.gate',
        'trustgraph.jobs',
    ]

    for logger_name in loggers_to_configure:
        logging.getLogger(logger_name).setLevel(getattr(logging, log_level, logging.INFO))

    get_logger('trustgraph.config').info(
        "Logging configured",
        json_enabled=json_enabled,
        log_level=log_level,
        loggers_configured=loggers_to_configure
    )


class RequestLoggingMiddleware:
    """
    Assigns each request an id and logs its start and end.

    An incoming X-Request-ID is kept when it is a plain token (letters,
    digits, '.', '_' or '-', at most 64 characters) so callers can correlate
    ingest batches with their own logs; anything else gets a fresh id. The id
    is echoed back on every response, including errors.
    """

    QUIET_PATHS = ('/healthz', '/readyz', '/metrics')

    def __init__(self, app: Flask):
        self.app = app
        self.logger = get_logger('trustgraph.requests')

        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        g.request_id = _incoming_request_id() or uuid.uuid4().hex
        g.request_start_time = time.time()

        if request.path in self.QUIET_PATHS:
            return

        self.logger.log_request_start(
            method=request.method,
            path=request.path,
            remote_addr=request.remote_addr,
            content_length=request.content_length
        )

    def _after_request(self, response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers['X-Request-ID'] = request_id

        if request.path in self.QUIET_PATHS:
            return response

        self.logger.log_request_end(
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(),
            content_length=response.content_length
        )
        return response


def init_logging(app: Flask):
    """Initialize structured logging for Flask application."""
    configure_logging(app)
    RequestLoggingMiddleware(app)

    get_logger('trustgraph.startup').info(
        "Application starting",
        debug=app.debug,
        testing=app.testing
    )
