"""
Logging setup for the gym back office core.

Every module logs through ``logging.getLogger(__name__)`` and attaches
structured fields under ``extra={"context": {...}}``. ``setup_logging``
decides where those records go:

- stdout, colored in development and JSON in production
- ``logs/gymcore.log`` and ``logs/gymcore_errors.log`` (rotating, JSON)

Inside a Flask request, records also carry the request id and the
``X-Actor-Id`` of the caller, so a rejected booking or contract transition
can be traced back to the request that caused it.
"""

import json
import logging
import logging.handlers
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import Flask, g, has_request_context, request

ACTOR_HEADER = "X-Actor-Id"
REQUEST_ID_HEADER = "X-Request-Id"

LOG_FILES = (
    ("gymcore.log", None),
    ("gymcore_errors.log", logging.ERROR),
)
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("werkzeug", "apscheduler", "urllib3")


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``context`` is embedded when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for local development."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        # Copy so the file handlers keep the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname:8}{self.RESET}"
        line = super().format(colored)
        context = getattr(record, "context", None)
        if context:
            line = f"{line} | {json.dumps(context, default=str)}"
        return line


class RequestContextFilter(logging.Filter):
    """Adds ``request_id`` and ``actor`` to the context of in-request records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context() or "request_id" not in g:
            return True
        context = dict(getattr(record, "context", None) or {})
        context.setdefault("request_id", g.request_id)
        if g.get("actor"):
            context.setdefault("actor", g.actor)
        record.context = context
        return True


def _resolve_level(log_level: Union[int, str]) -> int:
    if isinstance(log_level, int):
        return log_level
    return getattr(logging, str(log_level).upper(), logging.INFO)


def _file_handlers(log_dir: Path, level: int, problems: List[str]) -> List[logging.Handler]:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        problems.append(f"Cannot create log directory {log_dir}: {e}")
        return []

    handlers: List[logging.Handler] = []
    for filename, handler_level in LOG_FILES:
        try:
            handler = logging.handlers.RotatingFileHandler(
                log_dir / filename,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        except OSError as e:
            problems.append(f"Cannot open {filename}: {e}")
            continue
        handler.setLevel(handler_level or level)
        handler.setFormatter(JSONFormatter())
        handlers.append(handler)
    return handlers


def setup_logging(
    app: Optional[Flask] = None,
    log_level: Union[int, str] = "INFO",
    enable_sql_echo: bool = False,
    log_to_file: bool = True,
    use_json_format: bool = False,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger and, when given, per-request logging for ``app``.

    Args:
        app: Flask application (registers the request/response hooks)
        log_level: ``logging.INFO`` or ``"INFO"`` style level
        enable_sql_echo: Route SQLAlchemy's statement log through our handlers
        log_to_file: Also write rotating JSON files
        use_json_format: JSON on stdout instead of colored lines
        log_dir: Directory for log files (defaults to ``backend/logs``)
    """
    level = _resolve_level(log_level)
    log_dir = log_dir or Path(__file__).resolve().parents[2] / "logs"

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(JSONFormatter() if use_json_format else ConsoleFormatter())

    problems: List[str] = []
    handlers: List[logging.Handler] = [console]
    if log_to_file:
        handlers.extend(_file_handlers(log_dir, level, problems))

    request_filter = RequestContextFilter()
    for handler in handlers:
        handler.addFilter(request_filter)
        root.addHandler(handler)

    for problem in problems:
        root.warning(
            f"{problem}. Falling back to console logging.",
            extra={"context": {"component": "logging_setup"}},
        )

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if enable_sql_echo else logging.WARNING
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        _register_request_hooks(app)

    logging.getLogger("gymcore").info(
        "Logging configured",
        extra={
            "context": {
                "level": logging.getLevelName(level),
                "sql_echo": enable_sql_echo,
                "log_to_file": log_to_file and len(handlers) > 1,
                "json_format": use_json_format,
            }
        },
    )


def _register_request_hooks(app: Flask) -> None:
    request_logger = logging.getLogger("gymcore.request")

    @app.before_request
    def start_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        g.route = request.url_rule.rule if request.url_rule is not None else request.path
        g.actor = request.headers.get(ACTOR_HEADER)
        request_logger.debug(
            f"{request.method} {request.path}",
            extra={"context": {"route": g.route, "remote_addr": request.remote_addr}},
        )

    @app.after_request
    def finish_request(response):
        started = g.get("request_started")
        if started is None:
            return response
        duration_ms = (time.perf_counter() - started) * 1000
        log = request_logger.warning if response.status_code >= 500 else request_logger.info
        log(
            f"{request.method} {request.path} {response.status_code} in {duration_ms:.2f}ms",
            extra={
                "context": {
                    "route": g.route,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            },
        )
        response.headers[REQUEST_ID_HEADER] = g.request_id
        return response


def log_performance(func_name: str, duration_ms: float, **kwargs) -> None:
    """
    Log how long an operation took, with any extra counters.

    Args:
        func_name: Name of the function or operation
        duration_ms: Execution duration in milliseconds
        **kwargs: Additional context (record counts, etc.)
    """
    context = {"function": func_name, "duration_ms": round(duration_ms, 2)}
    context.update(kwargs)
    logging.getLogger("gymcore.performance").info(
        f"{func_name} completed in {duration_ms:.2f}ms",
        extra={"context": context},
    )
