"""
Slow query alerts.

Statements slower than ``ALERT_QUERY_MS_THRESHOLD`` are logged as warnings with
masked parameters and the current request context.
"""

import logging
import time
from typing import Any, Dict, Optional

from flask import g, has_request_context
from sqlalchemy import event
from sqlalchemy.engine import Engine

from gymcore.core import config

logger = logging.getLogger("gymcore.sql")

_SENSITIVE_KEYS = ("password", "token", "secret", "email")
_TIMER_ATTR = "_gymcore_query_started"
_REGISTERED_ATTR = "_gymcore_slow_query_alerts"


def _safe_truncate(value: Any, limit: int = 500) -> str:
    text = value if isinstance(value, str) else repr(value)
    return text if len(text) <= limit else text[:limit] + "..."


def _mask_params(params: Any) -> Any:
    """Parameters safe to log: sensitive keys hidden, long values cut."""
    if isinstance(params, dict):
        return {
            key: "***"
            if any(marker in str(key).lower() for marker in _SENSITIVE_KEYS)
            else _mask_params(value)
            for key, value in params.items()
        }
    if isinstance(params, (list, tuple)):
        return [_mask_params(item) for item in params]
    if isinstance(params, (bytes, bytearray, memoryview)):
        return "<binary>"
    return _safe_truncate(params, 200)


def _request_context() -> Dict[str, Any]:
    if not has_request_context():
        return {}
    return {
        key: g.get(key)
        for key in ("request_id", "route", "actor")
        if g.get(key) is not None
    }


def register_query_timing(engine: Engine, db_name: Optional[str] = None) -> None:
    """Warn about statements on ``engine`` slower than the configured threshold."""
    if getattr(engine, _REGISTERED_ATTR, False):
        return
    database = db_name or engine.url.database

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        setattr(context, _TIMER_ATTR, time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _check_duration(conn, cursor, statement, parameters, context, executemany):
        started = getattr(context, _TIMER_ATTR, None)
        if started is None or not config.get_slow_query_alerts_enabled():
            return
        duration_ms = (time.perf_counter() - started) * 1000.0
        threshold_ms = config.get_slow_query_threshold_ms()
        if duration_ms < threshold_ms:
            return
        logger.warning(
            "Slow query detected",
            extra={
                "context": {
                    "duration_ms": round(duration_ms, 2),
                    "threshold_ms": threshold_ms,
                    "database": database,
                    "statement": _safe_truncate(statement or ""),
                    "params": _mask_params(parameters),
                    **_request_context(),
                }
            },
        )

    setattr(engine, _REGISTERED_ATTR, True)
