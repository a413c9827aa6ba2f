"""
Centralized configuration module for application-wide settings.

Values are read from environment variables once, at import time, into
module-level constants. Each constant has a ``get_*`` reader that validates
the raw value and falls back to a safe default with a logged warning.
"""

import logging
import os
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Environment Variables:
        TZ: Timezone identifier (e.g., 'America/Bogota', 'UTC')
            Default: 'UTC' (safe fallback)

    Naive datetimes received at the API edge are interpreted in this zone
    and normalized to UTC before they reach the domain layer.
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# Global timezone instance - initialized once at import time
APP_TZ = get_app_timezone()


def localize(value: datetime) -> datetime:
    """Attach ``APP_TZ`` to a naive datetime and convert to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=APP_TZ)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================
# Contract Lifecycle Configuration
# ===========================

DEFAULT_EXPIRY_WARNING_DAYS = 7


def get_contract_expiry_warning_days() -> int:
    """
    Get the advisory window (in days) before a contract's end date.

    Environment Variables:
        CONTRACT_EXPIRY_WARNING_DAYS: Non-negative integer
            Default: 7

    Active contracts ending inside this window are reported as
    ``pending_expiry``. The value never changes persisted state.
    """
    raw = os.getenv("CONTRACT_EXPIRY_WARNING_DAYS", str(DEFAULT_EXPIRY_WARNING_DAYS))
    try:
        days = int(raw)
    except (TypeError, ValueError):
        days = -1
    if days < 0:
        logger.warning(
            "Invalid CONTRACT_EXPIRY_WARNING_DAYS, using default",
            extra={"context": {"value": raw, "default": DEFAULT_EXPIRY_WARNING_DAYS}},
        )
        return DEFAULT_EXPIRY_WARNING_DAYS
    return days


CONTRACT_EXPIRY_WARNING_DAYS = get_contract_expiry_warning_days()


def get_booking_requires_active_contract() -> bool:
    """
    Whether a client needs an active, unexpired contract to be booked.

    Environment Variables:
        BOOKING_REQUIRES_ACTIVE_CONTRACT: Default 'true'

    Truthy values: "true", "1", "yes" (case-insensitive)
    """
    return _env_flag("BOOKING_REQUIRES_ACTIVE_CONTRACT", "true")


BOOKING_REQUIRES_ACTIVE_CONTRACT = get_booking_requires_active_contract()


def get_system_actor_id() -> str:
    """Actor recorded on history rows written by scheduled jobs."""
    return os.getenv("SYSTEM_ACTOR_ID", "system").strip() or "system"


SYSTEM_ACTOR_ID = get_system_actor_id()


# ===========================
# Expiry Job Configuration
# ===========================


def get_expiry_job_enabled() -> bool:
    """
    Whether the background contract expiry sweep is scheduled.

    Environment Variables:
        CONTRACT_EXPIRY_JOB_ENABLED: Default 'false'
    """
    return _env_flag("CONTRACT_EXPIRY_JOB_ENABLED", "false")


def get_expiry_job_hour() -> int:
    """Hour of day (0-23, in APP_TZ) at which the expiry sweep runs."""
    raw = os.getenv("CONTRACT_EXPIRY_JOB_HOUR", "2")
    try:
        hour = int(raw)
    except (TypeError, ValueError):
        hour = -1
    if not 0 <= hour <= 23:
        logger.warning(
            "Invalid CONTRACT_EXPIRY_JOB_HOUR, using 2",
            extra={"context": {"value": raw}},
        )
        return 2
    return hour


CONTRACT_EXPIRY_JOB_ENABLED = get_expiry_job_enabled()
CONTRACT_EXPIRY_JOB_HOUR = get_expiry_job_hour()


# ===========================
# Slow Query Alerts
# ===========================


def get_slow_query_alerts_enabled() -> bool:
    """Environment Variables: ALERT_SLOW_QUERY_ENABLED, default 'true'."""
    return _env_flag("ALERT_SLOW_QUERY_ENABLED", "true")


def get_slow_query_threshold_ms() -> int:
    try:
        return int(os.getenv("ALERT_QUERY_MS_THRESHOLD", "100"))
    except (TypeError, ValueError):
        return 100


def log_core_config():
    """
    Log the active configuration.

    Should be called during application startup to provide visibility
    into the settings in effect.
    """
    logger.info(
        "Core configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "contract_expiry_warning_days": CONTRACT_EXPIRY_WARNING_DAYS,
                "booking_requires_active_contract": BOOKING_REQUIRES_ACTIVE_CONTRACT,
                "expiry_job_enabled": CONTRACT_EXPIRY_JOB_ENABLED,
                "expiry_job_hour": CONTRACT_EXPIRY_JOB_HOUR,
            }
        },
    )
