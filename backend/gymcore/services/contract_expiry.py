"""
Time-driven contract expiry.

The sweep finds Active/Frozen contracts whose interval has ended and expires
each one through ``ContractService.expire`` in its own unit of work, so one
failing contract never rolls back the others. It runs as a daily APScheduler
cron job when ``CONTRACT_EXPIRY_JOB_ENABLED`` is set.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from gymcore.core import config
from gymcore.core.exceptions import GymCoreError, LifecycleError
from gymcore.core.logging_config import log_performance
from gymcore.schemas.dtos import ExpirySweepResult
from gymcore.services.contract_service import ContractService

logger = logging.getLogger(__name__)

EXPIRY_JOB_ID = "contract_expiry"


def expire_lapsed_contracts(
    service: ContractService,
    now: Optional[datetime] = None,
    actor: Optional[str] = None,
) -> ExpirySweepResult:
    """Expire every lapsed contract, one transaction per contract."""
    now = now or service.clock()
    actor = actor or config.SYSTEM_ACTOR_ID
    result = ExpirySweepResult()
    started = time.perf_counter()

    for contract_id in service.find_lapsed(now):
        try:
            service.expire(contract_id, actor, now)
            result.expired.append(contract_id)
        except LifecycleError as e:
            # State moved on since the lapsed query (cancelled, already expired)
            result.skipped.append(contract_id)
            logger.info(
                "Contract skipped by expiry sweep",
                extra={"context": {"contract_id": contract_id, "kind": e.kind}},
            )
        except GymCoreError as e:
            result.failed.append(contract_id)
            logger.error(
                "Contract expiry failed",
                extra={"context": {"contract_id": contract_id, **e.to_dict()}},
                exc_info=True,
            )

    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "Contract expiry sweep completed",
        extra={"context": {"now": now.isoformat(), "actor": actor, **result.to_dict()}},
    )
    log_performance("expire_lapsed_contracts", duration_ms, **result.to_dict())
    return result


def run_expiry_job(service: ContractService) -> None:
    """Scheduled entry point; never lets an exception escape into APScheduler."""
    execution_time = datetime.now(config.APP_TZ).isoformat()
    logger.info(
        "Running scheduled contract expiry",
        extra={
            "context": {
                "job": EXPIRY_JOB_ID,
                "execution_time": execution_time,
                "timezone": str(config.APP_TZ),
            }
        },
    )
    try:
        expire_lapsed_contracts(service)
    except Exception as e:
        logger.error(
            "Error in scheduled contract expiry",
            extra={"context": {"job": EXPIRY_JOB_ID, "status": "error", "error": str(e)}},
            exc_info=True,
        )


def register_expiry_job(
    scheduler: BackgroundScheduler, service: ContractService, hour: Optional[int] = None
) -> None:
    hour = config.CONTRACT_EXPIRY_JOB_HOUR if hour is None else hour
    scheduler.add_job(
        run_expiry_job,
        trigger=CronTrigger(hour=hour, minute=0, timezone=config.APP_TZ),
        args=[service],
        id=EXPIRY_JOB_ID,
        name="Expire lapsed contracts",
        replace_existing=True,
    )
    logger.info(
        "Contract expiry job registered",
        extra={"context": {"job_id": EXPIRY_JOB_ID, "schedule": f"daily at {hour:02d}:00"}},
    )


def create_scheduler(service: ContractService) -> BackgroundScheduler:
    """Background scheduler with the expiry job registered (not started)."""
    scheduler = BackgroundScheduler(timezone=config.APP_TZ)
    register_expiry_job(scheduler, service)
    return scheduler
