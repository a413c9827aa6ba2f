"""
Unit tests for the contract expiry sweep and its scheduled job.
"""

from unittest.mock import Mock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from gymcore.core.exceptions import InvalidTransition, PersistenceError
from gymcore.domain.entities import ContractState, LifecycleEvent
from gymcore.services.contract_expiry import (
    EXPIRY_JOB_ID,
    create_scheduler,
    expire_lapsed_contracts,
    register_expiry_job,
    run_expiry_job,
)
from gymcore.services.contract_service import ContractService
from tests.factories.repository_factories import BASE_TIME


def mock_service(lapsed, expire_side_effect=None):
    service = Mock(spec=ContractService)
    service.clock = lambda: BASE_TIME
    service.find_lapsed.return_value = list(lapsed)
    service.expire.side_effect = expire_side_effect
    return service


@pytest.mark.contracts
class TestExpireLapsedContracts:
    def test_expires_every_lapsed_contract(self):
        service = mock_service([1, 2])

        result = expire_lapsed_contracts(service, actor="system")

        assert result.expired == [1, 2]
        assert result.to_dict() == {"expired": 2, "skipped": 0, "failed": 0}
        service.find_lapsed.assert_called_once_with(BASE_TIME)
        service.expire.assert_any_call(1, "system", BASE_TIME)

    def test_contract_changed_since_query_is_skipped(self):
        def expire(contract_id, actor, now):
            if contract_id == 2:
                raise InvalidTransition(ContractState.CANCELLED, LifecycleEvent.EXPIRE)

        result = expire_lapsed_contracts(mock_service([1, 2, 3], expire))

        assert result.expired == [1, 3]
        assert result.skipped == [2]

    def test_storage_failure_does_not_stop_the_sweep(self):
        def expire(contract_id, actor, now):
            if contract_id == 1:
                raise PersistenceError("database unavailable")

        result = expire_lapsed_contracts(mock_service([1, 2], expire))

        assert result.failed == [1]
        assert result.expired == [2]

    def test_default_actor_is_system(self):
        service = mock_service([4])
        expire_lapsed_contracts(service)
        assert service.expire.call_args.args[1] == "system"

    def test_scheduled_entry_point_swallows_unexpected_errors(self):
        service = mock_service([])
        service.find_lapsed.side_effect = RuntimeError("boom")

        run_expiry_job(service)

        service.find_lapsed.assert_called_once()


@pytest.mark.contracts
class TestExpiryJobRegistration:
    def test_register_adds_daily_cron_job(self):
        scheduler = BackgroundScheduler(timezone="UTC")
        service = mock_service([])

        register_expiry_job(scheduler, service, hour=3)

        job = scheduler.get_job(EXPIRY_JOB_ID)
        assert job is not None
        assert job.func is run_expiry_job
        assert job.args == (service,)
        assert "hour='3'" in str(job.trigger)

    def test_create_scheduler_is_not_started(self):
        scheduler = create_scheduler(mock_service([]))
        assert not scheduler.running
        assert scheduler.get_job(EXPIRY_JOB_ID) is not None
