"""
Unit tests for derived booking and contract statuses.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gymcore.domain.entities import (
    BookingStatus,
    ContractAdvisoryStatus,
    ContractState,
    EffectiveStatus,
)
from gymcore.domain.intervals import Interval
from gymcore.domain.status import derive_contract_status, derive_status
from tests.factories.repository_factories import at

SESSION = Interval(at(10), at(11))


@pytest.mark.domain
class TestDeriveStatus:
    @pytest.mark.parametrize(
        "now,expected",
        [
            (at(9, 59), EffectiveStatus.SCHEDULED),
            (at(10), EffectiveStatus.IN_PROGRESS),
            (at(10, 59), EffectiveStatus.IN_PROGRESS),
            (at(11), EffectiveStatus.COMPLETED),
            (at(18), EffectiveStatus.COMPLETED),
        ],
    )
    def test_scheduled_booking_follows_the_clock(self, now, expected):
        assert derive_status(BookingStatus.SCHEDULED, SESSION, now) is expected

    @pytest.mark.parametrize("now", [at(9), at(10, 30), at(12)])
    def test_cancelled_always_wins(self, now):
        assert derive_status(BookingStatus.CANCELLED, SESSION, now) is EffectiveStatus.CANCELLED

    def test_completed_before_start_stays_completed(self):
        """A stored terminal value is never reinterpreted by time."""
        assert derive_status(BookingStatus.COMPLETED, SESSION, at(9)) is EffectiveStatus.COMPLETED

    def test_is_idempotent_and_does_not_mutate(self):
        stored = BookingStatus.SCHEDULED
        first = derive_status(stored, SESSION, at(10, 15))
        second = derive_status(stored, SESSION, at(10, 15))
        assert first is second is EffectiveStatus.IN_PROGRESS
        assert stored is BookingStatus.SCHEDULED

    def test_accepts_plain_string_status(self):
        assert derive_status("scheduled", SESSION, at(9)) is EffectiveStatus.SCHEDULED


@pytest.mark.domain
@pytest.mark.contracts
class TestDeriveContractStatus:
    PERIOD = Interval(at(0), at(0, day_offset=30))

    def test_active_far_from_end(self):
        status = derive_contract_status(ContractState.ACTIVE, self.PERIOD, at(0, day_offset=1), 7)
        assert status is ContractAdvisoryStatus.ACTIVE

    def test_active_inside_warning_window_is_pending_expiry(self):
        now = self.PERIOD.end - timedelta(days=7)
        status = derive_contract_status(ContractState.ACTIVE, self.PERIOD, now, 7)
        assert status is ContractAdvisoryStatus.PENDING_EXPIRY

    def test_active_just_outside_warning_window(self):
        now = self.PERIOD.end - timedelta(days=7, seconds=1)
        status = derive_contract_status(ContractState.ACTIVE, self.PERIOD, now, 7)
        assert status is ContractAdvisoryStatus.ACTIVE

    def test_active_past_end_reads_expired(self):
        status = derive_contract_status(ContractState.ACTIVE, self.PERIOD, self.PERIOD.end, 7)
        assert status is ContractAdvisoryStatus.EXPIRED

    @pytest.mark.parametrize(
        "state", [ContractState.FROZEN, ContractState.EXPIRED, ContractState.CANCELLED]
    )
    def test_non_active_states_map_to_themselves(self, state):
        now = self.PERIOD.end - timedelta(days=1)
        assert derive_contract_status(state, self.PERIOD, now, 7).value == state.value

    def test_zero_warning_days_disables_window(self):
        now = self.PERIOD.end - timedelta(hours=1)
        status = derive_contract_status(ContractState.ACTIVE, self.PERIOD, now, 0)
        assert status is ContractAdvisoryStatus.ACTIVE


@pytest.mark.domain
class TestDeriveStatusCalendarExample:
    def test_session_reads_in_progress_then_completed(self):
        session = Interval(
            datetime(2024, 1, 1, 10, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 11, tzinfo=timezone.utc),
        )
        during = datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)
        next_day = datetime(2024, 1, 2, tzinfo=timezone.utc)

        assert derive_status(BookingStatus.SCHEDULED, session, during) is EffectiveStatus.IN_PROGRESS
        assert derive_status(BookingStatus.SCHEDULED, session, next_day) is EffectiveStatus.COMPLETED

    def test_never_moves_backward_as_time_advances(self):
        order = [EffectiveStatus.SCHEDULED, EffectiveStatus.IN_PROGRESS, EffectiveStatus.COMPLETED]
        instants = [SESSION.start + timedelta(minutes=m) for m in range(-30, 90, 5)]
        ranks = [order.index(derive_status(BookingStatus.SCHEDULED, SESSION, t)) for t in instants]
        assert ranks == sorted(ranks)
