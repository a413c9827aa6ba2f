"""
Unit tests for the contract lifecycle machine and history folding.
"""

import pytest

from gymcore.core.exceptions import GuardFailed, InvalidTransition, LifecycleError
from gymcore.domain.contract_lifecycle import (
    ContractLifecycleMachine,
    GuardContext,
    fold_history,
)
from gymcore.domain.entities import ContractState, LifecycleEvent, LifecycleHistoryRecord
from gymcore.domain.intervals import Interval
from tests.factories.repository_factories import at

ACTIVE = ContractState.ACTIVE
FROZEN = ContractState.FROZEN
EXPIRED = ContractState.EXPIRED
CANCELLED = ContractState.CANCELLED


@pytest.fixture
def machine():
    return ContractLifecycleMachine()


@pytest.mark.domain
@pytest.mark.contracts
class TestLegalTransitions:
    @pytest.mark.parametrize(
        "current,event,guard,expected",
        [
            (None, LifecycleEvent.ACTIVATE, None, ACTIVE),
            (ACTIVE, LifecycleEvent.FREEZE, GuardContext(reason="medical leave"), FROZEN),
            (FROZEN, LifecycleEvent.UNFREEZE, None, ACTIVE),
            (ACTIVE, LifecycleEvent.CANCEL, None, CANCELLED),
            (FROZEN, LifecycleEvent.CANCEL, None, CANCELLED),
            (ACTIVE, LifecycleEvent.RENEW, None, EXPIRED),
        ],
    )
    def test_edges(self, machine, current, event, guard, expected):
        assert machine.attempt_transition(current, event, guard) is expected

    @pytest.mark.parametrize("current", [ACTIVE, FROZEN])
    def test_expire_after_end(self, machine, current):
        period = Interval(at(0, day_offset=-30), at(0))
        guard = GuardContext(now=at(0), interval=period)
        assert machine.attempt_transition(current, LifecycleEvent.EXPIRE, guard) is EXPIRED

    def test_accepts_string_values(self, machine):
        assert machine.attempt_transition("frozen", "unfreeze") is ACTIVE


@pytest.mark.domain
@pytest.mark.contracts
class TestRejectedTransitions:
    @pytest.mark.parametrize("terminal", [EXPIRED, CANCELLED])
    @pytest.mark.parametrize("event", list(LifecycleEvent))
    def test_terminal_states_have_no_outgoing_edges(self, machine, terminal, event):
        with pytest.raises(InvalidTransition):
            machine.attempt_transition(terminal, event, GuardContext(reason="x"))

    def test_freeze_cancelled_without_reason_is_invalid_not_guard(self, machine):
        """An illegal edge is reported before its guard is looked at."""
        with pytest.raises(InvalidTransition) as exc_info:
            machine.attempt_transition(CANCELLED, LifecycleEvent.FREEZE, GuardContext(reason=""))
        assert exc_info.value.context == {"from_state": "cancelled", "event": "freeze"}

    @pytest.mark.parametrize(
        "current,event",
        [
            (FROZEN, LifecycleEvent.FREEZE),
            (ACTIVE, LifecycleEvent.UNFREEZE),
            (FROZEN, LifecycleEvent.RENEW),
            (ACTIVE, LifecycleEvent.ACTIVATE),
            (None, LifecycleEvent.CANCEL),
        ],
    )
    def test_missing_edges(self, machine, current, event):
        with pytest.raises(InvalidTransition):
            machine.attempt_transition(current, event, GuardContext(reason="x"))

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_freeze_requires_reason(self, machine, reason):
        with pytest.raises(GuardFailed) as exc_info:
            machine.attempt_transition(ACTIVE, LifecycleEvent.FREEZE, GuardContext(reason=reason))
        assert exc_info.value.guard == "reason"
        assert exc_info.value.kind == "guard_failed"

    def test_expire_before_end_fails_guard(self, machine):
        period = Interval(at(0), at(0, day_offset=30))
        with pytest.raises(GuardFailed) as exc_info:
            machine.attempt_transition(
                ACTIVE, LifecycleEvent.EXPIRE, GuardContext(now=at(12), interval=period)
            )
        assert exc_info.value.guard == "interval_end"

    def test_expire_without_clock_fails_guard(self, machine):
        with pytest.raises(GuardFailed):
            machine.attempt_transition(ACTIVE, LifecycleEvent.EXPIRE, GuardContext())

    def test_errors_share_lifecycle_base(self, machine):
        with pytest.raises(LifecycleError):
            machine.attempt_transition(EXPIRED, LifecycleEvent.CANCEL)


@pytest.mark.domain
@pytest.mark.contracts
class TestMachineIntrospection:
    def test_allowed_events_from_active(self, machine):
        assert machine.allowed_events(ACTIVE) == {
            LifecycleEvent.FREEZE,
            LifecycleEvent.CANCEL,
            LifecycleEvent.RENEW,
            LifecycleEvent.EXPIRE,
        }

    def test_terminal_states(self, machine):
        assert machine.is_terminal(EXPIRED)
        assert machine.is_terminal(CANCELLED)
        assert not machine.is_terminal(FROZEN)


def _record(id, from_state, to_state, hour):
    return LifecycleHistoryRecord(
        id=id, contract_id=5, from_state=from_state, to_state=to_state, changed_at=at(hour)
    )


@pytest.mark.domain
@pytest.mark.contracts
class TestFoldHistory:
    def test_fold_rebuilds_current_state(self):
        records = [
            _record(3, FROZEN, ACTIVE, 12),
            _record(1, None, ACTIVE, 9),
            _record(2, ACTIVE, FROZEN, 10),
        ]
        assert fold_history(records) is ACTIVE

    def test_same_instant_records_ordered_by_id(self):
        records = [_record(2, ACTIVE, CANCELLED, 9), _record(1, None, ACTIVE, 9)]
        assert fold_history(records) is CANCELLED

    def test_empty_history_has_no_state(self):
        assert fold_history([]) is None

    def test_broken_chain_is_detected(self):
        records = [_record(1, None, ACTIVE, 9), _record(2, FROZEN, ACTIVE, 10)]
        with pytest.raises(ValueError):
            fold_history(records)
