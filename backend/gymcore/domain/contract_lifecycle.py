"""
Contract lifecycle finite-state machine.

The machine is a pure decision function: given the current state, a
requested event and the guard data, it returns the next state or raises
``InvalidTransition`` / ``GuardFailed``. It performs no I/O; the contract
service pairs every accepted transition with a history record.

Edges::

    (inception) --activate--> active
    active      --freeze-->   frozen     (reason required)
    frozen      --unfreeze--> active
    active      --cancel-->   cancelled
    frozen      --cancel-->   cancelled
    active      --renew-->    expired    (paired with a new active contract)
    active      --expire-->   expired    (contract end reached)
    frozen      --expire-->   expired    (contract end reached)

``expired`` and ``cancelled`` are terminal.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from gymcore.core.exceptions import GuardFailed, InvalidTransition
from gymcore.domain.entities import ContractState, LifecycleEvent, LifecycleHistoryRecord
from gymcore.domain.intervals import Interval, as_utc

TERMINAL_STATES: FrozenSet[ContractState] = frozenset(
    {ContractState.EXPIRED, ContractState.CANCELLED}
)

TRANSITIONS: Dict[Tuple[Optional[ContractState], LifecycleEvent], ContractState] = {
    (None, LifecycleEvent.ACTIVATE): ContractState.ACTIVE,
    (ContractState.ACTIVE, LifecycleEvent.FREEZE): ContractState.FROZEN,
    (ContractState.FROZEN, LifecycleEvent.UNFREEZE): ContractState.ACTIVE,
    (ContractState.ACTIVE, LifecycleEvent.CANCEL): ContractState.CANCELLED,
    (ContractState.FROZEN, LifecycleEvent.CANCEL): ContractState.CANCELLED,
    (ContractState.ACTIVE, LifecycleEvent.RENEW): ContractState.EXPIRED,
    (ContractState.ACTIVE, LifecycleEvent.EXPIRE): ContractState.EXPIRED,
    (ContractState.FROZEN, LifecycleEvent.EXPIRE): ContractState.EXPIRED,
}


@dataclass(frozen=True)
class GuardContext:
    """Data the guards of an edge may need."""

    reason: Optional[str] = None
    now: Optional[datetime] = None
    interval: Optional[Interval] = None


class ContractLifecycleMachine:
    """Legal contract states and guarded transitions."""

    transitions = TRANSITIONS

    def attempt_transition(
        self,
        current: Optional[ContractState],
        event: LifecycleEvent,
        guard: Optional[GuardContext] = None,
    ) -> ContractState:
        """Return the state reached by ``event`` from ``current``.

        Raises:
            InvalidTransition: no such edge (including any edge out of a
                terminal state).
            GuardFailed: the edge exists but its guard is not satisfied.
        """
        current = ContractState(current) if current is not None else None
        event = LifecycleEvent(event)
        guard = guard or GuardContext()

        target = self.transitions.get((current, event))
        if target is None:
            raise InvalidTransition(current, event)

        self._check_guard(current, event, guard)
        return target

    def allowed_events(self, current: Optional[ContractState]) -> FrozenSet[LifecycleEvent]:
        return frozenset(
            event for (state, event) in self.transitions if state == current
        )

    def is_terminal(self, state: ContractState) -> bool:
        return ContractState(state) in TERMINAL_STATES

    def _check_guard(
        self,
        current: Optional[ContractState],
        event: LifecycleEvent,
        guard: GuardContext,
    ) -> None:
        if event is LifecycleEvent.FREEZE:
            if not guard.reason or not guard.reason.strip():
                raise GuardFailed(
                    current, event, "reason", "A reason is required to freeze a contract"
                )
        elif event is LifecycleEvent.EXPIRE:
            if guard.now is None or guard.interval is None:
                raise GuardFailed(
                    current, event, "now", "Expiry needs the current instant and contract interval"
                )
            if as_utc(guard.now) < guard.interval.end:
                raise GuardFailed(
                    current, event, "interval_end", "Contract has not reached its end date"
                )


def fold_history(records: Iterable[LifecycleHistoryRecord]) -> Optional[ContractState]:
    """Rebuild a contract's state from its history records.

    Records are applied in ``changed_at`` order; each must start from the
    state the previous one left, otherwise the chain is broken.
    """
    state: Optional[ContractState] = None
    ordered = sorted(records, key=lambda r: (as_utc(r.changed_at), r.id or 0))
    for record in ordered:
        from_state = ContractState(record.from_state) if record.from_state else None
        if from_state != state:
            raise ValueError(
                f"History record {record.id} starts from {from_state}, expected {state}"
            )
        state = ContractState(record.to_state)
    return state
