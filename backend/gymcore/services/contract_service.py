"""
Contract lifecycle service.

Each operation loads the contract under its ``contract:<id>`` lock, asks the
lifecycle machine for the next state, then writes the new state and exactly
one history record (two for a renewal) inside the same unit of work. A
rejected transition raises before anything is written.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from gymcore.core import config
from gymcore.core.exceptions import LifecycleError, NotFoundError, ValidationError
from gymcore.domain.contract_lifecycle import ContractLifecycleMachine, GuardContext
from gymcore.domain.entities import (
    Contract,
    ContractAdvisoryStatus,
    ContractState,
    LifecycleEvent,
    LifecycleHistoryRecord,
    RenewalResult,
    checked_price,
)
from gymcore.domain.interfaces import IUnitOfWork, ResourceState
from gymcore.domain.intervals import Interval, interval_from_duration
from gymcore.domain.status import derive_contract_status

logger = logging.getLogger(__name__)

CONTRACT_CODE_LOCK = "contract-code"
CREATED_REASON = "Contract created"
RENEWAL_CREATED_REASON = "Created by renewal"

# interval, membership id and price of a renewal's successor
SuccessorTerms = Tuple[Interval, int, Decimal]


def _contract_lock(contract_id: int) -> str:
    return f"contract:{contract_id}"


class ContractService:
    """Application service for the contract lifecycle.

    State only ever changes through ``ContractLifecycleMachine``; every
    committed change is paired with a history record so the current state
    can be rebuilt by folding the history.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        machine: Optional[ContractLifecycleMachine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        warning_days: Optional[int] = None,
    ):
        self.uow_factory = uow_factory
        self.machine = machine or ContractLifecycleMachine()
        self.clock = clock or config.utcnow
        self.warning_days = (
            config.CONTRACT_EXPIRY_WARNING_DAYS if warning_days is None else warning_days
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_contract(
        self,
        subject_id: int,
        membership_id: int,
        interval: Interval,
        price: Decimal,
        actor: str,
    ) -> Contract:
        """Create an Active contract and its inception history record."""
        self._require_actor(actor)
        state = self.machine.attempt_transition(None, LifecycleEvent.ACTIVATE)

        with self.uow_factory() as uow:
            self._check_subject(uow, subject_id)
            if uow.memberships.get_by_id(membership_id) is None:
                raise NotFoundError("Membership", membership_id)

            contract = self._insert_contract(
                uow,
                Contract(
                    subject_id=subject_id,
                    membership_id=membership_id,
                    interval=interval,
                    price=price,
                    state=state,
                    created_by=actor,
                    updated_by=actor,
                ),
                actor,
                CREATED_REASON,
            )

        logger.info(
            "Contract created",
            extra={
                "context": {
                    "contract_id": contract.id,
                    "code": contract.code,
                    "subject_id": subject_id,
                    "actor": actor,
                }
            },
        )
        return contract

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def freeze(self, contract_id: int, reason: str, actor: str) -> Contract:
        return self._transition(
            contract_id, LifecycleEvent.FREEZE, actor, reason=(reason or "").strip()
        )

    def unfreeze(self, contract_id: int, actor: str, reason: Optional[str] = None) -> Contract:
        return self._transition(contract_id, LifecycleEvent.UNFREEZE, actor, reason=reason)

    def cancel_contract(
        self, contract_id: int, actor: str, reason: Optional[str] = None
    ) -> Contract:
        return self._transition(contract_id, LifecycleEvent.CANCEL, actor, reason=reason)

    def expire(
        self, contract_id: int, actor: str, now: Optional[datetime] = None
    ) -> Contract:
        """Expire a contract whose interval has ended. No successor is created."""
        return self._transition(
            contract_id,
            LifecycleEvent.EXPIRE,
            actor,
            reason="Contract period ended",
            now=now or self.clock(),
        )

    def renew(
        self,
        contract_id: int,
        new_interval: Interval,
        new_membership_id: int,
        new_price: Decimal,
        actor: str,
    ) -> RenewalResult:
        """Expire an Active contract and create its successor atomically.

        Writes two history records: ``active -> expired`` on the old contract
        and ``None -> active`` on the new one. Either both contracts change
        or neither does.
        """
        self._require_actor(actor)
        new_price = checked_price(new_price)

        def successor_terms(uow: IUnitOfWork) -> SuccessorTerms:
            if uow.memberships.get_by_id(new_membership_id) is None:
                raise NotFoundError("Membership", new_membership_id)
            return new_interval, new_membership_id, new_price

        return self._renew(contract_id, actor, successor_terms)

    def renew_with_membership(
        self,
        contract_id: int,
        membership_code: str,
        start: datetime,
        actor: str,
        price: Optional[Decimal] = None,
    ) -> RenewalResult:
        """Renew using a catalog membership for the new period and price.

        The membership is read inside the renewal's unit of work, so a
        membership deactivated concurrently is never used.
        """
        self._require_actor(actor)
        if not membership_code:
            raise ValidationError("Membership code is required", "membership_code")
        price_override = None if price is None else checked_price(price)

        def successor_terms(uow: IUnitOfWork) -> SuccessorTerms:
            membership = uow.memberships.get_by_code(membership_code)
            if membership is None:
                raise NotFoundError("Membership", membership_code)
            if not membership.is_active:
                raise ValidationError(
                    "Membership is inactive",
                    "membership_code",
                    {"membership_code": membership_code},
                )
            return (
                interval_from_duration(start, membership.validity_days),
                membership.id,
                membership.price if price_override is None else price_override,
            )

        return self._renew(contract_id, actor, successor_terms)

    def _renew(
        self,
        contract_id: int,
        actor: str,
        successor_terms: Callable[[IUnitOfWork], SuccessorTerms],
    ) -> RenewalResult:
        with self.uow_factory() as uow:
            uow.lock([_contract_lock(contract_id)])
            current = self._get_for_update(uow, contract_id)
            expired_state = self._attempt(current, LifecycleEvent.RENEW, GuardContext())
            new_state = self.machine.attempt_transition(None, LifecycleEvent.ACTIVATE)
            new_interval, new_membership_id, new_price = successor_terms(uow)

            expired = self._write_transition(
                uow, current, expired_state, actor, reason="Renewed"
            )
            successor = self._insert_contract(
                uow,
                Contract(
                    subject_id=current.subject_id,
                    membership_id=new_membership_id,
                    interval=new_interval,
                    price=new_price,
                    state=new_state,
                    created_by=actor,
                    updated_by=actor,
                ),
                actor,
                RENEWAL_CREATED_REASON,
            )

        logger.info(
            "Contract renewed",
            extra={
                "context": {
                    "contract_id": contract_id,
                    "new_contract_id": successor.id,
                    "subject_id": successor.subject_id,
                    "actor": actor,
                }
            },
        )
        return RenewalResult(expired_contract=expired, new_contract=successor)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_contract(self, contract_id: int) -> Contract:
        with self.uow_factory() as uow:
            contract = uow.contracts.get(contract_id)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    def get_history(self, contract_id: int) -> List[LifecycleHistoryRecord]:
        with self.uow_factory() as uow:
            if uow.contracts.get(contract_id) is None:
                raise NotFoundError("Contract", contract_id)
            return uow.contracts.get_history(contract_id)

    def find_lapsed(self, now: Optional[datetime] = None) -> List[int]:
        """Ids of Active or Frozen contracts whose interval has ended."""
        with self.uow_factory() as uow:
            return uow.contracts.find_lapsed(
                now or self.clock(), [ContractState.ACTIVE, ContractState.FROZEN]
            )

    def advisory_status(
        self,
        contract: Contract,
        now: Optional[datetime] = None,
        warning_days: Optional[int] = None,
    ) -> ContractAdvisoryStatus:
        return derive_contract_status(
            contract.state,
            contract.interval,
            now or self.clock(),
            self.warning_days if warning_days is None else warning_days,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(
        self,
        contract_id: int,
        event: LifecycleEvent,
        actor: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Contract:
        self._require_actor(actor)

        with self.uow_factory() as uow:
            uow.lock([_contract_lock(contract_id)])
            current = self._get_for_update(uow, contract_id)
            target = self._attempt(
                current,
                event,
                GuardContext(reason=reason, now=now, interval=current.interval),
            )
            contract = self._write_transition(uow, current, target, actor, reason)

        return contract

    def _attempt(
        self, current: Contract, event: LifecycleEvent, guard: GuardContext
    ) -> ContractState:
        try:
            return self.machine.attempt_transition(current.state, event, guard)
        except LifecycleError as e:
            logger.warning(
                "Contract transition rejected",
                extra={
                    "context": {
                        "contract_id": current.id,
                        "kind": e.kind,
                        **e.context,
                    }
                },
            )
            raise

    def _write_transition(
        self,
        uow: IUnitOfWork,
        current: Contract,
        target: ContractState,
        actor: str,
        reason: Optional[str],
    ) -> Contract:
        from_state = current.state
        current.state = target
        current.updated_by = actor
        saved = uow.contracts.save(current)
        uow.contracts.append_history(
            LifecycleHistoryRecord(
                contract_id=saved.id,
                from_state=from_state,
                to_state=target,
                changed_at=self.clock(),
                changed_by=actor,
                reason=reason,
            )
        )
        logger.info(
            "Contract transition committed",
            extra={
                "context": {
                    "contract_id": saved.id,
                    "from_state": from_state.value,
                    "to_state": target.value,
                    "actor": actor,
                }
            },
        )
        return saved

    def _insert_contract(
        self, uow: IUnitOfWork, contract: Contract, actor: str, reason: str
    ) -> Contract:
        uow.lock([CONTRACT_CODE_LOCK])
        contract.code = uow.contracts.next_code()
        saved = uow.contracts.save(contract)
        uow.contracts.append_history(
            LifecycleHistoryRecord(
                contract_id=saved.id,
                from_state=None,
                to_state=saved.state,
                changed_at=self.clock(),
                changed_by=actor,
                reason=reason,
            )
        )
        return saved

    def _get_for_update(self, uow: IUnitOfWork, contract_id: int) -> Contract:
        contract = uow.contracts.get(contract_id, for_update=True)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    def _check_subject(self, uow: IUnitOfWork, subject_id: int) -> None:
        state = uow.resources.client_state(subject_id)
        if state is ResourceState.MISSING:
            raise NotFoundError("Client", subject_id)
        if state is ResourceState.INACTIVE:
            raise ValidationError(
                "Client is inactive", "subject_id", {"subject_id": subject_id}
            )

    @staticmethod
    def _require_actor(actor: str) -> None:
        if not actor or not str(actor).strip():
            raise ValidationError("Actor is required", "actor")
