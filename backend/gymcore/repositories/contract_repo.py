"""
Contract and contract-history repository implementation.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select

from gymcore.db.base import Contract as DbContract
from gymcore.db.base import ContractHistory as DbContractHistory
from gymcore.domain.entities import Contract as DomainContract
from gymcore.domain.entities import ContractState, LifecycleHistoryRecord
from gymcore.domain.interfaces import IContractRepository
from gymcore.domain.intervals import Interval, as_utc

CODE_PATTERN = re.compile(r"^C(\d+)$")


class ContractRepository(IContractRepository):
    """Repository for contracts and their append-only history.

    Never commits: the unit of work owns the transaction.
    """

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get(self, contract_id: int, for_update: bool = False) -> Optional[DomainContract]:
        stmt = select(DbContract).where(DbContract.id == contract_id)
        if for_update and self._supports_row_locks():
            stmt = stmt.with_for_update()
        db_contract = self.db.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_contract) if db_contract else None

    def get_history(self, contract_id: int) -> List[LifecycleHistoryRecord]:
        stmt = (
            select(DbContractHistory)
            .where(DbContractHistory.contract_id == contract_id)
            .order_by(DbContractHistory.changed_at, DbContractHistory.id)
        )
        return [self._history_to_domain(row) for row in self.db.execute(stmt).scalars()]

    def find_lapsed(self, now: datetime, states: Iterable[ContractState]) -> List[int]:
        stmt = (
            select(DbContract.id)
            .where(
                DbContract.state.in_([ContractState(s).value for s in states]),
                DbContract.end_at <= as_utc(now),
            )
            .order_by(DbContract.end_at, DbContract.id)
        )
        return list(self.db.execute(stmt).scalars())

    def next_code(self) -> str:
        """Next ``C####`` code, one past the code of the newest contract."""
        last_code = self.db.execute(
            select(DbContract.code).order_by(DbContract.id.desc()).limit(1)
        ).scalar_one_or_none()
        match = CODE_PATTERN.match(last_code or "")
        number = int(match.group(1)) + 1 if match else 1
        return f"C{number:04d}"

    def save(self, contract: DomainContract) -> DomainContract:
        """Insert or update a contract and flush to obtain its id."""
        if contract.id is None:
            db_contract = DbContract()
            db_contract.code = contract.code or self.next_code()
            db_contract.created_by = contract.created_by
            self.db.add(db_contract)
        else:
            db_contract = self.db.get(DbContract, contract.id)
            if db_contract is None:
                raise ValueError(f"Contract with ID {contract.id} not found")

        db_contract.client_id = contract.subject_id
        db_contract.membership_id = contract.membership_id
        db_contract.start_at = contract.interval.start
        db_contract.end_at = contract.interval.end
        db_contract.price = contract.price
        db_contract.state = ContractState(contract.state).value
        db_contract.updated_by = contract.updated_by

        self.db.flush()
        self.db.refresh(db_contract)
        return self._to_domain(db_contract)

    def append_history(self, record: LifecycleHistoryRecord) -> LifecycleHistoryRecord:
        db_record = DbContractHistory(
            contract_id=record.contract_id,
            from_state=record.from_state.value if record.from_state else None,
            to_state=ContractState(record.to_state).value,
            changed_at=as_utc(record.changed_at),
            changed_by=record.changed_by,
            reason=record.reason,
        )
        self.db.add(db_record)
        self.db.flush()
        return self._history_to_domain(db_record)

    def _supports_row_locks(self) -> bool:
        bind = self.db.get_bind()
        return bind.dialect.name != "sqlite"

    def _to_domain(self, db_contract: DbContract) -> DomainContract:
        """Convert database model to domain entity."""
        return DomainContract(
            id=db_contract.id,
            code=db_contract.code,
            subject_id=db_contract.client_id,
            membership_id=db_contract.membership_id,
            interval=Interval(db_contract.start_at, db_contract.end_at),
            price=db_contract.price,
            state=ContractState(db_contract.state),
            created_at=_aware(db_contract.created_at),
            updated_at=_aware(db_contract.updated_at),
            created_by=db_contract.created_by,
            updated_by=db_contract.updated_by,
        )

    def _history_to_domain(self, db_record: DbContractHistory) -> LifecycleHistoryRecord:
        return LifecycleHistoryRecord(
            id=db_record.id,
            contract_id=db_record.contract_id,
            from_state=ContractState(db_record.from_state) if db_record.from_state else None,
            to_state=ContractState(db_record.to_state),
            changed_at=as_utc(db_record.changed_at),
            changed_by=db_record.changed_by,
            reason=db_record.reason,
        )


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None
