from datetime import datetime

from sqlalchemy import select

from gymcore.db.base import Client as DbClient
from gymcore.db.base import Contract as DbContract
from gymcore.db.base import Trainer as DbTrainer
from gymcore.domain.entities import ContractState
from gymcore.domain.interfaces import IResourceExistenceChecker, ResourceState
from gymcore.domain.intervals import as_utc


class SqlResourceExistenceChecker(IResourceExistenceChecker):
    """Existence/active checks for trainers and clients in the current session."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def trainer_state(self, trainer_id: int) -> ResourceState:
        return self._state(self.db.get(DbTrainer, trainer_id))

    def client_state(self, client_id: int) -> ResourceState:
        return self._state(self.db.get(DbClient, client_id))

    def client_has_active_contract(self, client_id: int, at: datetime) -> bool:
        stmt = (
            select(DbContract.id)
            .where(
                DbContract.client_id == client_id,
                DbContract.state == ContractState.ACTIVE.value,
                DbContract.end_at > as_utc(at),
            )
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    @staticmethod
    def _state(row) -> ResourceState:
        if row is None:
            return ResourceState.MISSING
        return ResourceState.ACTIVE if row.is_active else ResourceState.INACTIVE
