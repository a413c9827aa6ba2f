"""
SQLAlchemy unit of work.

One unit of work is one database transaction. Repositories created here
share its session and only flush; the transaction commits when the ``with``
block exits cleanly and rolls back on any exception, so a multi-step
operation (state change plus history record, renewal pair, booking insert
after a conflict check) is all-or-nothing.

Resource locks serialize check-then-write sequences on the same trainer,
client or contract:

- PostgreSQL: ``pg_advisory_xact_lock`` on a stable 63-bit hash of each key,
  released by the server at commit/rollback.
- Other backends: a process-local lock per key, released when the unit of
  work exits.

Keys are always acquired in sorted order so two transactions locking the
same pair can never deadlock each other.
"""

import hashlib
import logging
import threading
from typing import Dict, Iterable, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gymcore.core.exceptions import PersistenceError
from gymcore.db.session import get_sessionmaker
from gymcore.domain.interfaces import IUnitOfWork
from gymcore.repositories.booking_repo import BookingRepository
from gymcore.repositories.contract_repo import ContractRepository
from gymcore.repositories.membership_repo import MembershipRepository
from gymcore.repositories.resource_checker import SqlResourceExistenceChecker

logger = logging.getLogger(__name__)

LOCAL_LOCK_TIMEOUT_SECONDS = 30

_local_locks: Dict[str, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def advisory_key(key: str) -> int:
    """Stable signed-64-bit-safe integer for a lock key."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") & 0x7FFF_FFFF_FFFF_FFFF


def _local_lock_for(key: str) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _local_locks[key] = lock
        return lock


class SqlAlchemyUnitOfWork(IUnitOfWork):
    """Transaction scope exposing the repositories the services need."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_sessionmaker()
        self.session = None
        self._held_keys: List[str] = []
        self._local_held: List[threading.Lock] = []

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self.session_factory()
        self.bookings = BookingRepository(self.session)
        self.contracts = ContractRepository(self.session)
        self.memberships = MembershipRepository(self.session)
        self.resources = SqlResourceExistenceChecker(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._release_local_locks()
            self.session.close()

        if isinstance(exc, SQLAlchemyError):
            logger.error(
                "Transaction failed",
                extra={"context": {"error": str(exc)}},
                exc_info=(exc_type, exc, tb),
            )
            raise PersistenceError("Storage operation failed") from exc
        return False

    def lock(self, keys: Iterable[str]) -> None:
        pending = sorted(set(keys) - set(self._held_keys))
        if not pending:
            return

        if self._dialect_name() == "postgresql":
            try:
                for key in pending:
                    self.session.execute(
                        text("SELECT pg_advisory_xact_lock(:key)"),
                        {"key": advisory_key(key)},
                    )
            except SQLAlchemyError as e:
                raise PersistenceError("Could not acquire resource lock") from e
        else:
            for key in pending:
                lock = _local_lock_for(key)
                if not lock.acquire(timeout=LOCAL_LOCK_TIMEOUT_SECONDS):
                    raise PersistenceError(
                        "Timed out waiting for resource lock", {"key": key}
                    )
                self._local_held.append(lock)

        self._held_keys.extend(pending)
        logger.debug("Resource locks acquired", extra={"context": {"keys": pending}})

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("Could not commit transaction") from e

    def rollback(self) -> None:
        self.session.rollback()

    def _dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    def _release_local_locks(self) -> None:
        while self._local_held:
            self._local_held.pop().release()
        self._held_keys = []
