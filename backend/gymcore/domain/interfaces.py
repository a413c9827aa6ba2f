"""
Abstract interfaces for repositories following Interface Segregation Principle.

These interfaces define contracts without implementation details,
enabling dependency injection and easier testing.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from .entities import (
    Booking,
    Contract,
    ContractState,
    LifecycleHistoryRecord,
    Membership,
)
from .intervals import Interval


class IBookingReader(ABC):
    """Interface for booking read operations."""

    @abstractmethod
    def get_by_id(self, booking_id: int) -> Optional[Booking]:
        """Get booking by ID."""
        pass

    @abstractmethod
    def find_by_resource_overlap(
        self,
        interval: Interval,
        trainer_id: Optional[int] = None,
        client_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        """Non-cancelled bookings for the trainer OR the client near ``interval``.

        Implementations may return a superset; callers re-check overlap.
        With neither key given, every non-cancelled booking is a candidate.
        """
        pass

    @abstractmethod
    def get_upcoming_for_trainer(self, trainer_id: int, now: datetime) -> List[Booking]:
        """Non-cancelled bookings of a trainer starting at or after ``now``."""
        pass

    @abstractmethod
    def get_upcoming_for_client(self, client_id: int, now: datetime) -> List[Booking]:
        """Non-cancelled bookings of a client starting at or after ``now``."""
        pass

    @abstractmethod
    def get_starting_between(self, start: datetime, end: datetime) -> List[Booking]:
        """Non-cancelled bookings starting inside ``[start, end)``."""
        pass


class IBookingWriter(ABC):
    """Interface for booking write operations."""

    @abstractmethod
    def save(self, booking: Booking) -> Booking:
        """Insert or update a booking inside the current transaction."""
        pass


class IBookingRepository(IBookingReader, IBookingWriter):
    """Complete booking repository interface."""

    pass


class IContractReader(ABC):
    """Interface for contract read operations."""

    @abstractmethod
    def get(self, contract_id: int, for_update: bool = False) -> Optional[Contract]:
        """Get contract by ID, optionally locking the row."""
        pass

    @abstractmethod
    def get_history(self, contract_id: int) -> List[LifecycleHistoryRecord]:
        """History records ordered by ``changed_at``."""
        pass

    @abstractmethod
    def find_lapsed(self, now: datetime, states: Iterable[ContractState]) -> List[int]:
        """Ids of contracts in ``states`` whose interval ended at or before ``now``."""
        pass

    @abstractmethod
    def next_code(self) -> str:
        """Next sequential contract code (``C0001``, ``C0002``, ...)."""
        pass


class IContractWriter(ABC):
    """Interface for contract write operations."""

    @abstractmethod
    def save(self, contract: Contract) -> Contract:
        """Insert or update a contract inside the current transaction."""
        pass

    @abstractmethod
    def append_history(self, record: LifecycleHistoryRecord) -> LifecycleHistoryRecord:
        """Append an immutable history record inside the current transaction."""
        pass


class IContractRepository(IContractReader, IContractWriter):
    """Complete contract/history repository interface."""

    pass


class IMembershipReader(ABC):
    """Read-only access to the membership catalog."""

    @abstractmethod
    def get_by_id(self, membership_id: int) -> Optional[Membership]:
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Membership]:
        pass


class ResourceState(str, Enum):
    MISSING = "missing"
    INACTIVE = "inactive"
    ACTIVE = "active"


class IResourceExistenceChecker(ABC):
    """Narrow capability: do trainers and clients exist and are they usable."""

    @abstractmethod
    def trainer_state(self, trainer_id: int) -> ResourceState:
        pass

    @abstractmethod
    def client_state(self, client_id: int) -> ResourceState:
        pass

    @abstractmethod
    def client_has_active_contract(self, client_id: int, at: datetime) -> bool:
        """True if the client holds an active contract that has not ended at ``at``."""
        pass


class IUnitOfWork(ABC):
    """Scoped transaction: commit on success, roll back on any other exit."""

    bookings: IBookingRepository
    contracts: IContractRepository
    memberships: IMembershipReader
    resources: IResourceExistenceChecker

    @abstractmethod
    def __enter__(self) -> "IUnitOfWork":
        pass

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> bool:
        pass

    @abstractmethod
    def lock(self, keys: Iterable[str]) -> None:
        """Serialize on ``keys`` until the transaction ends."""
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass
