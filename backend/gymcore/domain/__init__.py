"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain entities and status enums
- intervals.py: Half-open interval math
- status.py: Derived booking/contract statuses
- contract_lifecycle.py: Contract finite-state machine
- interfaces.py: Repository, unit-of-work and capability contracts
"""

from .contract_lifecycle import ContractLifecycleMachine, GuardContext, fold_history
from .entities import (
    AvailabilityResult,
    Booking,
    BookingProposal,
    BookingStatus,
    Contract,
    ContractAdvisoryStatus,
    ContractState,
    EffectiveStatus,
    LifecycleEvent,
    LifecycleHistoryRecord,
    Membership,
    RenewalResult,
    ResourceKeys,
)
from .interfaces import (
    IBookingReader,
    IBookingRepository,
    IBookingWriter,
    IContractReader,
    IContractRepository,
    IContractWriter,
    IMembershipReader,
    IResourceExistenceChecker,
    IUnitOfWork,
    ResourceState,
)
from .intervals import Interval, overlaps
from .status import derive_contract_status, derive_status

__all__ = [
    # Domain entities
    "Booking",
    "Contract",
    "LifecycleHistoryRecord",
    "Membership",
    "Interval",
    "BookingProposal",
    "ResourceKeys",
    "AvailabilityResult",
    "RenewalResult",
    # Statuses and events
    "BookingStatus",
    "EffectiveStatus",
    "ContractState",
    "ContractAdvisoryStatus",
    "LifecycleEvent",
    # Pure logic
    "overlaps",
    "derive_status",
    "derive_contract_status",
    "ContractLifecycleMachine",
    "GuardContext",
    "fold_history",
    # Repository interfaces
    "IBookingRepository",
    "IContractRepository",
    "IUnitOfWork",
    # Segregated interfaces
    "IBookingReader",
    "IBookingWriter",
    "IContractReader",
    "IContractWriter",
    "IMembershipReader",
    "IResourceExistenceChecker",
    "ResourceState",
]
