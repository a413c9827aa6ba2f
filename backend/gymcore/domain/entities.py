"""
Domain entities - Pure business logic, no framework dependencies.

Following SOLID principles:
- Single Responsibility: Each entity represents one business concept
- Open/Closed: Entities can be extended without modification
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from gymcore.core.exceptions import ValidationError
from gymcore.domain.intervals import Interval


class BookingStatus(str, Enum):
    """Persisted status of a training session."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class EffectiveStatus(str, Enum):
    """Display status of a training session, derived from stored status and time."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ContractState(str, Enum):
    """Persisted contract state. Exactly one at any time."""

    ACTIVE = "active"
    FROZEN = "frozen"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ContractAdvisoryStatus(str, Enum):
    """Display status of a contract; ``PENDING_EXPIRY`` is never persisted."""

    ACTIVE = "active"
    PENDING_EXPIRY = "pending_expiry"
    FROZEN = "frozen"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class LifecycleEvent(str, Enum):
    ACTIVATE = "activate"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    CANCEL = "cancel"
    RENEW = "renew"
    EXPIRE = "expire"


@dataclass(frozen=True)
class ResourceKeys:
    """The two resources a training session occupies."""

    trainer_id: int
    client_id: int

    def lock_keys(self):
        return [f"trainer:{self.trainer_id}", f"client:{self.client_id}"]


@dataclass(frozen=True)
class BookingProposal:
    """A requested slot to be checked against existing bookings."""

    interval: Interval
    trainer_id: int
    client_id: int
    exclude_booking_id: Optional[int] = None

    @property
    def resource_keys(self) -> ResourceKeys:
        return ResourceKeys(self.trainer_id, self.client_id)


@dataclass
class Booking:
    """Domain entity for a scheduled training session."""

    trainer_id: int
    client_id: int
    interval: Interval
    status: BookingStatus = BookingStatus.SCHEDULED
    title: str = ""
    notes: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate business rules."""
        if not self.trainer_id or self.trainer_id <= 0:
            raise ValidationError("Valid trainer_id is required", "trainer_id")
        if not self.client_id or self.client_id <= 0:
            raise ValidationError("Valid client_id is required", "client_id")
        self.status = BookingStatus(self.status)

    @property
    def resource_keys(self) -> ResourceKeys:
        return ResourceKeys(self.trainer_id, self.client_id)


def checked_price(price) -> Decimal:
    """Price as a finite, non-negative ``Decimal``."""
    if price is None:
        raise ValidationError("Price is required", "price")
    try:
        price = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError("price must be a number", "price")
    if not price.is_finite():
        raise ValidationError("price must be a finite number", "price")
    if price < 0:
        raise ValidationError("Price cannot be negative", "price")
    return price


@dataclass
class Contract:
    """Domain entity for a membership contract."""

    subject_id: int
    membership_id: int
    interval: Interval
    price: Decimal
    state: ContractState = ContractState.ACTIVE
    code: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    def __post_init__(self):
        """Validate business rules."""
        if not self.subject_id or self.subject_id <= 0:
            raise ValidationError("Valid subject_id is required", "subject_id")
        if not self.membership_id or self.membership_id <= 0:
            raise ValidationError("Valid membership_id is required", "membership_id")
        self.price = checked_price(self.price)
        self.state = ContractState(self.state)


@dataclass(frozen=True)
class LifecycleHistoryRecord:
    """Immutable audit row; one per committed contract transition."""

    contract_id: int
    to_state: ContractState
    changed_at: datetime
    from_state: Optional[ContractState] = None
    changed_by: Optional[str] = None
    reason: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Membership:
    """Catalog entry used to price and size renewals."""

    code: str
    name: str
    validity_days: int
    price: Decimal
    is_active: bool = True
    id: Optional[int] = None

    def __post_init__(self):
        if not self.code:
            raise ValidationError("Membership code is required", "code")
        if self.validity_days <= 0:
            raise ValidationError("Validity must be positive", "validity_days")
        self.price = Decimal(str(self.price))


@dataclass
class AvailabilityResult:
    available: bool
    conflicts: list = field(default_factory=list)


@dataclass
class RenewalResult:
    expired_contract: Contract
    new_contract: Contract
