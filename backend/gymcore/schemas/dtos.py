"""
Data Transfer Objects (DTOs) and validation schemas.

Following SOLID principles:
- Single Responsibility: Each schema validates one specific data contract
- Open/Closed: Schemas can be extended without modification

Request DTOs are built from decoded JSON with ``from_dict`` and checked
with ``validate()``; response DTOs are built with ``from_domain`` and
rendered with ``to_dict()``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from gymcore.core.config import localize
from gymcore.core.exceptions import ValidationError
from gymcore.domain.entities import (
    Booking,
    BookingProposal,
    Contract,
    LifecycleHistoryRecord,
)
from gymcore.domain.intervals import Interval
from gymcore.domain.status import derive_contract_status, derive_status


def parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime.

    Naive values are interpreted in the application timezone.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return localize(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be an ISO-8601 string", field_name)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return localize(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid datetime", field_name)


def parse_decimal(value: Any, field_name: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", field_name)
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number", field_name)
    if not parsed.is_finite():
        raise ValidationError(f"{field_name} must be a finite number", field_name)
    return parsed


def parse_text(value: Any, field_name: str, required: bool = False) -> Optional[str]:
    """Strip a free-text field; blank values become ``None``."""
    if value is None:
        text = ""
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise ValidationError(f"{field_name} must be a string", field_name)
    if not text:
        if required:
            raise ValidationError(f"{field_name} is required", field_name)
        return None
    return text


def parse_id(value: Any, field_name: str, required: bool = True) -> Optional[int]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required", field_name)
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", field_name)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer", field_name)
    if parsed <= 0:
        raise ValidationError(f"Valid {field_name} is required", field_name)
    return parsed


def _optional_text(data: Dict[str, Any], field_name: str) -> Optional[str]:
    """Text for partial updates: ``None`` when absent, ``""`` clears the field."""
    if data.get(field_name) is None:
        return None
    return parse_text(data[field_name], field_name) or ""


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


@dataclass
class BookingCreateRequest:
    """DTO for training session creation requests."""

    trainer_id: int
    client_id: int
    start: datetime
    end: datetime
    title: str = ""
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingCreateRequest":
        return cls(
            trainer_id=parse_id(data.get("trainer_id"), "trainer_id"),
            client_id=parse_id(data.get("client_id"), "client_id"),
            start=parse_datetime(data.get("start"), "start"),
            end=parse_datetime(data.get("end"), "end"),
            title=parse_text(data.get("title"), "title") or "",
            notes=parse_text(data.get("notes"), "notes"),
        )

    def validate(self) -> None:
        """Validate the request data."""
        if not self.trainer_id or self.trainer_id <= 0:
            raise ValidationError("Valid trainer_id is required", "trainer_id")
        if not self.client_id or self.client_id <= 0:
            raise ValidationError("Valid client_id is required", "client_id")
        if self.start is None:
            raise ValidationError("start is required", "start")
        if self.end is None:
            raise ValidationError("end is required", "end")
        if self.title and len(self.title) > 150:
            raise ValidationError("Title must be at most 150 characters", "title")
        # Raises on end <= start
        Interval(self.start, self.end)

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)

    def to_proposal(self, exclude_booking_id: Optional[int] = None) -> BookingProposal:
        return BookingProposal(
            interval=self.interval,
            trainer_id=self.trainer_id,
            client_id=self.client_id,
            exclude_booking_id=exclude_booking_id,
        )


@dataclass
class BookingUpdateRequest:
    """DTO for training session update requests. ``None`` means unchanged."""

    trainer_id: Optional[int] = None
    client_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    title: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingUpdateRequest":
        return cls(
            trainer_id=parse_id(data.get("trainer_id"), "trainer_id", required=False),
            client_id=parse_id(data.get("client_id"), "client_id", required=False),
            start=parse_datetime(data.get("start"), "start"),
            end=parse_datetime(data.get("end"), "end"),
            title=_optional_text(data, "title"),
            notes=_optional_text(data, "notes"),
        )

    def validate(self) -> None:
        """Validate the request data."""
        if self.trainer_id is not None and self.trainer_id <= 0:
            raise ValidationError("Valid trainer_id is required", "trainer_id")
        if self.client_id is not None and self.client_id <= 0:
            raise ValidationError("Valid client_id is required", "client_id")
        if self.title is not None and len(self.title) > 150:
            raise ValidationError("Title must be at most 150 characters", "title")

    def apply_to(self, booking: Booking) -> Booking:
        """Return a copy of ``booking`` with this request's fields applied."""
        return Booking(
            id=booking.id,
            trainer_id=self.trainer_id or booking.trainer_id,
            client_id=self.client_id or booking.client_id,
            interval=Interval(
                self.start or booking.interval.start,
                self.end or booking.interval.end,
            ),
            status=booking.status,
            title=self.title if self.title is not None else booking.title,
            notes=self.notes if self.notes is not None else booking.notes,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


@dataclass
class AvailabilityRequest:
    """DTO for read-only availability checks."""

    start: datetime
    end: datetime
    trainer_id: Optional[int] = None
    client_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AvailabilityRequest":
        return cls(
            start=parse_datetime(data.get("start"), "start"),
            end=parse_datetime(data.get("end"), "end"),
            trainer_id=parse_id(data.get("trainer_id"), "trainer_id", required=False),
            client_id=parse_id(data.get("client_id"), "client_id", required=False),
        )

    def validate(self) -> None:
        if self.start is None or self.end is None:
            raise ValidationError("start and end are required", "interval")
        Interval(self.start, self.end)

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)


@dataclass
class BookingResponse:
    """DTO for training session API responses."""

    id: int
    trainer_id: int
    client_id: int
    title: str
    notes: Optional[str]
    start: datetime
    end: datetime
    status: str
    effective_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, booking: Booking, now: datetime) -> "BookingResponse":
        """Create response from domain entity, deriving the status at ``now``."""
        return cls(
            id=booking.id,
            trainer_id=booking.trainer_id,
            client_id=booking.client_id,
            title=booking.title,
            notes=booking.notes,
            start=booking.interval.start,
            end=booking.interval.end,
            status=booking.status.value,
            effective_status=derive_status(booking.status, booking.interval, now).value,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "trainer_id": self.trainer_id,
            "client_id": self.client_id,
            "title": self.title,
            "notes": self.notes,
            "start": _iso(self.start),
            "end": _iso(self.end),
            "status": self.status,
            "effective_status": self.effective_status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


@dataclass
class ContractCreateRequest:
    """DTO for contract creation requests."""

    subject_id: int
    membership_id: int
    start: datetime
    end: datetime
    price: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractCreateRequest":
        return cls(
            subject_id=parse_id(data.get("subject_id"), "subject_id"),
            membership_id=parse_id(data.get("membership_id"), "membership_id"),
            start=parse_datetime(data.get("start"), "start"),
            end=parse_datetime(data.get("end"), "end"),
            price=parse_decimal(data.get("price"), "price"),
        )

    def validate(self) -> None:
        """Validate the request data."""
        if self.start is None or self.end is None:
            raise ValidationError("start and end are required", "interval")
        if self.price is None:
            raise ValidationError("Price is required", "price")
        if self.price < 0:
            raise ValidationError("Price cannot be negative", "price")
        Interval(self.start, self.end)

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)


@dataclass
class FreezeRequest:
    reason: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FreezeRequest":
        return cls(reason=parse_text(data.get("reason"), "reason") or "")


@dataclass
class RenewRequest:
    """DTO for renewals: either an explicit interval/membership/price or a
    membership code (with optional start and price override)."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    membership_id: Optional[int] = None
    price: Optional[Decimal] = None
    membership_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenewRequest":
        return cls(
            start=parse_datetime(data.get("start"), "start"),
            end=parse_datetime(data.get("end"), "end"),
            membership_id=parse_id(data.get("membership_id"), "membership_id", required=False),
            price=parse_decimal(data.get("price"), "price"),
            membership_code=parse_text(data.get("membership_code"), "membership_code"),
        )

    @property
    def by_membership_code(self) -> bool:
        return self.membership_code is not None

    def validate(self) -> None:
        """Validate the request data."""
        if self.price is not None and self.price < 0:
            raise ValidationError("Price cannot be negative", "price")
        if self.by_membership_code:
            if self.start is None:
                raise ValidationError("start is required", "start")
            return
        if self.start is None or self.end is None:
            raise ValidationError("start and end are required", "interval")
        if self.membership_id is None:
            raise ValidationError("membership_id is required", "membership_id")
        if self.price is None:
            raise ValidationError("Price is required", "price")
        Interval(self.start, self.end)

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)


@dataclass
class ContractResponse:
    """DTO for contract API responses."""

    id: int
    code: Optional[str]
    subject_id: int
    membership_id: int
    start: datetime
    end: datetime
    price: Decimal
    state: str
    advisory_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(
        cls, contract: Contract, now: datetime, warning_days: int
    ) -> "ContractResponse":
        return cls(
            id=contract.id,
            code=contract.code,
            subject_id=contract.subject_id,
            membership_id=contract.membership_id,
            start=contract.interval.start,
            end=contract.interval.end,
            price=contract.price,
            state=contract.state.value,
            advisory_status=derive_contract_status(
                contract.state, contract.interval, now, warning_days
            ).value,
            created_at=contract.created_at,
            updated_at=contract.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "subject_id": self.subject_id,
            "membership_id": self.membership_id,
            "start": _iso(self.start),
            "end": _iso(self.end),
            "price": str(self.price),
            "state": self.state,
            "advisory_status": self.advisory_status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class HistoryRecordResponse:
    id: Optional[int]
    contract_id: int
    from_state: Optional[str]
    to_state: str
    changed_at: datetime
    changed_by: Optional[str]
    reason: Optional[str]

    @classmethod
    def from_domain(cls, record: LifecycleHistoryRecord) -> "HistoryRecordResponse":
        return cls(
            id=record.id,
            contract_id=record.contract_id,
            from_state=record.from_state.value if record.from_state else None,
            to_state=record.to_state.value,
            changed_at=record.changed_at,
            changed_by=record.changed_by,
            reason=record.reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "contract_id": self.contract_id,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "changed_at": _iso(self.changed_at),
            "changed_by": self.changed_by,
            "reason": self.reason,
        }


@dataclass
class ExpirySweepResult:
    """Outcome counters of one expiry sweep."""

    expired: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expired": len(self.expired),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }
