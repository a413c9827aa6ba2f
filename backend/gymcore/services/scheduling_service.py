"""
Scheduling service following SOLID principles.

Every write runs inside one unit of work: the trainer and client locks are
taken before the conflict read and held through commit, so two concurrent
requests for the same resource can never both pass the conflict check.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from gymcore.core import config
from gymcore.core.exceptions import NotFoundError, SchedulingConflict, ValidationError
from gymcore.domain.entities import (
    AvailabilityResult,
    Booking,
    BookingProposal,
    BookingStatus,
    EffectiveStatus,
)
from gymcore.domain.interfaces import IUnitOfWork, ResourceState
from gymcore.domain.intervals import Interval
from gymcore.domain.status import derive_status
from gymcore.schemas.dtos import BookingCreateRequest, BookingUpdateRequest
from gymcore.services.conflict_detector import ConflictDetector

logger = logging.getLogger(__name__)


def _booking_lock(booking_id: int) -> str:
    return f"booking:{booking_id}"


class SchedulingService:
    """Application service for training session bookings.

    This service demonstrates:
    - Single Responsibility: Handles only booking business logic
    - Dependency Inversion: Depends on a unit-of-work factory, not a session
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        clock: Optional[Callable[[], datetime]] = None,
        require_active_contract: Optional[bool] = None,
    ):
        self.uow_factory = uow_factory
        self.clock = clock or config.utcnow
        self.require_active_contract = (
            config.BOOKING_REQUIRES_ACTIVE_CONTRACT
            if require_active_contract is None
            else require_active_contract
        )

    def create_booking(self, request: BookingCreateRequest) -> Booking:
        """Create a new training session.

        Business Rules:
        - Interval end must be strictly after its start
        - Trainer and client must exist and be active
        - Client must hold an active contract (when configured)
        - No overlap with any non-cancelled booking of the trainer or client
        """
        request.validate()
        proposal = request.to_proposal()

        with self.uow_factory() as uow:
            uow.lock(proposal.resource_keys.lock_keys())
            self._check_trainer(uow, request.trainer_id)
            self._check_client(uow, request.client_id)
            self._reject_conflicts(uow, proposal)

            booking = uow.bookings.save(
                Booking(
                    trainer_id=request.trainer_id,
                    client_id=request.client_id,
                    interval=proposal.interval,
                    status=BookingStatus.SCHEDULED,
                    title=request.title,
                    notes=request.notes,
                )
            )

        logger.info(
            "Booking created",
            extra={
                "context": {
                    "booking_id": booking.id,
                    "trainer_id": booking.trainer_id,
                    "client_id": booking.client_id,
                    "start": booking.interval.start.isoformat(),
                    "end": booking.interval.end.isoformat(),
                }
            },
        )
        return booking

    def update_booking(self, booking_id: int, request: BookingUpdateRequest) -> Booking:
        """Move or edit a scheduled booking, re-running every creation check.

        The booking never conflicts with itself. Cancelled and completed
        bookings cannot be edited.
        """
        request.validate()

        with self.uow_factory() as uow:
            uow.lock([_booking_lock(booking_id)])
            existing = self._get_existing(uow, booking_id)
            if existing.status.is_terminal:
                raise ValidationError(
                    f"Cannot modify a {existing.status.value} booking",
                    "status",
                    {"booking_id": booking_id},
                )

            updated = request.apply_to(existing)
            uow.lock(existing.resource_keys.lock_keys() + updated.resource_keys.lock_keys())

            if updated.trainer_id != existing.trainer_id:
                self._check_trainer(uow, updated.trainer_id)
            if updated.client_id != existing.client_id:
                self._check_client(uow, updated.client_id)

            self._reject_conflicts(
                uow,
                BookingProposal(
                    interval=updated.interval,
                    trainer_id=updated.trainer_id,
                    client_id=updated.client_id,
                    exclude_booking_id=booking_id,
                ),
            )
            booking = uow.bookings.save(updated)

        logger.info(
            "Booking updated",
            extra={
                "context": {
                    "booking_id": booking.id,
                    "trainer_id": booking.trainer_id,
                    "client_id": booking.client_id,
                    "start": booking.interval.start.isoformat(),
                    "end": booking.interval.end.isoformat(),
                }
            },
        )
        return booking

    def cancel_booking(self, booking_id: int) -> Booking:
        """Cancel a booking. Cancelling an already cancelled booking is a no-op."""
        with self.uow_factory() as uow:
            uow.lock([_booking_lock(booking_id)])
            booking = self._get_existing(uow, booking_id)
            if booking.status is BookingStatus.CANCELLED:
                logger.debug(
                    "Booking already cancelled", extra={"context": {"booking_id": booking_id}}
                )
                return booking

            previous = booking.status
            booking.status = BookingStatus.CANCELLED
            booking = uow.bookings.save(booking)

        logger.info(
            "Booking cancelled",
            extra={"context": {"booking_id": booking_id, "previous_status": previous.value}},
        )
        return booking

    def complete_booking(self, booking_id: int) -> Booking:
        """Mark a scheduled booking completed. Completing twice is a no-op."""
        with self.uow_factory() as uow:
            uow.lock([_booking_lock(booking_id)])
            booking = self._get_existing(uow, booking_id)
            if booking.status is BookingStatus.COMPLETED:
                return booking
            if booking.status is BookingStatus.CANCELLED:
                raise ValidationError(
                    "Cannot complete a cancelled booking",
                    "status",
                    {"booking_id": booking_id},
                )

            booking.status = BookingStatus.COMPLETED
            booking = uow.bookings.save(booking)

        logger.info("Booking completed", extra={"context": {"booking_id": booking_id}})
        return booking

    def effective_status(self, booking: Booking, now: Optional[datetime] = None) -> EffectiveStatus:
        return derive_status(booking.status, booking.interval, now or self.clock())

    def check_availability(
        self,
        interval: Interval,
        trainer_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ) -> AvailabilityResult:
        """Read-only overlap check; nothing is locked or written."""
        with self.uow_factory() as uow:
            conflicts = ConflictDetector(uow.bookings).find_overlapping(
                interval, trainer_id=trainer_id, client_id=client_id
            )
        return AvailabilityResult(available=not conflicts, conflicts=conflicts)

    def get_booking(self, booking_id: int) -> Booking:
        with self.uow_factory() as uow:
            return self._get_existing(uow, booking_id)

    def get_trainer_schedule(
        self, trainer_id: int, now: Optional[datetime] = None
    ) -> List[Booking]:
        """Upcoming non-cancelled bookings of a trainer, ordered by start."""
        with self.uow_factory() as uow:
            return uow.bookings.get_upcoming_for_trainer(trainer_id, now or self.clock())

    def get_client_schedule(
        self, client_id: int, now: Optional[datetime] = None
    ) -> List[Booking]:
        """Upcoming non-cancelled bookings of a client, ordered by start."""
        with self.uow_factory() as uow:
            return uow.bookings.get_upcoming_for_client(client_id, now or self.clock())

    def get_schedule_between(self, start: datetime, end: datetime) -> List[Booking]:
        window = Interval(start, end)
        with self.uow_factory() as uow:
            return uow.bookings.get_starting_between(window.start, window.end)

    def _get_existing(self, uow: IUnitOfWork, booking_id: int) -> Booking:
        booking = uow.bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _check_trainer(self, uow: IUnitOfWork, trainer_id: int) -> None:
        state = uow.resources.trainer_state(trainer_id)
        if state is ResourceState.MISSING:
            raise NotFoundError("Trainer", trainer_id)
        if state is ResourceState.INACTIVE:
            raise ValidationError(
                "Trainer is inactive", "trainer_id", {"trainer_id": trainer_id}
            )

    def _check_client(self, uow: IUnitOfWork, client_id: int) -> None:
        state = uow.resources.client_state(client_id)
        if state is ResourceState.MISSING:
            raise NotFoundError("Client", client_id)
        if state is ResourceState.INACTIVE:
            raise ValidationError("Client is inactive", "client_id", {"client_id": client_id})
        if self.require_active_contract and not uow.resources.client_has_active_contract(
            client_id, self.clock()
        ):
            raise ValidationError(
                "Client has no active contract", "client_id", {"client_id": client_id}
            )

    def _reject_conflicts(self, uow: IUnitOfWork, proposal: BookingProposal) -> None:
        conflicts = ConflictDetector(uow.bookings).find_conflicts(proposal)
        if conflicts:
            logger.warning(
                "Booking rejected: scheduling conflict",
                extra={
                    "context": {
                        "trainer_id": proposal.trainer_id,
                        "client_id": proposal.client_id,
                        "start": proposal.interval.start.isoformat(),
                        "end": proposal.interval.end.isoformat(),
                        "conflict_ids": [b.id for b in conflicts],
                    }
                },
            )
            raise SchedulingConflict(conflicts)
