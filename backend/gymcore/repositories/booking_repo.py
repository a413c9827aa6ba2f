"""
Booking repository implementation following SOLID principles.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select

from gymcore.db.base import TrainingSession as DbTrainingSession
from gymcore.domain.entities import Booking as DomainBooking
from gymcore.domain.entities import BookingStatus
from gymcore.domain.interfaces import IBookingRepository
from gymcore.domain.intervals import Interval, as_utc


class BookingRepository(IBookingRepository):
    """Repository for training session persistence.

    Never commits: the unit of work owns the transaction.
    """

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, booking_id: int) -> Optional[DomainBooking]:
        db_booking = self.db.get(DbTrainingSession, booking_id)
        return self._to_domain(db_booking) if db_booking else None

    def find_by_resource_overlap(
        self,
        interval: Interval,
        trainer_id: Optional[int] = None,
        client_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> List[DomainBooking]:
        """Non-cancelled bookings sharing a resource and touching ``interval``.

        The time predicate is the half-open overlap pushed down to SQL; the
        conflict detector re-checks it on the domain side.
        """
        stmt = select(DbTrainingSession).where(
            DbTrainingSession.status != BookingStatus.CANCELLED.value,
            DbTrainingSession.start_at < interval.end,
            DbTrainingSession.end_at > interval.start,
        )

        resource_filters = []
        if trainer_id is not None:
            resource_filters.append(DbTrainingSession.trainer_id == trainer_id)
        if client_id is not None:
            resource_filters.append(DbTrainingSession.client_id == client_id)
        if resource_filters:
            stmt = stmt.where(or_(*resource_filters))

        if exclude_booking_id is not None:
            stmt = stmt.where(DbTrainingSession.id != exclude_booking_id)

        stmt = stmt.order_by(DbTrainingSession.start_at, DbTrainingSession.id)
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def get_upcoming_for_trainer(self, trainer_id: int, now: datetime) -> List[DomainBooking]:
        return self._upcoming(DbTrainingSession.trainer_id == trainer_id, now)

    def get_upcoming_for_client(self, client_id: int, now: datetime) -> List[DomainBooking]:
        return self._upcoming(DbTrainingSession.client_id == client_id, now)

    def get_starting_between(self, start: datetime, end: datetime) -> List[DomainBooking]:
        stmt = (
            select(DbTrainingSession)
            .where(
                DbTrainingSession.status != BookingStatus.CANCELLED.value,
                DbTrainingSession.start_at >= as_utc(start),
                DbTrainingSession.start_at < as_utc(end),
            )
            .order_by(DbTrainingSession.start_at, DbTrainingSession.id)
        )
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def save(self, booking: DomainBooking) -> DomainBooking:
        """Insert or update a booking and flush to obtain its id."""
        if booking.id is None:
            db_booking = DbTrainingSession()
            self.db.add(db_booking)
        else:
            db_booking = self.db.get(DbTrainingSession, booking.id)
            if db_booking is None:
                raise ValueError(f"Booking with ID {booking.id} not found")

        db_booking.trainer_id = booking.trainer_id
        db_booking.client_id = booking.client_id
        db_booking.title = booking.title or ""
        db_booking.notes = booking.notes
        db_booking.start_at = booking.interval.start
        db_booking.end_at = booking.interval.end
        db_booking.status = BookingStatus(booking.status).value

        self.db.flush()
        self.db.refresh(db_booking)
        return self._to_domain(db_booking)

    def _upcoming(self, resource_filter, now: datetime) -> List[DomainBooking]:
        stmt = (
            select(DbTrainingSession)
            .where(
                resource_filter,
                DbTrainingSession.status != BookingStatus.CANCELLED.value,
                DbTrainingSession.start_at >= as_utc(now),
            )
            .order_by(DbTrainingSession.start_at, DbTrainingSession.id)
        )
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def _to_domain(self, db_booking: DbTrainingSession) -> DomainBooking:
        """Convert database model to domain entity."""
        return DomainBooking(
            id=db_booking.id,
            trainer_id=db_booking.trainer_id,
            client_id=db_booking.client_id,
            interval=Interval(db_booking.start_at, db_booking.end_at),
            status=BookingStatus(db_booking.status),
            title=db_booking.title or "",
            notes=db_booking.notes,
            created_at=_aware(db_booking.created_at),
            updated_at=_aware(db_booking.updated_at),
        )


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite returns naive datetimes; everything is stored in UTC
    return as_utc(value) if value is not None else None
