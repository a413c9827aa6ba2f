"""
Booking conflict detection.

A proposal conflicts with every non-cancelled booking that shares its
trainer or its client and whose interval overlaps the proposed one. The
whole conflict set is returned; any non-empty result is a hard rejection.
"""

from typing import Iterable, List, Optional

from gymcore.domain.entities import Booking, BookingProposal, BookingStatus
from gymcore.domain.interfaces import IBookingReader
from gymcore.domain.intervals import Interval, overlaps, sort_by_start


def find_conflicts(proposal: BookingProposal, candidates: Iterable[Booking]) -> List[Booking]:
    """Filter ``candidates`` down to the bookings that block ``proposal``.

    Candidates sharing both resource keys are considered once (deduplicated
    by id). The result is ordered by start time.
    """
    seen = set()
    conflicts = []
    for booking in candidates:
        key = booking.id if booking.id is not None else id(booking)
        if key in seen:
            continue
        seen.add(key)

        if booking.status is BookingStatus.CANCELLED:
            continue
        if proposal.exclude_booking_id is not None and booking.id == proposal.exclude_booking_id:
            continue
        if booking.trainer_id != proposal.trainer_id and booking.client_id != proposal.client_id:
            continue
        if overlaps(booking.interval, proposal.interval):
            conflicts.append(booking)
    return sort_by_start(conflicts)


class ConflictDetector:
    """Reads candidate bookings and applies the overlap rule."""

    def __init__(self, booking_reader: IBookingReader):
        self.booking_reader = booking_reader

    def find_conflicts(self, proposal: BookingProposal) -> List[Booking]:
        candidates = self.booking_reader.find_by_resource_overlap(
            proposal.interval,
            trainer_id=proposal.trainer_id,
            client_id=proposal.client_id,
            exclude_booking_id=proposal.exclude_booking_id,
        )
        return find_conflicts(proposal, candidates)

    def find_overlapping(
        self,
        interval: Interval,
        trainer_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ) -> List[Booking]:
        """Non-cancelled bookings overlapping ``interval`` on either resource.

        With neither resource given, every booking is a candidate.
        """
        candidates = self.booking_reader.find_by_resource_overlap(
            interval, trainer_id=trainer_id, client_id=client_id
        )
        seen = set()
        overlapping = []
        for booking in candidates:
            if booking.id in seen or booking.status is BookingStatus.CANCELLED:
                continue
            seen.add(booking.id)
            if trainer_id is not None or client_id is not None:
                if booking.trainer_id != trainer_id and booking.client_id != client_id:
                    continue
            if overlaps(booking.interval, interval):
                overlapping.append(booking)
        return sort_by_start(overlapping)
