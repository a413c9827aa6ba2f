"""
Derived (display) statuses.

Both functions are pure: the current instant is an explicit argument and
stored state is never mutated, so repeated calls with the same inputs
always agree.
"""

from datetime import datetime, timedelta

from gymcore.domain.entities import (
    BookingStatus,
    ContractAdvisoryStatus,
    ContractState,
    EffectiveStatus,
)
from gymcore.domain.intervals import Interval, as_utc


def derive_status(
    stored_status: BookingStatus, interval: Interval, now: datetime
) -> EffectiveStatus:
    """Effective status of a training session at ``now``.

    Terminal stored values (cancelled, completed) always win. Otherwise the
    session is scheduled before its start, in progress inside ``[start, end)``
    and completed from ``end`` onward.
    """
    stored_status = BookingStatus(stored_status)
    if stored_status is BookingStatus.CANCELLED:
        return EffectiveStatus.CANCELLED
    if stored_status is BookingStatus.COMPLETED:
        return EffectiveStatus.COMPLETED

    now = as_utc(now)
    if now < interval.start:
        return EffectiveStatus.SCHEDULED
    if now < interval.end:
        return EffectiveStatus.IN_PROGRESS
    return EffectiveStatus.COMPLETED


def derive_contract_status(
    state: ContractState, interval: Interval, now: datetime, warning_days: int
) -> ContractAdvisoryStatus:
    """Advisory status of a contract at ``now``.

    Only active contracts are reinterpreted: one whose end has passed reads
    as expired (awaiting the expiry sweep) and one ending within
    ``warning_days`` reads as pending expiry.
    """
    state = ContractState(state)
    if state is not ContractState.ACTIVE:
        return ContractAdvisoryStatus(state.value)

    now = as_utc(now)
    if now >= interval.end:
        return ContractAdvisoryStatus.EXPIRED
    if interval.end - now <= timedelta(days=max(warning_days, 0)):
        return ContractAdvisoryStatus.PENDING_EXPIRY
    return ContractAdvisoryStatus.ACTIVE
