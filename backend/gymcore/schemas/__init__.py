"""
Schemas package - Data Transfer Objects and validation.

This package contains DTOs that define the API contracts
and handle validation following SOLID principles.
"""

from .dtos import (
    AvailabilityRequest,
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    ContractCreateRequest,
    ContractResponse,
    ExpirySweepResult,
    FreezeRequest,
    HistoryRecordResponse,
    RenewRequest,
    parse_datetime,
)

__all__ = [
    # Scheduling DTOs
    "BookingCreateRequest",
    "BookingUpdateRequest",
    "AvailabilityRequest",
    "BookingResponse",
    # Contract DTOs
    "ContractCreateRequest",
    "FreezeRequest",
    "RenewRequest",
    "ContractResponse",
    "HistoryRecordResponse",
    "ExpirySweepResult",
    # Parsing helpers
    "parse_datetime",
]
