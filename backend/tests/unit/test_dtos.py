"""
Unit tests for request parsing and response rendering DTOs.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from gymcore.core.exceptions import ValidationError
from gymcore.domain.entities import (
    BookingStatus,
    Contract,
    ContractState,
    LifecycleHistoryRecord,
)
from gymcore.domain.intervals import Interval
from gymcore.schemas.dtos import (
    AvailabilityRequest,
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    ContractCreateRequest,
    ContractResponse,
    HistoryRecordResponse,
    RenewRequest,
    FreezeRequest,
    parse_datetime,
    parse_decimal,
    parse_id,
    parse_text,
)
from tests.factories.repository_factories import at, make_booking, make_contract


class TestParsers:
    def test_parse_datetime_with_z_suffix(self):
        assert parse_datetime("2025-03-10T10:00:00Z", "start") == at(10)

    def test_parse_datetime_with_offset(self):
        assert parse_datetime("2025-03-10T05:00:00-05:00", "start") == at(10)

    def test_parse_naive_datetime_uses_app_timezone(self):
        parsed = parse_datetime("2025-03-10T10:00:00", "start")
        assert parsed.tzinfo == timezone.utc
        assert parsed == at(10)

    def test_parse_datetime_rejects_garbage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_datetime("tomorrow", "start")
        assert exc_info.value.field == "start"

    def test_parse_datetime_empty(self):
        assert parse_datetime("", "start") is None

    @pytest.mark.parametrize("value", ["abc", 0, -3, True])
    def test_parse_id_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_id(value, "trainer_id")

    def test_parse_id_optional(self):
        assert parse_id(None, "trainer_id", required=False) is None
        assert parse_id("7", "trainer_id") == 7

    @pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-Infinity", True])
    def test_parse_decimal_rejects_non_finite(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_decimal(value, "price")
        assert exc_info.value.field == "price"

    def test_parse_decimal_accepts_numbers_and_strings(self):
        assert parse_decimal(100000, "price") == Decimal("100000")
        assert parse_decimal("50000.50", "price") == Decimal("50000.50")

    @pytest.mark.parametrize("value", [123, 1.5, ["a"], {"a": 1}, False])
    def test_parse_text_rejects_non_strings(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_text(value, "title")
        assert exc_info.value.field == "title"

    def test_parse_text_strips_and_blanks_to_none(self):
        assert parse_text("  Strength  ", "title") == "Strength"
        assert parse_text("   ", "title") is None
        assert parse_text(None, "title") is None

    def test_parse_text_required(self):
        with pytest.raises(ValidationError):
            parse_text("", "reason", required=True)


@pytest.mark.scheduling
class TestBookingRequests:
    def test_create_from_dict(self):
        request = BookingCreateRequest.from_dict(
            {
                "trainer_id": 1,
                "client_id": "2",
                "start": "2025-03-10T10:00:00Z",
                "end": "2025-03-10T11:00:00Z",
                "title": "  Mobility  ",
            }
        )
        request.validate()
        assert request.client_id == 2
        assert request.title == "Mobility"
        assert request.to_proposal(exclude_booking_id=3).exclude_booking_id == 3

    def test_create_missing_trainer(self):
        with pytest.raises(ValidationError) as exc_info:
            BookingCreateRequest.from_dict({"client_id": 2})
        assert exc_info.value.field == "trainer_id"

    def test_create_requires_end_after_start(self):
        request = BookingCreateRequest(1, 2, at(10), at(10))
        with pytest.raises(ValidationError):
            request.validate()

    def test_update_apply_keeps_unchanged_fields(self):
        booking = make_booking(id=4, trainer_id=1, client_id=2, title="Old")
        updated = BookingUpdateRequest(end=at(12)).apply_to(booking)
        assert updated.id == 4
        assert updated.interval.start == at(10)
        assert updated.interval.end == at(12)
        assert updated.title == "Old"
        assert booking.interval.end == at(11)

    def test_availability_request_needs_both_bounds(self):
        with pytest.raises(ValidationError):
            AvailabilityRequest.from_dict({"start": "2025-03-10T10:00:00Z"}).validate()

    def test_booking_response_renders_effective_status(self):
        body = BookingResponse.from_domain(make_booking(id=1), at(10, 30)).to_dict()
        assert body["status"] == BookingStatus.SCHEDULED.value
        assert body["effective_status"] == "in_progress"
        assert body["start"] == "2025-03-10T10:00:00+00:00"


@pytest.mark.contracts
class TestContractRequests:
    def test_contract_create_parses_price(self):
        request = ContractCreateRequest.from_dict(
            {
                "subject_id": 1,
                "membership_id": 2,
                "start": "2025-03-01T00:00:00Z",
                "end": "2025-03-31T00:00:00Z",
                "price": "100000.50",
            }
        )
        request.validate()
        assert request.price == Decimal("100000.50")

    def test_contract_create_negative_price(self):
        request = ContractCreateRequest(1, 2, at(0), at(0, day_offset=1), Decimal("-1"))
        with pytest.raises(ValidationError):
            request.validate()

    def test_renew_by_code_only_needs_start(self):
        request = RenewRequest.from_dict({"membership_code": "M2", "start": "2025-04-01"})
        request.validate()
        assert request.by_membership_code

    def test_renew_explicit_needs_membership(self):
        request = RenewRequest(start=at(0), end=at(0, day_offset=30), price=Decimal("1"))
        with pytest.raises(ValidationError) as exc_info:
            request.validate()
        assert exc_info.value.field == "membership_id"

    def test_contract_response_includes_advisory_status(self):
        contract = make_contract(end=at(0, day_offset=3))
        body = ContractResponse.from_domain(contract, at(8), 7).to_dict()
        assert body["state"] == "active"
        assert body["advisory_status"] == "pending_expiry"
        assert body["price"] == "100000"

    def test_history_response(self):
        record = LifecycleHistoryRecord(
            id=1,
            contract_id=5,
            from_state=None,
            to_state=ContractState.ACTIVE,
            changed_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
            changed_by="staff-1",
        )
        body = HistoryRecordResponse.from_domain(record).to_dict()
        assert body["from_state"] is None
        assert body["to_state"] == "active"
        assert body["changed_at"] == "2025-03-01T00:00:00+00:00"


class TestFreeTextFields:
    def test_booking_title_must_be_text(self):
        with pytest.raises(ValidationError) as exc_info:
            BookingCreateRequest.from_dict(
                {
                    "trainer_id": 1,
                    "client_id": 2,
                    "start": "2025-03-10T10:00:00Z",
                    "end": "2025-03-10T11:00:00Z",
                    "title": 123,
                }
            )
        assert exc_info.value.field == "title"

    def test_booking_notes_must_be_text(self):
        with pytest.raises(ValidationError) as exc_info:
            BookingUpdateRequest.from_dict({"notes": 7})
        assert exc_info.value.field == "notes"

    def test_update_title_absent_means_unchanged(self):
        request = BookingUpdateRequest.from_dict({"title": "  Mobility "})
        assert request.title == "Mobility"
        assert BookingUpdateRequest.from_dict({}).title is None

    def test_update_title_must_be_text(self):
        with pytest.raises(ValidationError):
            BookingUpdateRequest.from_dict({"title": 5})

    def test_freeze_reason_must_be_text(self):
        with pytest.raises(ValidationError) as exc_info:
            FreezeRequest.from_dict({"reason": 5})
        assert exc_info.value.field == "reason"

    def test_freeze_reason_is_stripped(self):
        assert FreezeRequest.from_dict({"reason": " travel "}).reason == "travel"
        assert FreezeRequest.from_dict({}).reason == ""

    def test_membership_code_must_be_text(self):
        with pytest.raises(ValidationError) as exc_info:
            RenewRequest.from_dict({"membership_code": 2, "start": "2025-04-01"})
        assert exc_info.value.field == "membership_code"


class TestContractPrice:
    @pytest.mark.parametrize("price", ["NaN", "Infinity"])
    def test_contract_rejects_non_finite_price(self, price):
        with pytest.raises(ValidationError) as exc_info:
            Contract(
                subject_id=1,
                membership_id=1,
                interval=Interval(at(0), at(0, day_offset=30)),
                price=Decimal(price),
            )
        assert exc_info.value.field == "price"

    def test_create_request_rejects_nan_price(self):
        with pytest.raises(ValidationError) as exc_info:
            ContractCreateRequest.from_dict(
                {
                    "subject_id": 1,
                    "membership_id": 1,
                    "start": "2025-03-01T00:00:00Z",
                    "end": "2025-03-31T00:00:00Z",
                    "price": "NaN",
                }
            )
        assert exc_info.value.field == "price"
