"""
Schedule controller for handling HTTP requests following SOLID principles.

This controller:
- Handles HTTP concerns only (Single Responsibility)
- Depends on the scheduling service wired by the app factory (Dependency Inversion)

Core errors propagate to the application-level handler, which renders them
through ``error_response``.
"""

from typing import Any, Dict

from flask import Blueprint, current_app, request

from gymcore.core.api_utils import api_response
from gymcore.core.exceptions import ValidationError
from gymcore.schemas.dtos import (
    AvailabilityRequest,
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    parse_datetime,
)
from gymcore.services.scheduling_service import SchedulingService

schedule_bp = Blueprint("schedule", __name__, url_prefix="/api/schedule")


def _service() -> SchedulingService:
    return current_app.config["SCHEDULING_SERVICE"]


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", "body")
    return data


def _render(booking) -> Dict[str, Any]:
    return BookingResponse.from_domain(booking, _service().clock()).to_dict()


@schedule_bp.route("/", methods=["POST"])
def create_booking():
    """Book a training session."""
    booking = _service().create_booking(BookingCreateRequest.from_dict(json_body()))
    return api_response(True, "Booking created", _render(booking), 201)


@schedule_bp.route("/", methods=["GET"])
def list_bookings():
    """Non-cancelled bookings starting inside ``[start, end)``."""
    start = parse_datetime(request.args.get("start"), "start")
    end = parse_datetime(request.args.get("end"), "end")
    if start is None or end is None:
        raise ValidationError("start and end query parameters are required", "interval")
    bookings = _service().get_schedule_between(start, end)
    return api_response(True, "Bookings found", [_render(b) for b in bookings], 200)


@schedule_bp.route("/<int:booking_id>", methods=["GET"])
def get_booking(booking_id: int):
    booking = _service().get_booking(booking_id)
    return api_response(True, "Booking found", _render(booking), 200)


@schedule_bp.route("/<int:booking_id>", methods=["PUT"])
def update_booking(booking_id: int):
    booking = _service().update_booking(
        booking_id, BookingUpdateRequest.from_dict(json_body())
    )
    return api_response(True, "Booking updated", _render(booking), 200)


@schedule_bp.route("/<int:booking_id>", methods=["DELETE"])
def cancel_booking(booking_id: int):
    booking = _service().cancel_booking(booking_id)
    return api_response(True, "Booking cancelled", _render(booking), 200)


@schedule_bp.route("/<int:booking_id>/complete", methods=["POST"])
def complete_booking(booking_id: int):
    booking = _service().complete_booking(booking_id)
    return api_response(True, "Booking completed", _render(booking), 200)


@schedule_bp.route("/availability", methods=["POST"])
def check_availability():
    """Report whether a slot is free for the given trainer and/or client."""
    availability = AvailabilityRequest.from_dict(json_body())
    availability.validate()
    result = _service().check_availability(
        availability.interval,
        trainer_id=availability.trainer_id,
        client_id=availability.client_id,
    )
    data = {
        "available": result.available,
        "conflicts": [_render(b) for b in result.conflicts],
    }
    message = "Slot available" if result.available else "Slot unavailable"
    return api_response(True, message, data, 200)


@schedule_bp.route("/trainer/<int:trainer_id>", methods=["GET"])
def trainer_schedule(trainer_id: int):
    bookings = _service().get_trainer_schedule(trainer_id)
    return api_response(True, "Trainer schedule", [_render(b) for b in bookings], 200)


@schedule_bp.route("/client/<int:client_id>", methods=["GET"])
def client_schedule(client_id: int):
    bookings = _service().get_client_schedule(client_id)
    return api_response(True, "Client schedule", [_render(b) for b in bookings], 200)
