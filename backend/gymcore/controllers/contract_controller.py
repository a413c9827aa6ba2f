"""
Contract controller: JSON endpoints over the contract lifecycle service.

The acting user is taken from the ``X-Actor-Id`` header and passed through
to history records unchanged.
"""

from typing import Any, Dict

from flask import Blueprint, current_app, request

from gymcore.controllers.schedule_controller import json_body
from gymcore.core.api_utils import api_response
from gymcore.core.exceptions import ValidationError
from gymcore.core.logging_config import ACTOR_HEADER
from gymcore.schemas.dtos import (
    ContractCreateRequest,
    ContractResponse,
    FreezeRequest,
    HistoryRecordResponse,
    RenewRequest,
    parse_text,
)
from gymcore.services.contract_service import ContractService

contract_bp = Blueprint("contracts", __name__, url_prefix="/api/contracts")


def _service() -> ContractService:
    return current_app.config["CONTRACT_SERVICE"]


def _actor() -> str:
    actor = (request.headers.get(ACTOR_HEADER) or "").strip()
    if not actor:
        raise ValidationError(f"{ACTOR_HEADER} header is required", "actor")
    return actor


def _render(contract) -> Dict[str, Any]:
    service = _service()
    return ContractResponse.from_domain(
        contract, service.clock(), service.warning_days
    ).to_dict()


@contract_bp.route("/", methods=["POST"])
def create_contract():
    actor = _actor()
    payload = ContractCreateRequest.from_dict(json_body())
    payload.validate()
    contract = _service().create_contract(
        payload.subject_id,
        payload.membership_id,
        payload.interval,
        payload.price,
        actor,
    )
    return api_response(True, "Contract created", _render(contract), 201)


@contract_bp.route("/<int:contract_id>", methods=["GET"])
def get_contract(contract_id: int):
    contract = _service().get_contract(contract_id)
    return api_response(True, "Contract found", _render(contract), 200)


@contract_bp.route("/<int:contract_id>/freeze", methods=["POST"])
def freeze_contract(contract_id: int):
    actor = _actor()
    payload = FreezeRequest.from_dict(json_body())
    contract = _service().freeze(contract_id, payload.reason, actor)
    return api_response(True, "Contract frozen", _render(contract), 200)


@contract_bp.route("/<int:contract_id>/unfreeze", methods=["POST"])
def unfreeze_contract(contract_id: int):
    actor = _actor()
    reason = parse_text(json_body().get("reason"), "reason")
    contract = _service().unfreeze(contract_id, actor, reason=reason)
    return api_response(True, "Contract reactivated", _render(contract), 200)


@contract_bp.route("/<int:contract_id>", methods=["DELETE"])
def cancel_contract(contract_id: int):
    actor = _actor()
    reason = parse_text(json_body().get("reason"), "reason")
    contract = _service().cancel_contract(contract_id, actor, reason=reason)
    return api_response(True, "Contract cancelled", _render(contract), 200)


@contract_bp.route("/<int:contract_id>/renew", methods=["POST"])
def renew_contract(contract_id: int):
    """Renew with an explicit interval/membership/price or a membership code."""
    actor = _actor()
    payload = RenewRequest.from_dict(json_body())
    payload.validate()

    if payload.by_membership_code:
        result = _service().renew_with_membership(
            contract_id,
            payload.membership_code,
            payload.start,
            actor,
            price=payload.price,
        )
    else:
        result = _service().renew(
            contract_id,
            payload.interval,
            payload.membership_id,
            payload.price,
            actor,
        )

    data = {
        "expired_contract": _render(result.expired_contract),
        "new_contract": _render(result.new_contract),
    }
    return api_response(True, "Contract renewed", data, 201)


@contract_bp.route("/<int:contract_id>/expire", methods=["POST"])
def expire_contract(contract_id: int):
    actor = _actor()
    contract = _service().expire(contract_id, actor)
    return api_response(True, "Contract expired", _render(contract), 200)


@contract_bp.route("/<int:contract_id>/history", methods=["GET"])
def contract_history(contract_id: int):
    records = _service().get_history(contract_id)
    data = [HistoryRecordResponse.from_domain(r).to_dict() for r in records]
    return api_response(True, "Contract history", data, 200)
