from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..config import load_settings
from ..schemas import AdminRoundResponse, SellTicketsRequest
from .tickets import get_booking_service, get_round_repo

bp = Blueprint("admin", __name__)


def _require_admin() -> bool:
    settings = load_settings()
    api_key = settings.admin_api_key
    if api_key:
        provided = request.headers.get("X-Admin-Token")
        if provided != api_key:
            return False
    return True


@bp.before_request
def verify_admin():
    if not _require_admin():
        return jsonify({"error": "unauthorized", "kind": "unauthorized"}), 401
    return None


@bp.get("/rounds")
def list_rounds():
    limit = request.args.get("limit", type=int)
    rounds = get_round_repo().list_rounds(limit=limit)
    response = [AdminRoundResponse(**summary).model_dump() for summary in rounds]
    return jsonify(response)


@bp.post("/rounds/<int:lottery_no>/sales")
def record_sale(lottery_no: int):
    payload = request.get_json(force=True, silent=True) or {}
    data = SellTicketsRequest.model_validate(payload)

    result = get_booking_service().sell_tickets(
        lottery_no, data.ticket_numbers, data.user_information.to_profile_data()
    )
    return jsonify(result.to_dict()), 201
