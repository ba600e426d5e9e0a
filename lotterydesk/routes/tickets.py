from __future__ import annotations

from functools import lru_cache

from flask import Blueprint, current_app, jsonify, request

from ..config import load_settings
from ..notifications import NotificationSender, build_notifier
from ..schemas import (
    CreateLotteryRequest,
    CreateLotteryResponse,
    LatestAvailabilityResponse,
    SellTicketsRequest,
)
from ..services.allocation import AllocationEngine
from ..services.booking import BookingService
from ..services.identities import IdentityRepository
from ..services.rounds import RoundRepository
from ..services.views import compose_view

bp = Blueprint("tickets", __name__)
identity_repo = IdentityRepository()


@lru_cache(maxsize=1)
def get_notifier() -> NotificationSender:
    return build_notifier(load_settings().notifier)


def get_round_repo() -> RoundRepository:
    settings = load_settings()
    return RoundRepository(max_create_retries=settings.booking.round_create_max_retries)


def get_booking_service() -> BookingService:
    settings = load_settings()
    engine = AllocationEngine(policy=settings.booking.policy, max_retries=settings.booking.max_retries)
    return BookingService(
        engine=engine,
        notifier=get_notifier(),
        identities=identity_repo,
        rounds=get_round_repo(),
    )


@bp.get("/unsold-tickets")
def latest_availability():
    latest = get_round_repo().get_latest_availability()
    response = LatestAvailabilityResponse(**latest)
    return jsonify(response.model_dump(by_alias=True))


@bp.patch("/sell-tickets/<int:lottery_no>")
def sell_tickets(lottery_no: int):
    payload = request.get_json(force=True, silent=True) or {}
    data = SellTicketsRequest.model_validate(payload)

    result = get_booking_service().book_tickets(
        lottery_no, data.ticket_numbers, data.user_information.to_profile_data()
    )
    for warning in result.warnings:
        current_app.logger.warning("Lottery %s booking warning: %s", lottery_no, warning)
    return jsonify(result.to_dict())


@bp.post("/create-lottery")
def create_lottery():
    payload = request.get_json(force=True, silent=True) or {}
    data = CreateLotteryRequest.model_validate(payload)

    lottery_no = get_round_repo().create_round(data.total_tickets)
    response = CreateLotteryResponse(
        message=f"Successfully created lottery {lottery_no}",
        lottery_no=lottery_no,
    )
    return jsonify(response.model_dump(by_alias=True)), 201


@bp.get("/tickets")
def latest_tickets():
    return jsonify(compose_view().to_dict())


@bp.get("/tickets/<int:lottery_no>")
def lottery_tickets(lottery_no: int):
    return jsonify(compose_view(lottery_no).to_dict())
