from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..db import session_scope
from ..errors import RoundNotFoundError
from ..models import Allocation, AllocationKind, Round, User


@dataclass(frozen=True)
class TicketRecord:
    round_id: int
    ticket_number: str
    availability: bool
    sold: bool
    user: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "lotteryNo": self.round_id,
            "ticketNumber": self.ticket_number,
            "availability": self.availability,
            "sold": self.sold,
            "user": self.user,
        }


@dataclass(frozen=True)
class RoundView:
    round_id: int
    tickets: List[TicketRecord]
    booked_count: int
    sold_count: int

    def to_dict(self) -> dict:
        return {
            "lotteryNo": self.round_id,
            "tickets": [record.to_dict() for record in self.tickets],
            "bookedCount": self.booked_count,
            "soldCount": self.sold_count,
        }


def _expand(allocations: List[Allocation], users: Dict[str, User], sold: bool) -> List[TicketRecord]:
    records: List[TicketRecord] = []
    for allocation in allocations:
        user = users.get(allocation.user_id) if allocation.user_id else None
        display = user.display_name() if user is not None else None
        for ticket_number in allocation.get_numbers():
            records.append(
                TicketRecord(
                    round_id=allocation.round_id,
                    ticket_number=ticket_number,
                    availability=False,
                    sold=sold,
                    user=display,
                )
            )
    return records


def compose_view(round_id: Optional[int] = None) -> RoundView:
    """Flatten a round (the latest one by default) into per-ticket records.

    Booked tickets come first, then available ones, then sold ones.
    """
    with session_scope() as session:
        if round_id is None:
            lottery = session.query(Round).order_by(Round.id.desc()).first()
        else:
            lottery = session.get(Round, round_id)
        if lottery is None:
            raise RoundNotFoundError(round_id)

        allocations = (
            session.query(Allocation)
            .filter(Allocation.round_id == lottery.id)
            .order_by(Allocation.id)
            .all()
        )
        user_ids = {allocation.user_id for allocation in allocations if allocation.user_id}
        users: Dict[str, User] = {}
        if user_ids:
            users = {user.id: user for user in session.query(User).filter(User.id.in_(user_ids)).all()}

        bookings = [a for a in allocations if a.kind == AllocationKind.BOOKING.value]
        sales = [a for a in allocations if a.kind == AllocationKind.SALE.value]

        booked = _expand(bookings, users, sold=False)
        available = [
            TicketRecord(round_id=lottery.id, ticket_number=number, availability=True, sold=False)
            for number in lottery.get_available()
        ]
        sold = _expand(sales, users, sold=True)

        return RoundView(
            round_id=lottery.id,
            tickets=booked + available + sold,
            booked_count=len(booked),
            sold_count=len(sold),
        )
