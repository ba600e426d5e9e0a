from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..db import session_scope
from ..errors import ConflictError, RoundNotFoundError, ValidationError
from ..models import Allocation, AllocationKind, Round

logger = logging.getLogger("lotterydesk.rounds")


def parse_ticket_count(value) -> int:
    """Coerce a requested ticket count, accepting integers and numeric strings."""
    if isinstance(value, bool):
        raise ValidationError("totalTickets must be a positive integer")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationError("totalTickets must be a positive integer")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ValidationError("totalTickets must be a positive integer")
    return value


def ticket_numbers(count: int) -> List[str]:
    width = len(str(count))
    return [str(number).zfill(width) for number in range(1, count + 1)]


class RoundRepository:
    def __init__(self, max_create_retries: int = 25) -> None:
        self._max_create_retries = max_create_retries

    def create_round(self, count) -> int:
        count = parse_ticket_count(count)
        numbers = ticket_numbers(count)

        # The primary key on Round.id serializes concurrent creators; a loser
        # re-reads the maximum and tries the next id.
        for attempt in range(1, self._max_create_retries + 1):
            try:
                with session_scope() as session:
                    current_max = session.query(func.max(Round.id)).scalar()
                    round_id = 1 if current_max is None else int(current_max) + 1
                    lottery = Round(id=round_id, total_tickets=count, version=1)
                    lottery.set_available(numbers)
                    session.add(lottery)
                    session.flush()
            except IntegrityError:
                logger.debug("Round id collision on attempt %s; retrying", attempt)
                continue
            logger.info("Created lottery %s with %s tickets", round_id, count)
            return round_id

        raise ConflictError(
            f"Could not allocate a lottery number after {self._max_create_retries} attempts"
        )

    def get_round(self, round_id: int) -> Round:
        with session_scope() as session:
            lottery = session.get(Round, round_id)
            if lottery is None:
                raise RoundNotFoundError(round_id)
            session.expunge(lottery)
            return lottery

    def get_latest_round(self) -> Round:
        with session_scope() as session:
            lottery = session.query(Round).order_by(Round.id.desc()).first()
            if lottery is None:
                raise RoundNotFoundError()
            session.expunge(lottery)
            return lottery

    def get_latest_availability(self) -> Dict[str, object]:
        lottery = self.get_latest_round()
        return {
            "lotteryNo": lottery.id,
            "availableTickets": lottery.get_available(),
        }

    def list_rounds(self, limit: Optional[int] = None) -> List[Dict[str, object]]:
        if limit is not None and limit < 1:
            raise ValidationError("limit must be a positive integer")
        with session_scope() as session:
            query = session.query(Round).order_by(Round.id.desc())
            if limit is not None:
                query = query.limit(limit)
            rounds = query.all()

            counts: Dict[tuple, int] = {}
            round_ids = [lottery.id for lottery in rounds]
            if round_ids:
                allocations = session.query(Allocation).filter(Allocation.round_id.in_(round_ids)).all()
                for allocation in allocations:
                    key = (allocation.round_id, allocation.kind)
                    counts[key] = counts.get(key, 0) + len(allocation.get_numbers())

            results: List[Dict[str, object]] = []
            for lottery in rounds:
                results.append(
                    {
                        "lottery_no": lottery.id,
                        "total_tickets": lottery.total_tickets,
                        "available_count": len(lottery.get_available()),
                        "booked_count": counts.get((lottery.id, AllocationKind.BOOKING.value), 0),
                        "sold_count": counts.get((lottery.id, AllocationKind.SALE.value), 0),
                    }
                )
            return results
