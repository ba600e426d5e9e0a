"""Moves ticket numbers out of a round's available pool into Bookings and Sales.

Every allocation is one transaction: the round row is rewritten with a
conditional ``UPDATE ... WHERE version = <version read>`` and the user's
allocation record is created or merged alongside it. When the update hits
zero rows another writer committed first, so the transaction is rolled back
and the whole read-compute-write is attempted again from a fresh read.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Tuple

from sqlalchemy import update

from ..db import session_scope
from ..errors import ConflictError, RoundNotFoundError, TicketUnavailableError, ValidationError
from ..models import Allocation, AllocationKind, Round

logger = logging.getLogger("lotterydesk.allocation")

STRICT = "strict"
LENIENT = "lenient"


class _StaleRound(Exception):
    """The round changed between read and conditional update."""


@dataclass(frozen=True)
class AllocationOutcome:
    round_id: int
    kind: str
    ticket_numbers: Tuple[str, ...]
    held_numbers: Tuple[str, ...]
    updated_available: List[str]
    merged: bool
    skipped_numbers: Tuple[str, ...] = ()


def normalize_ticket_numbers(requested) -> FrozenSet[str]:
    if requested is None or isinstance(requested, (str, bytes)):
        raise ValidationError("ticketNumbers must be a non-empty list of ticket numbers")
    numbers = set()
    for value in requested:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("ticketNumbers must contain non-empty strings")
        numbers.add(value.strip())
    if not numbers:
        raise ValidationError("ticketNumbers must be a non-empty list of ticket numbers")
    return frozenset(numbers)


class AllocationEngine:
    def __init__(self, policy: str = STRICT, max_retries: int = 25) -> None:
        if policy not in (STRICT, LENIENT):
            raise ValueError(f"Unknown allocation policy: {policy}")
        self.policy = policy
        self._max_retries = max_retries

    def book(self, round_id: int, identity_id: str, requested: Iterable[str]) -> AllocationOutcome:
        return self._allocate(round_id, identity_id, requested, AllocationKind.BOOKING)

    def sell(self, round_id: int, identity_id: str, requested: Iterable[str]) -> AllocationOutcome:
        return self._allocate(round_id, identity_id, requested, AllocationKind.SALE)

    def _allocate(self, round_id: int, identity_id: str, requested, kind: AllocationKind) -> AllocationOutcome:
        numbers = normalize_ticket_numbers(requested)
        for attempt in range(1, self._max_retries + 1):
            try:
                outcome = self._attempt(round_id, identity_id, numbers, kind)
            except _StaleRound:
                logger.debug("Lottery %s changed during %s attempt %s; retrying", round_id, kind.value, attempt)
                continue
            logger.info(
                "%s %s in lottery %s for user %s (%s)",
                "Merged" if outcome.merged else "Recorded",
                kind.value,
                round_id,
                identity_id,
                ", ".join(outcome.ticket_numbers),
            )
            return outcome

        raise ConflictError(
            f"Lottery {round_id} is busy; gave up after {self._max_retries} attempts"
        )

    def _attempt(
        self, round_id: int, identity_id: str, numbers: FrozenSet[str], kind: AllocationKind
    ) -> AllocationOutcome:
        with session_scope() as session:
            lottery = session.get(Round, round_id)
            if lottery is None:
                raise RoundNotFoundError(round_id)
            read_version = lottery.version
            available = set(lottery.get_available())

            allocation = (
                session.query(Allocation)
                .filter(
                    Allocation.round_id == round_id,
                    Allocation.user_id == identity_id,
                    Allocation.kind == kind.value,
                )
                .one_or_none()
            )
            # Numbers the user already holds in this record are a no-op, not a conflict.
            held = set(allocation.get_numbers()) if allocation is not None else set()

            granted = numbers & available
            unavailable = numbers - available - held
            if unavailable and (self.policy == STRICT or not granted):
                raise TicketUnavailableError(round_id, unavailable)
            updated_available = sorted(available - granted)
            confirmed = tuple(sorted(granted | (numbers & held)))

            if not granted:
                return AllocationOutcome(
                    round_id=round_id,
                    kind=kind.value,
                    ticket_numbers=confirmed,
                    held_numbers=tuple(sorted(held)),
                    updated_available=updated_available,
                    merged=True,
                )

            result = session.execute(
                update(Round)
                .where(Round.id == round_id, Round.version == read_version)
                .values(available_tickets=json.dumps(updated_available), version=read_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise _StaleRound()

            merged = allocation is not None
            if allocation is None:
                allocation = Allocation(round_id=round_id, user_id=identity_id, kind=kind.value)
                allocation.set_numbers(granted)
                session.add(allocation)
            else:
                allocation.set_numbers(held | granted)
            session.flush()

            return AllocationOutcome(
                round_id=round_id,
                kind=kind.value,
                ticket_numbers=confirmed,
                held_numbers=tuple(allocation.get_numbers()),
                updated_available=updated_available,
                merged=merged,
                skipped_numbers=tuple(sorted(unavailable)),
            )
