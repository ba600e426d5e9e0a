from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple

from ..errors import CollaboratorError
from ..notifications import NotificationSender, purchase_confirmation
from .allocation import AllocationEngine, AllocationOutcome, normalize_ticket_numbers
from .identities import IdentityRef, IdentityRepository, Profile
from .rounds import RoundRepository

logger = logging.getLogger("lotterydesk.booking")


@dataclass
class BookingResult:
    message: str
    round_id: int
    ticket_numbers: Tuple[str, ...]
    updated_available: List[str]
    identity: IdentityRef
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "lotteryNo": self.round_id,
            "ticketNumbers": list(self.ticket_numbers),
            "updatedAvailableTickets": self.updated_available,
            "warnings": list(self.warnings),
        }


class BookingService:
    """Resolves the buyer, allocates the tickets and sends the confirmation."""

    def __init__(
        self,
        engine: AllocationEngine,
        notifier: NotificationSender,
        identities: Optional[IdentityRepository] = None,
        rounds: Optional[RoundRepository] = None,
    ) -> None:
        self._engine = engine
        self._notifier = notifier
        self._identities = identities or IdentityRepository()
        self._rounds = rounds or RoundRepository()

    def book_tickets(self, round_id: int, ticket_numbers: Iterable[str], profile: Mapping) -> BookingResult:
        return self._run(round_id, ticket_numbers, profile, self._engine.book, "booked")

    def sell_tickets(self, round_id: int, ticket_numbers: Iterable[str], profile: Mapping) -> BookingResult:
        return self._run(round_id, ticket_numbers, profile, self._engine.sell, "sold")

    def _run(self, round_id, ticket_numbers, profile, allocate, verb: str) -> BookingResult:
        numbers = normalize_ticket_numbers(ticket_numbers)
        if not isinstance(profile, Profile):
            profile = Profile.from_mapping(profile)
        self._rounds.get_round(round_id)

        identity = self._identities.resolve(profile)
        outcome: AllocationOutcome = allocate(round_id, identity.id, numbers)

        result = BookingResult(
            message=f"Successfully {verb} tickets for lottery {round_id}",
            round_id=round_id,
            ticket_numbers=outcome.ticket_numbers,
            updated_available=outcome.updated_available,
            identity=identity,
        )
        if outcome.skipped_numbers:
            result.warnings.append(
                f"Tickets no longer available were skipped: {', '.join(outcome.skipped_numbers)}"
            )

        warning = self._notify(identity, outcome)
        if warning:
            result.warnings.append(warning)
        return result

    def _notify(self, identity: IdentityRef, outcome: AllocationOutcome) -> Optional[str]:
        message = purchase_confirmation(identity.email, identity.full_name, outcome.ticket_numbers)
        try:
            asyncio.run(self._notifier.send(message))
        except CollaboratorError as exc:
            logger.warning(
                "Confirmation email for lottery %s to %s failed: %s", outcome.round_id, identity.email, exc
            )
            return f"Confirmation email could not be sent: {exc.message}"
        except Exception as exc:  # pragma: no cover - the booking is already committed
            logger.exception("Notification sender crashed for lottery %s", outcome.round_id)
            return f"Confirmation email could not be sent: {exc}"
        return None
