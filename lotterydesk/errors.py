"""Error taxonomy shared by the services, the HTTP layer and the CLI.

Every error carries a human-readable ``message`` and a machine-readable
``kind``; the HTTP layer maps ``status_code`` onto the response.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class LotteryError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ValidationError(LotteryError):
    kind = "validation"
    status_code = 400


class NotFoundError(LotteryError):
    kind = "not_found"
    status_code = 404


class RoundNotFoundError(NotFoundError):
    def __init__(self, round_id=None) -> None:
        if round_id is None:
            message = "No lottery found"
        else:
            message = f"Lottery {round_id} not found"
        super().__init__(message)
        self.round_id = round_id


class ConflictError(LotteryError):
    """Concurrent write collision; the caller may retry the whole operation."""

    kind = "conflict"
    status_code = 409


class TicketUnavailableError(ConflictError):
    kind = "ticket_unavailable"

    def __init__(self, round_id: int, ticket_numbers: Iterable[str]) -> None:
        self.round_id = round_id
        self.ticket_numbers: Tuple[str, ...] = tuple(sorted(ticket_numbers))
        super().__init__(
            f"Tickets not available in lottery {round_id}: {', '.join(self.ticket_numbers)}"
        )

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["ticketNumbers"] = list(self.ticket_numbers)
        return payload


class CollaboratorError(LotteryError):
    kind = "collaborator"
    status_code = 502


class IdentityStoreError(CollaboratorError):
    kind = "identity_store"


class NotificationError(CollaboratorError):
    kind = "notification"
