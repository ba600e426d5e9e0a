from __future__ import annotations

import datetime as dt
import enum
import json
import uuid
from typing import Dict, List

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AllocationKind(str, enum.Enum):
    BOOKING = "booking"
    SALE = "sale"


def _dump_numbers(numbers) -> str:
    return json.dumps(sorted(set(numbers)))


class Round(Base):
    """One lottery round and its pool of still-available ticket numbers.

    ``version`` is bumped by every conditional update on the row; writers
    only succeed when the version they read is still current.
    """

    __tablename__ = "rounds"

    id = Column(Integer, primary_key=True, autoincrement=False)
    total_tickets = Column(Integer, nullable=False)
    available_tickets = Column(Text, nullable=False, default="[]")
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)

    def set_available(self, numbers) -> None:
        self.available_tickets = _dump_numbers(numbers)

    def get_available(self) -> List[str]:
        return json.loads(self.available_tickets)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(254), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    attributes = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)

    def set_attributes(self, attributes: Dict[str, object]) -> None:
        self.attributes = json.dumps(attributes, sort_keys=True, default=str)

    def get_attributes(self) -> Dict[str, object]:
        return json.loads(self.attributes or "{}")

    def display_name(self) -> str:
        return f"{self.full_name} ({self.email})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "phone": self.phone,
            "attributes": self.get_attributes(),
        }


class Allocation(Base):
    """A Booking or a Sale of ticket numbers to one user within one round."""

    __tablename__ = "allocations"
    __table_args__ = (
        UniqueConstraint("round_id", "user_id", "kind", name="uq_allocations_round_user_kind"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey("rounds.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    kind = Column(String(16), nullable=False)
    ticket_numbers = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)

    def set_numbers(self, numbers) -> None:
        self.ticket_numbers = _dump_numbers(numbers)

    def get_numbers(self) -> List[str]:
        return json.loads(self.ticket_numbers)
