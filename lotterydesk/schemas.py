from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError
from .services.rounds import parse_ticket_count


class CreateLotteryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_tickets: int = Field(..., alias="totalTickets", description="Number of tickets in the new lottery.")

    @field_validator("total_tickets", mode="before")
    @classmethod
    def validate_total_tickets(cls, value: Any) -> int:
        try:
            return parse_ticket_count(value)
        except ValidationError as exc:
            raise ValueError(exc.message) from exc


class UserInformation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: str
    full_name: Optional[str] = Field(None, alias="fullName")
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("email must be a valid address")
        return value

    def to_profile_data(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SellTicketsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_numbers: List[str] = Field(..., alias="ticketNumbers", min_length=1)
    user_information: UserInformation = Field(..., alias="userInformation")

    @field_validator("ticket_numbers")
    @classmethod
    def validate_ticket_numbers(cls, value: List[str]) -> List[str]:
        if any(not number.strip() for number in value):
            raise ValueError("ticket numbers must be non-empty strings")
        return value


class LatestAvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lottery_no: int = Field(..., alias="lotteryNo")
    available_tickets: List[str] = Field(..., alias="availableTickets")


class CreateLotteryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    lottery_no: int = Field(..., alias="lotteryNo")


class AdminRoundResponse(BaseModel):
    lottery_no: int
    total_tickets: int
    available_count: int
    booked_count: int
    sold_count: int
