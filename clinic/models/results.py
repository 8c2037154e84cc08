"""
Result models returned by the availability engine.

Every engine operation reports failure through an error code on its
result rather than by raising, so callers can map outcomes directly
onto HTTP responses.
"""

import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from clinic.models.reservation import CanceledReservation, Reservation


class ErrorCode(str, Enum):
    """Deterministic domain failures. None of them is retried."""

    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    SCHEDULE_NOT_FOUND = "SCHEDULE_NOT_FOUND"
    INVALID_DATE = "INVALID_DATE"
    INVALID_TIME = "INVALID_TIME"
    NO_SCHEDULE_FOR_WEEKDAY = "NO_SCHEDULE_FOR_WEEKDAY"
    NO_VALID_TIMES = "NO_VALID_TIMES"
    TIME_NOT_OFFERED = "TIME_NOT_OFFERED"
    SLOT_ALREADY_BOOKED = "SLOT_ALREADY_BOOKED"
    PAST_DATE_TIME = "PAST_DATE_TIME"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    PAST_APPOINTMENT = "PAST_APPOINTMENT"

    @property
    def http_status(self) -> int:
        return ERROR_HTTP_STATUS[self]


ERROR_HTTP_STATUS = {
    ErrorCode.PROVIDER_NOT_FOUND: 404,
    ErrorCode.SCHEDULE_NOT_FOUND: 404,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_DATE: 400,
    ErrorCode.NO_SCHEDULE_FOR_WEEKDAY: 400,
    ErrorCode.NO_VALID_TIMES: 400,
    ErrorCode.TIME_NOT_OFFERED: 400,
    ErrorCode.PAST_DATE_TIME: 400,
    ErrorCode.PAST_APPOINTMENT: 400,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.SLOT_ALREADY_BOOKED: 409,
    ErrorCode.INVALID_TIME: 422,
}


class OperationResult(BaseModel):
    """Common shape of every engine result."""

    success: bool = Field(description="Whether the operation succeeded")
    message: str = Field(description="Human-readable result message")
    error_code: Optional[ErrorCode] = Field(default=None, description="Error code if failed")

    @property
    def http_status(self) -> int:
        return 200 if self.error_code is None else self.error_code.http_status


class ScheduleResolution(OperationResult):
    """
    One weekday of a provider's schedule, normalized to 24-hour times.
    """

    weekday: str = Field(description="Weekday name the times belong to")
    times: List[str] = Field(default_factory=list, description="HH:MM times in schedule order")


class AvailabilityResult(OperationResult):
    """Bookable times for one provider on one date."""

    date: Optional[datetime.date] = Field(default=None, description="Date that was queried")
    slots: List[str] = Field(default_factory=list, description="Free HH:MM times")


class BookingResult(OperationResult):
    """Result of a booking attempt."""

    reservation: Optional[Reservation] = Field(default=None, description="Created reservation")


class CancellationResult(OperationResult):
    """Result of a cancellation attempt."""

    canceled: Optional[CanceledReservation] = Field(
        default=None, description="Archived reservation"
    )
