"""
Data models for the clinic appointments service.
"""

from .provider import Patient, Provider, ProviderKind, ProviderRef, RawSchedule
from .reservation import CanceledReservation, Reservation, SlotKey
from .results import (
    AvailabilityResult,
    BookingResult,
    CancellationResult,
    ErrorCode,
    ScheduleResolution,
)

__all__ = [
    "Patient",
    "Provider",
    "ProviderKind",
    "ProviderRef",
    "RawSchedule",
    "Reservation",
    "CanceledReservation",
    "SlotKey",
    "AvailabilityResult",
    "BookingResult",
    "CancellationResult",
    "ErrorCode",
    "ScheduleResolution",
]
