"""
Reservation data models.
"""

from datetime import date, datetime
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from clinic.config import TIME_FORMAT
from clinic.models.provider import ProviderKind, ProviderRef

# (kind, schedule owner id, date, "HH:MM"): at most one active reservation per key
SlotKey = Tuple[ProviderKind, int, date, str]


class Reservation(BaseModel):
    """
    A confirmed booking of one slot by one patient.

    Doctor appointments are owned by the doctor's schedule. Medical-test
    appointments are owned by the test's schedule and also carry the
    referring doctor.
    """

    id: int = Field(description="Reservation identifier")
    kind: ProviderKind = Field(description="Doctor appointment or medical-test appointment")
    patient_id: int = Field(description="Owning patient")
    doctor_id: int = Field(description="Doctor seen, or referring doctor for a test")
    test_id: Optional[int] = Field(default=None, description="Medical test, if any")
    appoint_date: date = Field(description="Calendar date of the slot")
    appoint_time: str = Field(description="Slot time in 24-hour HH:MM format")
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @property
    def provider(self) -> ProviderRef:
        """The provider whose schedule this reservation occupies."""
        if self.kind is ProviderKind.MEDICAL_TEST:
            return ProviderRef(kind=self.kind, id=self.test_id)
        return ProviderRef(kind=self.kind, id=self.doctor_id)

    @property
    def slot_key(self) -> SlotKey:
        return (self.kind, self.provider.id, self.appoint_date, self.appoint_time)

    @property
    def scheduled_at(self) -> datetime:
        """Combined date and time of the slot."""
        slot_time = datetime.strptime(self.appoint_time, TIME_FORMAT).time()
        return datetime.combine(self.appoint_date, slot_time)


class CanceledReservation(Reservation):
    """
    Archived copy of a reservation removed from the active set.
    """

    canceled_at: datetime = Field(description="When the reservation was canceled")

    @classmethod
    def from_reservation(
        cls, reservation: Reservation, canceled_at: datetime
    ) -> "CanceledReservation":
        return cls(**reservation.model_dump(), canceled_at=canceled_at)
