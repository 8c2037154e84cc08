"""
Directory data models: providers and patients.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

# A stored recurring schedule as received: JSON text, a decoded mapping, or anything
# malformed the directory hands back. ScheduleResolver.load decides what is usable.
RawSchedule = Any


class ProviderKind(str, Enum):
    """Kind of provider that owns a recurring schedule."""

    DOCTOR = "doctor"
    MEDICAL_TEST = "medical_test"

    @property
    def label(self) -> str:
        """Human-readable label used in result messages."""
        return "doctor" if self is ProviderKind.DOCTOR else "medical test"


class ProviderRef(BaseModel):
    """
    Tagged identity of a provider.

    Doctors and medical tests share one availability engine, so every
    lookup is keyed by the kind as well as the id.
    """

    kind: ProviderKind
    id: int

    model_config = {"frozen": True}

    @classmethod
    def doctor(cls, doctor_id: int) -> "ProviderRef":
        return cls(kind=ProviderKind.DOCTOR, id=doctor_id)

    @classmethod
    def medical_test(cls, test_id: int) -> "ProviderRef":
        return cls(kind=ProviderKind.MEDICAL_TEST, id=test_id)


class Provider(BaseModel):
    """
    A doctor or medical test offering a recurring weekly schedule.
    """

    id: int = Field(description="Provider identifier")
    kind: ProviderKind = Field(description="Doctor or medical test")
    name: str = Field(description="Doctor name or test name")
    specialization: Optional[str] = Field(default=None, description="Doctor specialization")
    schedule: RawSchedule = Field(
        default=None,
        description="Weekday name to 12-hour times, as JSON text or a mapping",
    )

    @property
    def ref(self) -> ProviderRef:
        return ProviderRef(kind=self.kind, id=self.id)


class Patient(BaseModel):
    """
    A patient known to the directory.

    The API token is only used to resolve the caller of a request.
    """

    id: int = Field(description="Patient identifier")
    name: str = Field(description="Patient's full name", min_length=1, max_length=200)
    api_token: Optional[str] = Field(default=None, description="Bearer token for the API")
