"""
Shared fixtures: a small directory, a fresh store and a fixed clock.

The clock is pinned to Tuesday 2025-07-08 10:00 so the Wednesday
2025-07-09 slots are always in the future.
"""

import json
from datetime import date, datetime

import pytest

from clinic.models.provider import Patient, Provider, ProviderKind
from clinic.services.availability import AvailabilityEngine
from clinic.services.directory import InMemoryDirectory
from clinic.services.store import ReservationStore

NOW = datetime(2025, 7, 8, 10, 0)
TUESDAY = NOW.date()
WEDNESDAY = date(2025, 7, 9)
THURSDAY = date(2025, 7, 10)

PATIENT_TOKENS = {7: "token-7", 9: "token-9"}


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def build_directory() -> InMemoryDirectory:
    return InMemoryDirectory(
        doctors=[
            Provider(
                id=1,
                kind=ProviderKind.DOCTOR,
                name="Dr. Sarah Ahmed",
                specialization="Cardiology",
                schedule={
                    "Tuesday": ["9:00 AM", "11:00 AM", "3:00 PM"],
                    "Wednesday": ["1:00 PM", "2:00 PM"],
                },
            ),
            Provider(id=2, kind=ProviderKind.DOCTOR, name="Dr. No Schedule", schedule=None),
            Provider(
                id=3,
                kind=ProviderKind.DOCTOR,
                name="Dr. Broken Schedule",
                schedule='{"Wednesday": ["noon", "25:00 PM"]}',
            ),
            Provider(id=4, kind=ProviderKind.DOCTOR, name="Dr. Bad JSON", schedule="{not json"),
            Provider(
                id=5,
                kind=ProviderKind.DOCTOR,
                name="Dr. Omar Hassan",
                schedule={"Thursday": ["9:05 AM", "10:00 AM"]},
            ),
        ],
        medical_tests=[
            Provider(
                id=10,
                kind=ProviderKind.MEDICAL_TEST,
                name="Blood Test",
                schedule=json.dumps({"Wednesday": ["10:00 AM", "1:00 PM"]}),
            ),
            Provider(
                id=11,
                kind=ProviderKind.MEDICAL_TEST,
                name="ECG",
                schedule=json.dumps({"Wednesday": ["10:00 AM", "1:00 PM"]}),
            ),
        ],
        patients=[
            Patient(id=7, name="Mona Ali", api_token=PATIENT_TOKENS[7]),
            Patient(id=9, name="Karim Nabil", api_token=PATIENT_TOKENS[9]),
        ],
    )


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def directory():
    return build_directory()


@pytest.fixture
def store():
    return ReservationStore()


@pytest.fixture
def engine(directory, store, clock):
    return AvailabilityEngine(directory, store, now=clock)
