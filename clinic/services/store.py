"""
Reservation Store - Active and canceled reservations.

In-memory store with lock-guarded writes. The slot index acts as the
unique constraint on (kind, schedule owner, date, time): a second
insert for the same slot is rejected inside the same critical section
that checked it, so concurrent bookings cannot both succeed.
"""

import asyncio
from datetime import date, datetime
from itertools import count
from typing import Dict, List, Optional, Set

from loguru import logger

from clinic.models.provider import ProviderKind, ProviderRef
from clinic.models.reservation import CanceledReservation, Reservation, SlotKey


class SlotConflictError(Exception):
    """Raised when inserting a reservation for a slot that is already held."""

    def __init__(self, slot_key: SlotKey):
        self.slot_key = slot_key
        kind, owner_id, day, time = slot_key
        super().__init__(f"Slot already booked: {kind.value} {owner_id} {day} {time}")


class ReservationStore:
    """
    In-memory reservation store with async-safe writes.

    In production, this should be replaced with a database table
    carrying a unique index on the slot key, and a transaction around
    the cancel-and-archive move.
    """

    def __init__(self):
        self._active: Dict[int, Reservation] = {}
        self._slots: Dict[SlotKey, int] = {}  # slot key -> reservation id
        self._canceled: List[CanceledReservation] = []
        self._ids = count(1)
        self._lock = asyncio.Lock()

    # Public accessors for testing
    @property
    def active(self) -> Dict[int, Reservation]:
        """Access to active reservations by id."""
        return self._active

    @property
    def canceled(self) -> List[CanceledReservation]:
        """Access to the canceled reservations archive."""
        return self._canceled

    def clear(self) -> None:
        """Drop every reservation and restart ids."""
        self._active.clear()
        self._slots.clear()
        self._canceled.clear()
        self._ids = count(1)

    async def find_reservation_times(self, provider: ProviderRef, day: date) -> Set[str]:
        """Times already booked on a provider's schedule for a date."""
        return {
            time
            for (kind, owner_id, slot_day, time) in list(self._slots)
            if kind == provider.kind and owner_id == provider.id and slot_day == day
        }

    async def reservation_exists(self, provider: ProviderRef, day: date, time: str) -> bool:
        """Check whether a slot is held by an active reservation."""
        return (provider.kind, provider.id, day, time) in self._slots

    async def insert_reservation(
        self,
        kind: ProviderKind,
        patient_id: int,
        doctor_id: int,
        appoint_date: date,
        appoint_time: str,
        test_id: Optional[int] = None,
    ) -> Reservation:
        """
        Create a reservation, enforcing one active reservation per slot.

        Raises:
            SlotConflictError: if the slot is already held
        """
        async with self._lock:
            reservation = Reservation(
                id=0,
                kind=kind,
                patient_id=patient_id,
                doctor_id=doctor_id,
                test_id=test_id,
                appoint_date=appoint_date,
                appoint_time=appoint_time,
            )
            key = reservation.slot_key
            if key in self._slots:
                raise SlotConflictError(key)

            reservation = reservation.model_copy(update={"id": next(self._ids)})
            self._active[reservation.id] = reservation
            self._slots[key] = reservation.id
            return reservation

    async def find_reservation(
        self, reservation_id: int, kind: ProviderKind
    ) -> Optional[Reservation]:
        """Get an active reservation of a given kind by id."""
        reservation = self._active.get(reservation_id)
        if reservation is None or reservation.kind != kind:
            return None
        return reservation

    async def archive_reservation(
        self, reservation_id: int, kind: ProviderKind, canceled_at: datetime
    ) -> Optional[CanceledReservation]:
        """
        Move an active reservation into the canceled archive.

        Both the archive insert and the removal happen under the lock,
        so a reservation is never active and canceled at once. Returns
        None if the reservation is no longer active.
        """
        async with self._lock:
            reservation = self._active.get(reservation_id)
            if reservation is None or reservation.kind != kind:
                return None

            canceled = CanceledReservation.from_reservation(reservation, canceled_at)
            self._canceled.append(canceled)
            del self._active[reservation_id]
            del self._slots[reservation.slot_key]

        logger.debug(f"Archived reservation {reservation_id} as canceled")
        return canceled

    async def list_active(self, patient_id: int, kind: ProviderKind) -> List[Reservation]:
        """Active reservations of one kind for a patient, by date and time."""
        results = [
            r
            for r in list(self._active.values())
            if r.patient_id == patient_id and r.kind == kind
        ]
        results.sort(key=lambda r: (r.appoint_date, r.appoint_time))
        return results

    async def list_canceled(
        self, patient_id: int, kind: ProviderKind
    ) -> List[CanceledReservation]:
        """Canceled reservations of one kind for a patient, by date and time."""
        results = [
            r for r in list(self._canceled) if r.patient_id == patient_id and r.kind == kind
        ]
        results.sort(key=lambda r: (r.appoint_date, r.appoint_time))
        return results
