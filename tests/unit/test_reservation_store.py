"""
Unit tests for the Reservation Store.
"""

import asyncio
from datetime import date, datetime

import pytest

from clinic.models.provider import ProviderKind, ProviderRef
from clinic.services.store import SlotConflictError

WEDNESDAY = date(2025, 7, 9)


async def book_doctor(store, patient_id=7, doctor_id=1, time="13:00", day=WEDNESDAY):
    return await store.insert_reservation(
        kind=ProviderKind.DOCTOR,
        patient_id=patient_id,
        doctor_id=doctor_id,
        appoint_date=day,
        appoint_time=time,
    )


class TestInsertReservation:
    """Test the slot uniqueness constraint."""

    @pytest.mark.asyncio
    async def test_insert_assigns_increasing_ids(self, store):
        first = await book_doctor(store, time="13:00")
        second = await book_doctor(store, time="14:00")
        assert first.id == 1
        assert second.id == 2
        assert set(store.active) == {1, 2}

    @pytest.mark.asyncio
    async def test_duplicate_slot_rejected(self, store):
        """A second reservation for the same slot raises SlotConflictError."""
        await book_doctor(store, patient_id=7)
        with pytest.raises(SlotConflictError):
            await book_doctor(store, patient_id=9)
        assert len(store.active) == 1

    @pytest.mark.asyncio
    async def test_same_time_other_doctor_allowed(self, store):
        await book_doctor(store, doctor_id=1)
        other = await book_doctor(store, doctor_id=2)
        assert other.doctor_id == 2

    @pytest.mark.asyncio
    async def test_test_slots_keyed_by_test(self, store):
        """Medical-test slots belong to the test, not the referring doctor."""
        await store.insert_reservation(
            kind=ProviderKind.MEDICAL_TEST,
            patient_id=7,
            doctor_id=1,
            test_id=10,
            appoint_date=WEDNESDAY,
            appoint_time="13:00",
        )
        # Same doctor and time, different test
        await store.insert_reservation(
            kind=ProviderKind.MEDICAL_TEST,
            patient_id=9,
            doctor_id=1,
            test_id=11,
            appoint_date=WEDNESDAY,
            appoint_time="13:00",
        )
        with pytest.raises(SlotConflictError):
            await store.insert_reservation(
                kind=ProviderKind.MEDICAL_TEST,
                patient_id=9,
                doctor_id=2,
                test_id=10,
                appoint_date=WEDNESDAY,
                appoint_time="13:00",
            )

    @pytest.mark.asyncio
    async def test_concurrent_inserts(self, store):
        """Only one of many concurrent inserts for a slot succeeds."""
        results = await asyncio.gather(
            *[book_doctor(store, patient_id=p) for p in range(5)],
            return_exceptions=True,
        )
        successes = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, SlotConflictError)]
        assert len(successes) == 1
        assert len(conflicts) == 4


class TestLookups:
    """Test read operations."""

    @pytest.mark.asyncio
    async def test_find_reservation_times(self, store):
        await book_doctor(store, time="13:00")
        await book_doctor(store, time="14:00")
        await book_doctor(store, time="13:00", day=date(2025, 7, 16))
        times = await store.find_reservation_times(ProviderRef.doctor(1), WEDNESDAY)
        assert times == {"13:00", "14:00"}

    @pytest.mark.asyncio
    async def test_reservation_exists(self, store):
        await book_doctor(store)
        assert await store.reservation_exists(ProviderRef.doctor(1), WEDNESDAY, "13:00")
        assert not await store.reservation_exists(ProviderRef.doctor(1), WEDNESDAY, "14:00")
        assert not await store.reservation_exists(
            ProviderRef.medical_test(1), WEDNESDAY, "13:00"
        )

    @pytest.mark.asyncio
    async def test_find_reservation_checks_kind(self, store):
        reservation = await book_doctor(store)
        assert await store.find_reservation(reservation.id, ProviderKind.DOCTOR) == reservation
        assert await store.find_reservation(reservation.id, ProviderKind.MEDICAL_TEST) is None
        assert await store.find_reservation(999, ProviderKind.DOCTOR) is None

    @pytest.mark.asyncio
    async def test_list_active_sorted(self, store):
        await book_doctor(store, time="14:00")
        await book_doctor(store, time="13:00", day=date(2025, 7, 16))
        await book_doctor(store, time="13:00")
        await book_doctor(store, patient_id=9, time="15:00")
        listed = await store.list_active(7, ProviderKind.DOCTOR)
        assert [(r.appoint_date, r.appoint_time) for r in listed] == [
            (WEDNESDAY, "13:00"),
            (WEDNESDAY, "14:00"),
            (date(2025, 7, 16), "13:00"),
        ]


class TestArchiveReservation:
    """Test the cancel-and-archive move."""

    @pytest.mark.asyncio
    async def test_archive_moves_record(self, store):
        reservation = await book_doctor(store)
        canceled_at = datetime(2025, 7, 8, 10, 0)

        canceled = await store.archive_reservation(
            reservation.id, ProviderKind.DOCTOR, canceled_at
        )

        assert canceled.id == reservation.id
        assert canceled.appoint_date == WEDNESDAY
        assert canceled.appoint_time == "13:00"
        assert canceled.canceled_at == canceled_at
        assert reservation.id not in store.active
        assert store.canceled == [canceled]
        assert not await store.reservation_exists(ProviderRef.doctor(1), WEDNESDAY, "13:00")

    @pytest.mark.asyncio
    async def test_archive_twice(self, store):
        """A second archive of the same id finds nothing."""
        reservation = await book_doctor(store)
        now = datetime(2025, 7, 8, 10, 0)
        assert await store.archive_reservation(reservation.id, ProviderKind.DOCTOR, now)
        assert await store.archive_reservation(reservation.id, ProviderKind.DOCTOR, now) is None
        assert len(store.canceled) == 1

    @pytest.mark.asyncio
    async def test_slot_free_after_archive(self, store):
        reservation = await book_doctor(store, patient_id=7)
        await store.archive_reservation(
            reservation.id, ProviderKind.DOCTOR, datetime(2025, 7, 8, 10, 0)
        )
        rebooked = await book_doctor(store, patient_id=9)
        assert rebooked.patient_id == 9

    @pytest.mark.asyncio
    async def test_clear(self, store):
        await book_doctor(store)
        store.clear()
        assert store.active == {}
        assert (await book_doctor(store)).id == 1
