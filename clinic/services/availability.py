"""
Availability Engine - Bookable slots, booking and cancellation.

One engine serves both doctor appointments and medical-test
appointments. It combines a provider's recurring weekly schedule with
the reservations already held and the current time to decide which
slots can be booked, and it arbitrates booking and cancellation
requests. Every operation returns a result model; failures are carried
as error codes, never raised.
"""

from datetime import date, datetime
from typing import Callable, List, Optional

from loguru import logger

from clinic.models.provider import ProviderKind, ProviderRef
from clinic.models.reservation import CanceledReservation, Reservation
from clinic.models.results import (
    AvailabilityResult,
    BookingResult,
    CancellationResult,
    ErrorCode,
)
from clinic.services.directory import Directory
from clinic.services.schedule import ScheduleResolver, normalize_request_time
from clinic.services.store import ReservationStore, SlotConflictError


def combine(day: date, time: str) -> datetime:
    """Combine a date and an "HH:MM" time into a naive datetime."""
    hour, minute = (int(part) for part in time.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)


class AvailabilityEngine:
    """
    Computes available slots and books or cancels reservations.

    Args:
        directory: Read-only provider and patient lookups
        store: Reservation store enforcing slot uniqueness
        now: Clock returning the current local time
    """

    def __init__(
        self,
        directory: Directory,
        store: ReservationStore,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._directory = directory
        self._store = store
        self._now = now or datetime.now

    def _is_past(self, moment: datetime) -> bool:
        """A slot is bookable only while strictly in the future."""
        return moment <= self._now()

    async def list_available(
        self, provider: ProviderRef, day: Optional[date] = None
    ) -> AvailabilityResult:
        """
        List the bookable times of a provider on a date.

        Args:
            provider: Doctor or medical test to query
            day: Date to query (defaults to today)

        Returns:
            AvailabilityResult with free "HH:MM" times in schedule order
        """
        label = provider.kind.label
        today = self._now().date()
        day = day or today

        raw_schedule = await self._directory.get_provider_schedule(provider)
        if raw_schedule is None:
            return AvailabilityResult(
                success=False,
                date=day,
                message=f"{label.capitalize()} not found.",
                error_code=ErrorCode.PROVIDER_NOT_FOUND,
            )

        resolution = ScheduleResolver(provider.kind).resolve_for_date(raw_schedule, day)
        if resolution.error_code is ErrorCode.SCHEDULE_NOT_FOUND:
            return AvailabilityResult(
                success=False,
                date=day,
                message=resolution.message,
                error_code=resolution.error_code,
            )

        # Today stays queryable: later slots may still be open
        if day < today:
            return AvailabilityResult(
                success=False,
                date=day,
                message="Cannot retrieve appointments for past dates.",
                error_code=ErrorCode.INVALID_DATE,
            )

        if not resolution.success:
            return AvailabilityResult(
                success=False,
                date=day,
                message=resolution.message,
                error_code=resolution.error_code,
            )

        booked = await self._store.find_reservation_times(provider, day)
        slots = [
            time
            for time in dict.fromkeys(resolution.times)
            if time not in booked and not self._is_past(combine(day, time))
        ]

        return AvailabilityResult(
            success=True,
            date=day,
            slots=slots,
            message=(
                "Available appointments retrieved successfully"
                if slots
                else "No available appointments for this date."
            ),
        )

    async def book(
        self,
        provider: ProviderRef,
        patient_id: int,
        day: date,
        time: str,
        doctor_id: Optional[int] = None,
    ) -> BookingResult:
        """
        Book a slot for a patient.

        Args:
            provider: Doctor or medical test whose schedule holds the slot
            patient_id: Patient making the booking
            day: Date of the slot
            time: 24-hour time, "H:MM" or "HH:MM"
            doctor_id: Referring doctor, required for medical-test bookings

        Returns:
            BookingResult with the created reservation on success
        """
        label = provider.kind.label
        appoint_time = normalize_request_time(time)
        if appoint_time is None:
            return BookingResult(
                success=False,
                message="The appoint time must be a 24-hour time in H:MM format.",
                error_code=ErrorCode.INVALID_TIME,
            )

        if provider.kind is ProviderKind.MEDICAL_TEST:
            if doctor_id is None or not await self._directory.provider_exists(
                ProviderRef.doctor(doctor_id)
            ):
                return BookingResult(
                    success=False,
                    message="Doctor not found.",
                    error_code=ErrorCode.PROVIDER_NOT_FOUND,
                )
        else:
            doctor_id = provider.id

        raw_schedule = await self._directory.get_provider_schedule(provider)
        if raw_schedule is None:
            return BookingResult(
                success=False,
                message=f"{label.capitalize()} information not found.",
                error_code=ErrorCode.PROVIDER_NOT_FOUND,
            )

        resolution = ScheduleResolver(provider.kind).resolve_for_date(raw_schedule, day)
        if resolution.error_code is ErrorCode.SCHEDULE_NOT_FOUND:
            return BookingResult(
                success=False,
                message=resolution.message,
                error_code=resolution.error_code,
            )

        if self._is_past(combine(day, appoint_time)):
            return BookingResult(
                success=False,
                message="Cannot book an appointment in the past.",
                error_code=ErrorCode.PAST_DATE_TIME,
            )

        if not resolution.success:
            return BookingResult(
                success=False,
                message=resolution.message,
                error_code=resolution.error_code,
            )

        if appoint_time not in resolution.times:
            return BookingResult(
                success=False,
                message=f"Selected time is not available in the {label} schedule.",
                error_code=ErrorCode.TIME_NOT_OFFERED,
            )

        try:
            reservation = await self._store.insert_reservation(
                kind=provider.kind,
                patient_id=patient_id,
                doctor_id=doctor_id,
                appoint_date=day,
                appoint_time=appoint_time,
                test_id=provider.id if provider.kind is ProviderKind.MEDICAL_TEST else None,
            )
        except SlotConflictError as e:
            logger.warning(f"Booking conflict for patient {patient_id}: {e}")
            return BookingResult(
                success=False,
                message="This appointment slot is already booked.",
                error_code=ErrorCode.SLOT_ALREADY_BOOKED,
            )

        logger.info(
            f"Booked {label} {provider.id} on {day} at {appoint_time} "
            f"for patient {patient_id} (reservation {reservation.id})"
        )
        return BookingResult(
            success=True,
            reservation=reservation,
            message=(
                "Appointment booked successfully"
                if provider.kind is ProviderKind.DOCTOR
                else "Medical test appointed successfully"
            ),
        )

    async def cancel(
        self,
        reservation_id: int,
        requesting_patient_id: int,
        kind: ProviderKind = ProviderKind.DOCTOR,
    ) -> CancellationResult:
        """
        Cancel a reservation on behalf of its owning patient.

        The reservation is moved to the canceled archive; a second
        cancellation of the same id reports NOT_FOUND.
        """
        reservation = await self._store.find_reservation(reservation_id, kind)
        if reservation is None:
            return CancellationResult(
                success=False,
                message="Appointment not found.",
                error_code=ErrorCode.NOT_FOUND,
            )

        if reservation.patient_id != requesting_patient_id:
            return CancellationResult(
                success=False,
                message="You do not have permission to cancel this appointment.",
                error_code=ErrorCode.FORBIDDEN,
            )

        if self._is_past(reservation.scheduled_at):
            return CancellationResult(
                success=False,
                message="Cannot cancel a past appointment.",
                error_code=ErrorCode.PAST_APPOINTMENT,
            )

        canceled = await self._store.archive_reservation(reservation_id, kind, self._now())
        if canceled is None:
            # Lost a race with a concurrent cancellation
            return CancellationResult(
                success=False,
                message="Appointment not found.",
                error_code=ErrorCode.NOT_FOUND,
            )

        logger.info(f"Canceled reservation {reservation_id} for patient {requesting_patient_id}")
        return CancellationResult(
            success=True,
            canceled=canceled,
            message=(
                "Appointment cancelled successfully"
                if kind is ProviderKind.DOCTOR
                else "Medical test appointment cancelled successfully"
            ),
        )

    async def upcoming(self, patient_id: int, kind: ProviderKind) -> List[Reservation]:
        """Active reservations of a patient."""
        return await self._store.list_active(patient_id, kind)

    async def canceled(self, patient_id: int, kind: ProviderKind) -> List[CanceledReservation]:
        """Canceled reservations of a patient."""
        return await self._store.list_canceled(patient_id, kind)
