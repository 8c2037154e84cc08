"""
Clinic Appointments API Server.

A FastAPI application exposing doctor appointments and medical-test
appointments: slot availability, booking, cancellation and the
patient's upcoming and canceled listings. Callers authenticate with a
bearer token that resolves to a patient.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Callable, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from clinic.config import get_settings
from clinic.models.provider import Patient, ProviderKind, ProviderRef
from clinic.models.reservation import Reservation
from clinic.models.results import OperationResult
from clinic.services.availability import AvailabilityEngine
from clinic.services.directory import Directory, create_directory
from clinic.services.notifications import NotificationService
from clinic.services.schedule import normalize_request_time
from clinic.services.store import ReservationStore

# ============================================================================
# Request Models
# ============================================================================


class AppointmentRequest(BaseModel):
    """Common fields of a booking request."""

    doc_id: int = Field(description="ID of the doctor")
    appoint_date: date = Field(description="Appointment date in YYYY-MM-DD format")
    appoint_time: str = Field(description="Appointment time in 24-hour H:MM format")

    @field_validator("appoint_time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        """Normalize "9:05" to "09:05"; reject anything that is not H:MM."""
        normalized = normalize_request_time(v)
        if normalized is None:
            raise ValueError("The appoint time must be a 24-hour time in H:MM format.")
        return normalized


class MedicalTestAppointmentRequest(AppointmentRequest):
    """Booking request for a medical test, with its referring doctor."""

    test_id: int = Field(description="ID of the medical test")


# ============================================================================
# Dependencies
# ============================================================================

auth_scheme = HTTPBearer(auto_error=False)


class AuthenticationError(Exception):
    """Raised when a request carries no valid patient token."""


def get_engine(request: Request) -> AvailabilityEngine:
    return request.app.state.engine


def get_directory(request: Request) -> Directory:
    return request.app.state.directory


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier


async def get_current_patient(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    directory: Directory = Depends(get_directory),
) -> Patient:
    """Resolve the bearer token to the calling patient."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()
    patient = await directory.get_patient_by_token(credentials.credentials)
    if patient is None:
        raise AuthenticationError()
    return patient


# ============================================================================
# Response Helpers
# ============================================================================


def respond(status_code: int, message: str, **data) -> JSONResponse:
    """Standard response body: payload plus message and status."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({**data, "message": message, "status": status_code}),
    )


def respond_error(result: OperationResult) -> JSONResponse:
    return respond(result.http_status, result.message)


def appointment_payload(reservation: Reservation) -> dict:
    payload = {
        "id": reservation.id,
        "pat_id": reservation.patient_id,
        "doc_id": reservation.doctor_id,
        "appoint_date": reservation.appoint_date,
        "appoint_time": reservation.appoint_time,
    }
    if reservation.kind is ProviderKind.MEDICAL_TEST:
        payload["test_id"] = reservation.test_id
    return payload


async def appointment_details(
    reservations: List[Reservation], directory: Directory
) -> List[dict]:
    """Listing rows for a patient's reservations, with provider names."""
    details = []
    for reservation in reservations:
        provider = await directory.get_provider(reservation.provider)
        row = {
            "appointment_id": reservation.id,
            "appointment_date": reservation.appoint_date,
            "appointment_time": reservation.appoint_time,
        }
        if reservation.kind is ProviderKind.MEDICAL_TEST:
            row["test_name"] = provider.name if provider else None
        else:
            row["doctor_name"] = provider.name if provider else None
            row["specialization"] = provider.specialization if provider else None
        details.append(row)
    return details


async def notify_booked(
    notifier: NotificationService, directory: Directory, reservation: Reservation
) -> None:
    provider = await directory.get_provider(reservation.provider)
    provider_name = provider.name if provider else str(reservation.provider.id)
    await notifier.appointment_booked(reservation, provider_name)


# ============================================================================
# FastAPI Application
# ============================================================================


def create_app(
    directory: Optional[Directory] = None,
    store: Optional[ReservationStore] = None,
    notifier: Optional[NotificationService] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the API application.

    Collaborators default to the ones selected by settings; tests pass
    their own directory, store and clock.
    """
    settings = get_settings()
    directory = directory or create_directory()
    store = store or ReservationStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(f"Starting {settings.app_name}")
        yield
        logger.info(f"Shutting down {settings.app_name}")
        await directory.close()

    app = FastAPI(
        title=settings.app_name,
        description="Appointment booking for doctors and medical tests",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.directory = directory
    app.state.store = store
    app.state.notifier = notifier or NotificationService()
    app.state.engine = AvailabilityEngine(directory, store, now=now)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        return respond(status.HTTP_401_UNAUTHORIZED, "Unauthenticated. Please log in.")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return respond(
            422,
            "Validation failed",
            errors=exc.errors(),
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    # ------------------------------------------------------------------
    # Doctor appointments
    # ------------------------------------------------------------------

    @app.get("/api/appointments/doctors/available/{doc_id}")
    async def get_available_appointments(
        doc_id: int,
        day: Optional[date] = Query(default=None, alias="date", description="Defaults to today"),
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
    ):
        """Get available appointment times for a doctor on a date."""
        result = await engine.list_available(ProviderRef.doctor(doc_id), day)
        if not result.success:
            return respond_error(result)
        return respond(
            status.HTTP_200_OK,
            result.message,
            available_appointments=result.slots,
            date=result.date,
        )

    @app.post("/api/appointments/book")
    async def book_appointment(
        body: AppointmentRequest,
        background_tasks: BackgroundTasks,
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
        notifier: NotificationService = Depends(get_notifier),
    ):
        """Book an appointment with a doctor for the calling patient."""
        result = await engine.book(
            ProviderRef.doctor(body.doc_id), patient.id, body.appoint_date, body.appoint_time
        )
        if not result.success:
            return respond_error(result)

        background_tasks.add_task(notify_booked, notifier, directory, result.reservation)
        return respond(
            status.HTTP_200_OK,
            result.message,
            appointment=appointment_payload(result.reservation),
        )

    @app.delete("/api/appointments/cancel/{appointment_id}")
    async def cancel_appointment(
        appointment_id: int,
        background_tasks: BackgroundTasks,
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        notifier: NotificationService = Depends(get_notifier),
    ):
        """Cancel one of the calling patient's doctor appointments."""
        result = await engine.cancel(appointment_id, patient.id, ProviderKind.DOCTOR)
        if not result.success:
            return respond_error(result)

        background_tasks.add_task(notifier.appointment_canceled, result.canceled)
        return respond(
            status.HTTP_200_OK,
            result.message,
            appointment=appointment_payload(result.canceled),
        )

    @app.get("/api/appointments/upcoming")
    async def get_upcoming_appointments(
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
    ):
        """List the calling patient's active doctor appointments."""
        reservations = await engine.upcoming(patient.id, ProviderKind.DOCTOR)
        if not reservations:
            return respond(
                status.HTTP_404_NOT_FOUND, "No upcoming appointments found for this patient."
            )
        return respond(
            status.HTTP_200_OK,
            "Upcoming appointments retrieved successfully",
            appointment_details=await appointment_details(reservations, directory),
        )

    @app.get("/api/appointments/canceled")
    async def get_canceled_appointments(
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
    ):
        """List the calling patient's canceled doctor appointments."""
        reservations = await engine.canceled(patient.id, ProviderKind.DOCTOR)
        if not reservations:
            return respond(
                status.HTTP_404_NOT_FOUND, "No canceled appointments found for this patient."
            )
        return respond(
            status.HTTP_200_OK,
            "Canceled appointments retrieved successfully",
            appointment_details=await appointment_details(reservations, directory),
        )

    # ------------------------------------------------------------------
    # Medical-test appointments
    # ------------------------------------------------------------------

    @app.get("/api/medical-test-appointments/tests/available/{test_id}")
    async def get_available_tests(
        test_id: int,
        day: Optional[date] = Query(default=None, alias="date", description="Defaults to today"),
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
    ):
        """Get available appointment times for a medical test on a date."""
        result = await engine.list_available(ProviderRef.medical_test(test_id), day)
        if not result.success:
            return respond_error(result)
        return respond(
            status.HTTP_200_OK,
            result.message,
            available_appointments=result.slots,
            date=result.date,
        )

    @app.post("/api/medical-test-appointments/appoint")
    async def appoint_test(
        body: MedicalTestAppointmentRequest,
        background_tasks: BackgroundTasks,
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
        notifier: NotificationService = Depends(get_notifier),
    ):
        """Book a medical test for the calling patient."""
        result = await engine.book(
            ProviderRef.medical_test(body.test_id),
            patient.id,
            body.appoint_date,
            body.appoint_time,
            doctor_id=body.doc_id,
        )
        if not result.success:
            return respond_error(result)

        background_tasks.add_task(notify_booked, notifier, directory, result.reservation)
        return respond(
            status.HTTP_200_OK,
            result.message,
            appointment=appointment_payload(result.reservation),
        )

    @app.delete("/api/medical-test-appointments/cancel/{appointment_id}")
    async def cancel_test(
        appointment_id: int,
        background_tasks: BackgroundTasks,
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        notifier: NotificationService = Depends(get_notifier),
    ):
        """Cancel one of the calling patient's medical-test appointments."""
        result = await engine.cancel(appointment_id, patient.id, ProviderKind.MEDICAL_TEST)
        if not result.success:
            return respond_error(result)

        background_tasks.add_task(notifier.appointment_canceled, result.canceled)
        return respond(
            status.HTTP_200_OK,
            result.message,
            appointment=appointment_payload(result.canceled),
        )

    @app.get("/api/medical-test-appointments/upcoming")
    async def get_upcoming_medical_test_appointments(
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
    ):
        """List the calling patient's active medical-test appointments."""
        reservations = await engine.upcoming(patient.id, ProviderKind.MEDICAL_TEST)
        if not reservations:
            return respond(
                status.HTTP_404_NOT_FOUND,
                "No upcoming medical test appointments found for this patient.",
            )
        return respond(
            status.HTTP_200_OK,
            "Upcoming medical test appointments retrieved successfully",
            appointment_details=await appointment_details(reservations, directory),
        )

    @app.get("/api/medical-test-appointments/canceled")
    async def get_canceled_medical_test_appointments(
        patient: Patient = Depends(get_current_patient),
        engine: AvailabilityEngine = Depends(get_engine),
        directory: Directory = Depends(get_directory),
    ):
        """List the calling patient's canceled medical-test appointments."""
        reservations = await engine.canceled(patient.id, ProviderKind.MEDICAL_TEST)
        if not reservations:
            return respond(
                status.HTTP_404_NOT_FOUND,
                "No canceled medical test appointments found for this patient.",
            )
        return respond(
            status.HTTP_200_OK,
            "Canceled medical test appointments retrieved successfully",
            appointment_details=await appointment_details(reservations, directory),
        )

    return app


app = create_app()


# ============================================================================
# Run Server
# ============================================================================


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the appointments API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "clinic.api.server:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
