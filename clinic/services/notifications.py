"""
Notification Service - Booking and cancellation notices.

Notices are fire-and-forget: they are logged, and when a webhook is
configured they are also posted to it. Delivery failures are logged
and never reach the request that triggered them.
"""

from typing import Optional

import httpx
from loguru import logger

from clinic.config import get_settings
from clinic.models.reservation import CanceledReservation, Reservation


class NotificationService:
    """
    Sends appointment notices after a successful booking or cancellation.

    The availability engine never calls this service; the request layer
    triggers it once an operation has succeeded.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = get_settings()
        self._webhook_url = webhook_url or self.settings.notification_webhook_url
        self._transport = transport

    async def appointment_booked(self, reservation: Reservation, provider_name: str) -> bool:
        """Log and deliver a booking notice."""
        logger.info("=" * 60)
        logger.info("APPOINTMENT BOOKED")
        logger.info(f"Reservation ID: {reservation.id}")
        logger.info(f"Patient ID: {reservation.patient_id}")
        logger.info(f"Provider: {provider_name} ({reservation.kind.value})")
        logger.info(f"Date/Time: {reservation.appoint_date} {reservation.appoint_time}")
        logger.info("=" * 60)
        return await self._deliver("appointment.booked", reservation.model_dump(mode="json"))

    async def appointment_canceled(self, canceled: CanceledReservation) -> bool:
        """Log and deliver a cancellation notice."""
        logger.info(
            f"Appointment {canceled.id} canceled by patient {canceled.patient_id} "
            f"({canceled.appoint_date} {canceled.appoint_time})"
        )
        return await self._deliver("appointment.canceled", canceled.model_dump(mode="json"))

    async def _deliver(self, event: str, payload: dict) -> bool:
        """
        Post a notice to the webhook, if one is configured.

        Returns:
            True if the notice was delivered
        """
        if not self._webhook_url:
            return False

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.directory_api_timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._webhook_url, json={"event": event, "data": payload}
                )
                response.raise_for_status()
            return True

        except httpx.HTTPError as e:
            logger.error(f"Error delivering {event} notification: {e}")
            return False
