from typing import Any

from src.platform.exception.exceptions import BackendUnavailableError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_booking_api import IBookingApi
from src.service.booking_session.domain.value_object.payment import BookingRecord
from src.service.booking_session.driven_adapter.http.backend_http_client import BackendHttpClient


class BookingApiImpl(IBookingApi):
    def __init__(self, *, http_client: BackendHttpClient) -> None:
        self.http_client = http_client

    @Logger.io
    async def create_booking(self, *, payload: dict[str, Any]) -> BookingRecord:
        data = await self.http_client.post('/bookings', operation='create_booking', json=payload)
        if not isinstance(data, dict) or not data.get('bookingId'):
            raise BackendUnavailableError('Booking response did not carry a booking id')
        return BookingRecord(
            booking_id=str(data['bookingId']),
            booking_reference=str(data.get('bookingReference') or ''),
            details=data,
        )

    @Logger.io
    async def get_booking(self, *, booking_id: str) -> dict[str, Any]:
        data = await self.http_client.get(f'/bookings/{booking_id}', operation='get_booking')
        return data if isinstance(data, dict) else {}
