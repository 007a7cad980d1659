from typing import Any, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_booking_api import IBookingApi


class GetBookingUseCase:
    def __init__(self, booking_api: IBookingApi) -> None:
        self.booking_api = booking_api

    @classmethod
    @inject
    def depends(
        cls,
        booking_api: IBookingApi = Depends(Provide[Container.booking_api]),
    ) -> Self:
        return cls(booking_api=booking_api)

    @Logger.io
    async def get_booking(self, *, booking_id: str) -> dict[str, Any]:
        """Booking record for the confirmation view"""
        booking = await self.booking_api.get_booking(booking_id=booking_id)

        if not booking:
            raise NotFoundError('Booking not found')

        return booking
