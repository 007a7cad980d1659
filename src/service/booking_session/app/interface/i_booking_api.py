from abc import ABC, abstractmethod
from typing import Any

from src.service.booking_session.domain.value_object.payment import BookingRecord


class IBookingApi(ABC):
    @abstractmethod
    async def create_booking(self, *, payload: dict[str, Any]) -> BookingRecord:
        """Write-once: callers must not retry this on failure"""
        pass

    @abstractmethod
    async def get_booking(self, *, booking_id: str) -> dict[str, Any]:
        pass
