"""Booking Session Domain Enums"""

from src.service.booking_session.domain.enum.add_on_pricing import AddOnPricing
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.enum.gender import Gender
from src.service.booking_session.domain.enum.payment_state import (
    PaymentAttemptStatus,
    PaymentState,
)
from src.service.booking_session.domain.enum.room_tier import RoomTier

__all__ = [
    'AddOnPricing',
    'BookingStep',
    'Gender',
    'PaymentAttemptStatus',
    'PaymentState',
    'RoomTier',
]
