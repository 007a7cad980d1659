"""Application layer DTOs"""

from src.service.booking_session.app.dto.coupon_outcome import CouponOutcome, OfferView
from src.service.booking_session.app.dto.payment_outcome import PaymentOutcome
from src.service.booking_session.app.dto.step_result import StepResult

__all__ = ['CouponOutcome', 'OfferView', 'PaymentOutcome', 'StepResult']
