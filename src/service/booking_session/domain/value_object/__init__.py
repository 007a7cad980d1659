"""Booking Session Value Objects"""

from src.service.booking_session.domain.value_object.catalog_item import (
    DEFAULT_ADD_ONS,
    AddOn,
    CatalogItem,
)
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.field_error import FieldError
from src.service.booking_session.domain.value_object.payment import (
    BookingRecord,
    CheckoutConfig,
    GatewayCancelled,
    GatewayFailed,
    GatewayOrder,
    GatewayResult,
    PaymentConfirmation,
    UnrecordedPayment,
    VerifiedPayment,
)
from src.service.booking_session.domain.value_object.price_breakdown import PriceBreakdown
from src.service.booking_session.domain.value_object.traveler import Traveler

__all__ = [
    'DEFAULT_ADD_ONS',
    'AddOn',
    'BookingRecord',
    'CatalogItem',
    'CheckoutConfig',
    'CouponApplication',
    'CouponOffer',
    'CouponRejected',
    'DraftPatch',
    'FieldError',
    'GatewayCancelled',
    'GatewayFailed',
    'GatewayOrder',
    'GatewayResult',
    'PaymentConfirmation',
    'PriceBreakdown',
    'Traveler',
    'UnrecordedPayment',
    'VerifiedPayment',
]
