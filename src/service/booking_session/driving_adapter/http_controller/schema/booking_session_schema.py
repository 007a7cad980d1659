from datetime import date
from typing import List, Optional

import attrs
from pydantic import BaseModel, ConfigDict, Field

from src.service.booking_session.app.command.step_sequencer import NavigationDirection
from src.service.booking_session.app.dto.payment_outcome import PaymentOutcome
from src.service.booking_session.app.dto.step_result import StepResult
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.gender import Gender
from src.service.booking_session.domain.enum.room_tier import RoomTier
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.traveler import Traveler


# ========== Requests ==========


class TravelerSchema(BaseModel):
    name: str = ''
    age: Optional[int] = None
    gender: Optional[Gender] = None
    emergency_contact: str = ''


class DraftPatchRequest(BaseModel):
    """Partial step output; omitted fields keep their current value"""

    departure_date: Optional[date] = None
    traveler_count: Optional[int] = None
    travelers: Optional[List[TravelerSchema]] = None
    room_tier: Optional[RoomTier] = None
    add_on_ids: Optional[List[str]] = None
    special_requests: Optional[str] = None
    email: Optional[str] = None

    class Config:
        json_schema_extra = {
            'examples': [
                {
                    'departure_date': '2025-03-14',
                    'traveler_count': 2,
                    'email': 'asha@example.com',
                    'travelers': [
                        {
                            'name': 'Asha Rao',
                            'age': 34,
                            'gender': 'female',
                            'emergency_contact': '+91 98765 43210',
                        },
                        {
                            'name': 'Vikram Rao',
                            'age': 36,
                            'gender': 'male',
                            'emergency_contact': '+91 98765 43211',
                        },
                    ],
                },
                {'room_tier': 'single', 'add_on_ids': ['insurance']},
            ]
        }

    def to_patch(self) -> DraftPatch:
        return DraftPatch(
            departure_date=self.departure_date,
            traveler_count=self.traveler_count,
            travelers=(
                tuple(Traveler(**traveler.model_dump()) for traveler in self.travelers)
                if self.travelers is not None
                else None
            ),
            room_tier=self.room_tier,
            add_on_ids=tuple(self.add_on_ids) if self.add_on_ids is not None else None,
            special_requests=self.special_requests,
            email=self.email,
        )


class NavigateRequest(BaseModel):
    direction: NavigationDirection

    class Config:
        json_schema_extra = {'example': {'direction': 'back'}}


class ApplyCouponRequest(BaseModel):
    code: str

    class Config:
        json_schema_extra = {'example': {'code': 'WELCOME500'}}


class PaymentCallbackRequest(BaseModel):
    """Signed success payload exactly as the gateway widget hands it over"""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

    class Config:
        json_schema_extra = {
            'example': {
                'razorpay_order_id': 'order_N5xYz1',
                'razorpay_payment_id': 'pay_N5xYz9',
                'razorpay_signature': 'a1b2c3...',
            }
        }


class PaymentDismissRequest(BaseModel):
    order_id: str
    reason: str = 'Payment cancelled'


class PaymentFailedRequest(BaseModel):
    order_id: str
    description: str
    payment_id: Optional[str] = None


# ========== Responses ==========


class PriceBreakdownResponse(BaseModel):
    base_price: int
    room_upgrade_total: int
    add_ons_total: int
    subtotal: int
    discount: int
    taxable_amount: int
    taxes: int
    grand_total: int


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    discount: int


class UnrecordedPaymentResponse(BaseModel):
    order_id: str
    payment_id: str
    message: str


class DraftResponse(BaseModel):
    item_id: str
    traveler_count: int
    travelers: List[TravelerSchema]
    departure_date: Optional[date] = None
    room_tier: RoomTier
    add_on_ids: List[str]
    special_requests: str
    email: str
    coupon: Optional[CouponResponse] = None
    price: Optional[PriceBreakdownResponse] = None
    unrecorded_payment: Optional[UnrecordedPaymentResponse] = None

    @classmethod
    def from_draft(cls, draft: BookingDraft) -> 'DraftResponse':
        return cls(
            item_id=draft.item_id,
            traveler_count=draft.traveler_count,
            travelers=[
                TravelerSchema(
                    name=traveler.name,
                    age=traveler.age,
                    gender=traveler.gender,
                    emergency_contact=traveler.emergency_contact,
                )
                for traveler in draft.travelers
            ],
            departure_date=draft.departure_date,
            room_tier=draft.room_tier,
            add_on_ids=list(draft.add_on_ids),
            special_requests=draft.special_requests,
            email=draft.email,
            coupon=CouponResponse(**_as_dict(draft.coupon)) if draft.coupon else None,
            price=PriceBreakdownResponse(**_as_dict(draft.price)) if draft.price else None,
            unrecorded_payment=(
                UnrecordedPaymentResponse(**_as_dict(draft.unrecorded_payment))
                if draft.unrecorded_payment
                else None
            ),
        )


class FieldErrorResponse(BaseModel):
    field: str
    message: str


class BookingSessionResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'step': 2,
                'is_open': True,
                'errors': [],
                'draft': {
                    'item_id': 'spiti-valley-winter',
                    'traveler_count': 2,
                    'room_tier': 'double',
                    'add_on_ids': [],
                    'price': {
                        'base_price': 25000,
                        'room_upgrade_total': 0,
                        'add_ons_total': 0,
                        'subtotal': 25000,
                        'discount': 0,
                        'taxable_amount': 25000,
                        'taxes': 4500,
                        'grand_total': 29500,
                    },
                },
            }
        }
    )

    step: int
    is_open: bool
    draft: DraftResponse
    errors: List[FieldErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: StepResult) -> 'BookingSessionResponse':
        return cls(
            step=int(result.step),
            is_open=result.is_open,
            draft=DraftResponse.from_draft(result.draft),
            errors=[FieldErrorResponse(field=e.field, message=e.message) for e in result.errors],
        )


class CouponOutcomeResponse(BaseModel):
    applied: bool
    reason: Optional[str] = None
    draft: DraftResponse


class CouponOfferResponse(BaseModel):
    code: str
    description: str
    discount_type: str
    discount_value: int
    min_purchase: int
    max_discount: Optional[int] = None
    eligible: bool


class CheckoutConfigResponse(BaseModel):
    key: str
    order_id: str
    amount: int
    currency: str
    name: str
    description: str
    prefill_name: str
    prefill_email: str
    prefill_contact: str


class PaymentStatusResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'state': 'gateway_open',
                'status': None,
                'order_id': 'order_N5xYz1',
                'checkout': {
                    'key': 'rzp_test_abc',
                    'order_id': 'order_N5xYz1',
                    'amount': 2950000,
                    'currency': 'INR',
                    'name': 'Spiti Valley Winter',
                    'description': 'Booking for Spiti Valley Winter',
                    'prefill_name': 'Asha Rao',
                    'prefill_email': 'asha@example.com',
                    'prefill_contact': '9876543210',
                },
            }
        }
    )

    state: str
    status: Optional[str] = None
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    booking_id: Optional[str] = None
    booking_reference: Optional[str] = None
    message: Optional[str] = None
    checkout: Optional[CheckoutConfigResponse] = None

    @classmethod
    def from_outcome(cls, outcome: PaymentOutcome) -> 'PaymentStatusResponse':
        return cls(
            state=str(outcome.state),
            status=str(outcome.status) if outcome.status else None,
            order_id=outcome.order_id,
            payment_id=outcome.payment_id,
            booking_id=outcome.booking_id,
            booking_reference=outcome.booking_reference,
            message=outcome.message,
            checkout=(
                CheckoutConfigResponse(**_as_dict(outcome.checkout)) if outcome.checkout else None
            ),
        )


def _as_dict(value: object) -> dict:
    return attrs.asdict(value)  # type: ignore[arg-type]
