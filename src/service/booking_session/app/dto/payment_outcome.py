from typing import Optional

import attrs

from src.service.booking_session.domain.entity.payment_attempt_entity import PaymentAttempt
from src.service.booking_session.domain.enum.payment_state import (
    PaymentAttemptStatus,
    PaymentState,
)
from src.service.booking_session.domain.value_object.payment import CheckoutConfig


@attrs.define(frozen=True)
class PaymentOutcome:
    state: PaymentState
    status: Optional[PaymentAttemptStatus] = None
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    booking_id: Optional[str] = None
    booking_reference: Optional[str] = None
    message: Optional[str] = None
    checkout: Optional[CheckoutConfig] = None

    @classmethod
    def idle(cls) -> 'PaymentOutcome':
        return cls(state=PaymentState.IDLE)

    @classmethod
    def from_attempt(cls, attempt: PaymentAttempt) -> 'PaymentOutcome':
        return cls(
            state=attempt.state,
            status=attempt.status,
            order_id=attempt.order_id,
            payment_id=attempt.payment_id,
            booking_id=attempt.booking_id,
            booking_reference=attempt.booking_reference,
            message=attempt.message,
            # The widget config is only meaningful while the widget may be open
            checkout=attempt.checkout if attempt.state is PaymentState.GATEWAY_OPEN else None,
        )
