"""
Payment value objects

Everything the orchestrator exchanges with the backend and the gateway widget.
"""

from typing import Optional, Union

import attrs


@attrs.define(frozen=True)
class GatewayOrder:
    """One-time order recorded by the backend for an exact amount and currency"""

    order_id: str
    amount: int  # Minor units as reported by the gateway (paise)
    currency: str
    receipt: str = ''


@attrs.define(frozen=True)
class CheckoutConfig:
    """What the browser needs to open the gateway widget"""

    key: str
    order_id: str
    amount: int
    currency: str
    name: str
    description: str
    prefill_name: str = ''
    prefill_email: str = ''
    prefill_contact: str = ''


@attrs.define(frozen=True)
class PaymentConfirmation:
    """Signed gateway success callback. Not proof of payment until verified server-side."""

    order_id: str
    payment_id: str
    signature: str


@attrs.define(frozen=True)
class GatewayCancelled:
    reason: str = 'Payment cancelled'


@attrs.define(frozen=True)
class GatewayFailed:
    description: str
    payment_id: Optional[str] = None


GatewayResult = Union[PaymentConfirmation, GatewayCancelled, GatewayFailed]


@attrs.define(frozen=True)
class VerifiedPayment:
    order_id: str
    payment_id: str
    status: str = ''
    amount: Optional[float] = None


@attrs.define(frozen=True)
class BookingRecord:
    booking_id: str
    booking_reference: str = ''
    details: dict = attrs.field(factory=dict, eq=False)


@attrs.define(frozen=True)
class UnrecordedPayment:
    """Recovery key for a captured payment that has no booking record"""

    order_id: str
    payment_id: str
    message: str
