"""
Payment Orchestrator States

Idle -> OrderCreated -> GatewayOpen -> Verifying -> BookingCreated
Failure exits: Idle (nothing was captured) and PaidButUnrecorded (captured, no booking).
"""

from enum import StrEnum


class PaymentState(StrEnum):
    IDLE = 'idle'
    ORDER_CREATED = 'order_created'
    GATEWAY_OPEN = 'gateway_open'
    VERIFYING = 'verifying'
    BOOKING_CREATED = 'booking_created'
    PAID_BUT_UNRECORDED = 'paid_but_unrecorded'


class PaymentAttemptStatus(StrEnum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    ABANDONED = 'abandoned'
