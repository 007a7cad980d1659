from datetime import datetime, timezone
from typing import Optional

import attrs

from src.platform.exception.exceptions import ConflictError
from src.service.booking_session.domain.enum.payment_state import (
    PaymentAttemptStatus,
    PaymentState,
)
from src.service.booking_session.domain.value_object.payment import (
    CheckoutConfig,
    GatewayOrder,
    PaymentConfirmation,
)


_ALLOWED_TRANSITIONS: dict[PaymentState, frozenset[PaymentState]] = {
    PaymentState.IDLE: frozenset({PaymentState.ORDER_CREATED}),
    PaymentState.ORDER_CREATED: frozenset({PaymentState.GATEWAY_OPEN, PaymentState.IDLE}),
    PaymentState.GATEWAY_OPEN: frozenset({PaymentState.VERIFYING, PaymentState.IDLE}),
    PaymentState.VERIFYING: frozenset(
        {PaymentState.BOOKING_CREATED, PaymentState.PAID_BUT_UNRECORDED, PaymentState.IDLE}
    ),
    PaymentState.BOOKING_CREATED: frozenset(),
    PaymentState.PAID_BUT_UNRECORDED: frozenset(),
}


@attrs.define
class PaymentAttempt:
    """
    One checkout cycle. Lives only in memory; the booking record supersedes it.

    order_id and payment_id are never cleared once set: after a captured payment they
    are the only key for manual reconciliation.
    """

    item_id: str
    state: PaymentState = PaymentState.IDLE
    status: Optional[PaymentAttemptStatus] = None
    order: Optional[GatewayOrder] = None
    checkout: Optional[CheckoutConfig] = None
    confirmation: Optional[PaymentConfirmation] = None
    booking_id: Optional[str] = None
    booking_reference: Optional[str] = None
    message: Optional[str] = None
    started_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def order_id(self) -> Optional[str]:
        if self.confirmation:
            return self.confirmation.order_id
        return self.order.order_id if self.order else None

    @property
    def payment_id(self) -> Optional[str]:
        return self.confirmation.payment_id if self.confirmation else None

    @property
    def is_terminal(self) -> bool:
        return self.state in (PaymentState.BOOKING_CREATED, PaymentState.PAID_BUT_UNRECORDED)

    @property
    def is_cancellable(self) -> bool:
        # Once the signed confirmation is in hand the flow must reach a terminal state
        return self.state in (PaymentState.ORDER_CREATED, PaymentState.GATEWAY_OPEN)

    def _move(self, to: PaymentState) -> None:
        if to not in _ALLOWED_TRANSITIONS[self.state]:
            raise ConflictError(f'Illegal payment transition {self.state} -> {to}')
        self.state = to

    def _back_to_idle(self) -> None:
        # Failing before the order exists leaves the attempt where it started
        if self.state is not PaymentState.IDLE:
            self._move(PaymentState.IDLE)

    def _finish(self, status: PaymentAttemptStatus, message: Optional[str]) -> None:
        self.status = status
        self.message = message
        self.finished_at = datetime.now(timezone.utc)

    def mark_order_created(self, order: GatewayOrder) -> None:
        self._move(PaymentState.ORDER_CREATED)
        self.order = order

    def mark_gateway_open(self, checkout: CheckoutConfig) -> None:
        self._move(PaymentState.GATEWAY_OPEN)
        self.checkout = checkout

    def mark_verifying(self, confirmation: PaymentConfirmation) -> None:
        self._move(PaymentState.VERIFYING)
        self.confirmation = confirmation

    def mark_booking_created(self, *, booking_id: str, booking_reference: str) -> None:
        self._move(PaymentState.BOOKING_CREATED)
        self.booking_id = booking_id
        self.booking_reference = booking_reference
        self._finish(PaymentAttemptStatus.SUCCEEDED, None)

    def mark_paid_but_unrecorded(self, message: str) -> None:
        self._move(PaymentState.PAID_BUT_UNRECORDED)
        self._finish(PaymentAttemptStatus.SUCCEEDED, message)

    def mark_abandoned(self, message: str) -> None:
        self._back_to_idle()
        self._finish(PaymentAttemptStatus.ABANDONED, message)

    def mark_failed(self, message: str) -> None:
        self._back_to_idle()
        self._finish(PaymentAttemptStatus.FAILED, message)
