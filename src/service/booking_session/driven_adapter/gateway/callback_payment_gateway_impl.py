"""
Callback Payment Gateway

The checkout widget runs in the browser. checkout() parks the orchestrator on an
anyio Event until the browser reports back through the payment callback, dismiss or
failure endpoints. A widget left open past the timeout counts as abandoned.
"""

from typing import Optional

import anyio
import attrs

from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_payment_gateway import IPaymentGateway
from src.service.booking_session.domain.value_object.payment import (
    CheckoutConfig,
    GatewayCancelled,
    GatewayFailed,
    GatewayResult,
    PaymentConfirmation,
)


@attrs.define
class PendingCheckout:
    config: CheckoutConfig
    event: anyio.Event = attrs.field(factory=anyio.Event)
    result: Optional[GatewayResult] = None


class CallbackPaymentGatewayImpl(IPaymentGateway):
    def __init__(self, *, timeout_seconds: float = 900.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._pending: dict[str, PendingCheckout] = {}

    def has_pending(self, order_id: str) -> bool:
        return order_id in self._pending

    @Logger.io
    async def checkout(self, *, config: CheckoutConfig) -> GatewayResult:
        pending = PendingCheckout(config=config)
        self._pending[config.order_id] = pending
        Logger.base.info(f'💳 [GATEWAY] Waiting for checkout of order {config.order_id}')
        try:
            with anyio.move_on_after(self.timeout_seconds):
                await pending.event.wait()
        finally:
            self._pending.pop(config.order_id, None)

        if pending.result is None:
            Logger.base.warning(f'⏰ [GATEWAY] Checkout for order {config.order_id} timed out')
            return GatewayCancelled(reason='Payment window expired')
        return pending.result

    def complete(self, confirmation: PaymentConfirmation) -> None:
        """Signed success callback from the widget"""
        if not self.has_pending(confirmation.order_id):
            # A payment may have been captured after we stopped waiting
            Logger.base.error(
                f'🚨 [GATEWAY] Late confirmation for order {confirmation.order_id}, '
                f'payment={confirmation.payment_id} needs reconciliation'
            )
        self._resolve(confirmation.order_id, confirmation)

    def dismiss(self, order_id: str, reason: str = 'Payment cancelled') -> None:
        self._resolve(order_id, GatewayCancelled(reason=reason))

    def fail(self, order_id: str, *, description: str, payment_id: Optional[str] = None) -> None:
        self._resolve(order_id, GatewayFailed(description=description, payment_id=payment_id))

    async def abort(self, *, order_id: str) -> None:
        pending = self._pending.get(order_id)
        if pending is not None and pending.result is None:
            pending.result = GatewayCancelled(reason='Booking was closed')
            pending.event.set()

    def _resolve(self, order_id: str, result: GatewayResult) -> None:
        pending = self._pending.get(order_id)
        if pending is None:
            raise ConflictError(f'No checkout is waiting for order {order_id}')
        if pending.result is not None:
            raise ConflictError(f'Checkout for order {order_id} was already reported')
        pending.result = result
        pending.event.set()
