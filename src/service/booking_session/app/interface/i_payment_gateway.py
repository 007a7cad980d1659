from abc import ABC, abstractmethod

from src.service.booking_session.domain.value_object.payment import (
    CheckoutConfig,
    GatewayResult,
)


class IPaymentGateway(ABC):
    """
    The external checkout widget as a one-shot async operation.

    checkout() resolves exactly once per order with a PaymentConfirmation,
    GatewayCancelled or GatewayFailed.
    """

    @abstractmethod
    async def checkout(self, *, config: CheckoutConfig) -> GatewayResult:
        pass

    @abstractmethod
    async def abort(self, *, order_id: str) -> None:
        """Resolve a pending checkout as cancelled, e.g. when the flow is closed"""
        pass
