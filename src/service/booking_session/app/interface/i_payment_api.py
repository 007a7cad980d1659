from abc import ABC, abstractmethod

from src.service.booking_session.domain.value_object.payment import (
    GatewayOrder,
    PaymentConfirmation,
    VerifiedPayment,
)


class IPaymentApi(ABC):
    """Backend side of the gateway handshake"""

    @abstractmethod
    async def get_public_key(self) -> str:
        """Empty string when the gateway is not configured"""
        pass

    @abstractmethod
    async def create_order(
        self, *, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> GatewayOrder:
        pass

    @abstractmethod
    async def verify(self, *, confirmation: PaymentConfirmation) -> VerifiedPayment:
        """Raises RejectionError when the signature does not check out"""
        pass
