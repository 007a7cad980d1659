from abc import ABC, abstractmethod

from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)


class ICouponApi(ABC):
    """Remote coupon authority. Discount rules live server-side only."""

    @abstractmethod
    async def validate(
        self, *, code: str, item_id: str, subtotal: int
    ) -> CouponApplication | CouponRejected:
        """
        Returns:
            CouponApplication with the server-computed discount, or CouponRejected
            carrying the server's reason. Transport failures raise BackendUnavailableError.
        """
        pass

    @abstractmethod
    async def list_active(self) -> list[CouponOffer]:
        pass
