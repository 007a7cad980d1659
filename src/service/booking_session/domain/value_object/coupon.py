from typing import Optional

import attrs


@attrs.define(frozen=True)
class CouponApplication:
    """Server-issued coupon result; discount is stored verbatim, never recomputed here"""

    coupon_id: str
    code: str
    discount: int


@attrs.define(frozen=True)
class CouponRejected:
    reason: str


@attrs.define(frozen=True)
class CouponOffer:
    """Published offer, used only for the optimistic eligibility hint"""

    code: str
    description: str = ''
    discount_type: str = 'fixed'  # percentage/fixed
    discount_value: int = 0
    min_purchase: int = 0
    max_discount: Optional[int] = None

    def is_eligible(self, *, subtotal: int) -> bool:
        return subtotal >= self.min_purchase
