from src.platform.exception.exceptions import NotFoundError, RejectionError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_coupon_api import ICouponApi
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)
from src.service.booking_session.driven_adapter.http.backend_http_client import BackendHttpClient


class CouponApiImpl(ICouponApi):
    def __init__(self, *, http_client: BackendHttpClient) -> None:
        self.http_client = http_client

    @Logger.io
    async def validate(
        self, *, code: str, item_id: str, subtotal: int
    ) -> CouponApplication | CouponRejected:
        try:
            data = await self.http_client.post(
                '/coupons/validate',
                operation='validate_coupon',
                json={'code': code, 'journeyId': item_id, 'subtotal': subtotal},
            )
        except (RejectionError, NotFoundError) as e:
            # Server reasons ("Invalid coupon code", "Minimum purchase of ...") are shown as-is
            return CouponRejected(reason=e.message)

        return CouponApplication(
            coupon_id=str(data.get('couponId', '')),
            code=str(data.get('code', code)),
            discount=int(data.get('discount', 0)),
        )

    @Logger.io
    async def list_active(self) -> list[CouponOffer]:
        data = await self.http_client.get('/coupons/active', operation='list_coupons')
        return [
            CouponOffer(
                code=str(raw.get('code', '')),
                description=str(raw.get('description') or ''),
                discount_type=str(raw.get('discountType') or 'fixed'),
                discount_value=int(raw.get('discountValue') or 0),
                min_purchase=int(raw.get('minPurchase') or 0),
                max_discount=int(raw['maxDiscount']) if raw.get('maxDiscount') else None,
            )
            for raw in data or ()
        ]
