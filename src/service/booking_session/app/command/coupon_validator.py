import time
from typing import Optional, TypedDict

from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking_session.app.dto.coupon_outcome import OfferView
from src.service.booking_session.app.interface.i_coupon_api import ICouponApi
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)


EMPTY_CODE_REASON = 'Please enter a coupon code'


class OfferCacheEntry(TypedDict):
    offers: list[CouponOffer]
    timestamp: float


class CouponValidator:
    """
    Client side of coupon validation.

    The discount is never computed here: the code and current subtotal go to the
    backend and whatever discount comes back is stored verbatim. The published offer
    list is cached only to show an optimistic minimum-purchase hint; it may be stale
    and never decides acceptance.
    """

    def __init__(self, *, coupon_api: ICouponApi, offer_cache_ttl_seconds: float = 300.0) -> None:
        self.coupon_api = coupon_api
        self.tracer = trace.get_tracer(__name__)
        self._offer_cache: Optional[OfferCacheEntry] = None
        self._offer_cache_ttl_seconds = offer_cache_ttl_seconds

    @Logger.io
    async def apply(
        self, *, code: str, item_id: str, subtotal: int
    ) -> CouponApplication | CouponRejected:
        """
        Returns:
            CouponApplication with the server discount, or CouponRejected(reason).

        Raises:
            BackendUnavailableError: transport failure, safe to retry
        """
        normalized_code = code.strip().upper()
        if not normalized_code:
            # Local validation error, no network call
            metrics.record_coupon_outcome(outcome='local_error')
            return CouponRejected(reason=EMPTY_CODE_REASON)

        with self.tracer.start_as_current_span(
            'use_case.validate_coupon',
            attributes={'coupon.code': normalized_code, 'item.id': item_id, 'subtotal': subtotal},
        ) as span:
            result = await self.coupon_api.validate(
                code=normalized_code, item_id=item_id, subtotal=subtotal
            )

            if isinstance(result, CouponRejected):
                span.set_attribute('coupon.rejected', True)
                metrics.record_coupon_outcome(outcome='rejected')
                Logger.base.info(f'🎟️ [COUPON] {normalized_code} rejected: {result.reason}')
                return result

            span.set_attribute('coupon.discount', result.discount)
            metrics.record_coupon_outcome(outcome='applied')
            Logger.base.info(
                f'🎟️ [COUPON] {result.code} accepted for item {item_id}, discount {result.discount}'
            )
            return result

    def _is_expired(self, *, entry: OfferCacheEntry) -> bool:
        return time.time() - entry['timestamp'] > self._offer_cache_ttl_seconds

    @Logger.io
    async def list_offers(self, *, subtotal: int) -> list[OfferView]:
        """Published offers with an eligibility hint for the current subtotal"""
        entry = self._offer_cache
        if entry is None or self._is_expired(entry=entry):
            offers = await self.coupon_api.list_active()
            entry = OfferCacheEntry(offers=offers, timestamp=time.time())
            self._offer_cache = entry

        return [
            OfferView(offer=offer, eligible=offer.is_eligible(subtotal=subtotal))
            for offer in entry['offers']
        ]

    def invalidate_offers(self) -> None:
        self._offer_cache = None
