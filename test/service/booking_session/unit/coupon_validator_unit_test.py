import pytest

from src.platform.exception.exceptions import BackendUnavailableError
from src.service.booking_session.app.command.coupon_validator import (
    EMPTY_CODE_REASON,
    CouponValidator,
)
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)


@pytest.mark.unit
class TestApply:
    @pytest.mark.asyncio
    async def test_empty_code_is_rejected_without_a_call(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        result = await coupon_validator.apply(code='   ', item_id='spiti-valley', subtotal=25000)

        assert result == CouponRejected(reason=EMPTY_CODE_REASON)
        assert coupon_api.validate_calls == []

    @pytest.mark.asyncio
    async def test_code_is_trimmed_and_upper_cased(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        result = await coupon_validator.apply(
            code='  save2500\t', item_id='spiti-valley', subtotal=25000
        )

        assert isinstance(result, CouponApplication)
        assert coupon_api.validate_calls[0]['code'] == 'SAVE2500'

    @pytest.mark.asyncio
    async def test_server_discount_is_kept_verbatim(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        # 10% of 25000 capped at 1999 by the server; nothing is recomputed locally
        coupon_api.result = CouponApplication(coupon_id='c-7', code='TENOFF', discount=1999)

        result = await coupon_validator.apply(code='tenoff', item_id='x', subtotal=25000)

        assert result == CouponApplication(coupon_id='c-7', code='TENOFF', discount=1999)

    @pytest.mark.asyncio
    async def test_server_reason_is_returned_as_is(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        coupon_api.result = CouponRejected(reason='Minimum purchase of ₹20000 required')

        result = await coupon_validator.apply(code='BIG', item_id='x', subtotal=100)

        assert result == CouponRejected(reason='Minimum purchase of ₹20000 required')

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        coupon_api.error = BackendUnavailableError('Booking service is temporarily unavailable')

        with pytest.raises(BackendUnavailableError):
            await coupon_validator.apply(code='SAVE', item_id='x', subtotal=100)


@pytest.mark.unit
class TestListOffers:
    @pytest.mark.asyncio
    async def test_eligibility_hint_uses_minimum_purchase(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        coupon_api.offers = [
            CouponOffer(code='SMALL', min_purchase=0),
            CouponOffer(code='BIG', min_purchase=50000),
        ]

        views = await coupon_validator.list_offers(subtotal=25000)

        assert [(view.offer.code, view.eligible) for view in views] == [
            ('SMALL', True),
            ('BIG', False),
        ]

    @pytest.mark.asyncio
    async def test_offers_are_cached_until_ttl(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        await coupon_validator.list_offers(subtotal=0)
        await coupon_validator.list_offers(subtotal=0)
        assert coupon_api.list_calls == 1

        # Age the cached entry past the TTL
        assert coupon_validator._offer_cache is not None
        coupon_validator._offer_cache['timestamp'] -= 301
        await coupon_validator.list_offers(subtotal=0)

        assert coupon_api.list_calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(
        self, coupon_validator: CouponValidator, coupon_api
    ) -> None:
        await coupon_validator.list_offers(subtotal=0)

        coupon_validator.invalidate_offers()
        await coupon_validator.list_offers(subtotal=0)

        assert coupon_api.list_calls == 2
