"""
Unit tests for the backend HTTP adapters

Uses httpx.MockTransport so the real client code path (envelope unwrapping, error
mapping, auth header) runs without a server.
"""

from collections.abc import Callable

import httpx
import orjson
import pytest

from src.platform.exception.exceptions import (
    BackendUnavailableError,
    NotFoundError,
    RejectionError,
)
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponRejected,
)
from src.service.booking_session.domain.value_object.payment import PaymentConfirmation
from src.service.booking_session.driven_adapter.http.backend_http_client import (
    BackendHttpClient,
    backend_auth_token_var,
)
from src.service.booking_session.driven_adapter.http.booking_api_impl import BookingApiImpl
from src.service.booking_session.driven_adapter.http.catalog_query_impl import CatalogQueryImpl
from src.service.booking_session.driven_adapter.http.coupon_api_impl import CouponApiImpl
from src.service.booking_session.driven_adapter.http.payment_api_impl import PaymentApiImpl


Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> BackendHttpClient:
    return BackendHttpClient(
        base_url='http://backend.test/api/', transport=httpx.MockTransport(handler)
    )


def _json(status: int, body: object) -> httpx.Response:
    return httpx.Response(status, content=orjson.dumps(body))


@pytest.mark.unit
class TestBackendHttpClient:
    @pytest.mark.asyncio
    async def test_unwraps_data_envelope_and_sends_bearer_token(self) -> None:
        # Arrange
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _json(200, {'success': True, 'data': {'key': 'rzp_live'}})

        client = _client(handler)
        token = backend_auth_token_var.set('jwt-abc')

        # Act
        try:
            data = await client.get('/payments/key', operation='get_payment_key')
        finally:
            backend_auth_token_var.reset(token)
            await client.aclose()

        # Assert
        assert data == {'key': 'rzp_live'}
        assert seen[0].url.path == '/api/payments/key'
        assert seen[0].headers['Authorization'] == 'Bearer jwt-abc'

    @pytest.mark.asyncio
    async def test_no_token_no_authorization_header(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _json(200, {'success': True, 'data': []})

        client = _client(handler)
        await client.get('/coupons/active', operation='list_coupons')
        await client.aclose()

        assert 'Authorization' not in seen[0].headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'status, body, error_type, message',
        [
            (
                400,
                {'success': False, 'message': 'Invalid coupon code'},
                RejectionError,
                'Invalid coupon code',
            ),
            (401, {'error': 'Not authorized'}, RejectionError, 'Not authorized'),
            (404, {'message': 'Journey not found'}, NotFoundError, 'Journey not found'),
            (502, None, BackendUnavailableError, 'Booking service error, please try again'),
            (200, {'success': False, 'message': 'Order failed'}, RejectionError, 'Order failed'),
        ],
    )
    async def test_error_mapping(
        self, status: int, body: object, error_type: type, message: str
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if body is None:
                return httpx.Response(status, content=b'<html>bad gateway</html>')
            return _json(status, body)

        client = _client(handler)

        with pytest.raises(error_type) as exc_info:
            await client.post('/anything', operation='test', json={})
        await client.aclose()

        assert exc_info.value.message == message

    @pytest.mark.asyncio
    async def test_transport_error_is_backend_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('connection refused', request=request)

        client = _client(handler)

        with pytest.raises(BackendUnavailableError):
            await client.get('/journeys/x', operation='get_journey')
        await client.aclose()


@pytest.mark.unit
class TestBackendAdapters:
    @pytest.mark.asyncio
    async def test_catalog_item_mapping(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _json(
                200,
                {
                    'success': True,
                    'data': {
                        '_id': 'j-42',
                        'title': 'Spiti Valley Winter',
                        'price': 12500,
                        'departureDates': ['2025-03-14T00:00:00.000Z', 'garbage'],
                    },
                },
            )

        client = _client(handler)
        item = await CatalogQueryImpl(http_client=client).get_item(item_id='spiti-valley')
        await client.aclose()

        assert item.id == 'j-42'
        assert item.unit_price == 12500
        assert [d.isoformat() for d in item.departure_dates] == ['2025-03-14']
        assert item.find_add_on('insurance') is not None

    @pytest.mark.asyncio
    async def test_catalog_item_without_price_is_unusable(self) -> None:
        client = _client(lambda request: _json(200, {'success': True, 'data': {'title': 'x'}}))

        with pytest.raises(BackendUnavailableError):
            await CatalogQueryImpl(http_client=client).get_item(item_id='x')
        await client.aclose()

    @pytest.mark.asyncio
    async def test_coupon_validate_success_and_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            payload = orjson.loads(request.content)
            if payload['code'] == 'SAVE2500':
                return _json(
                    200,
                    {
                        'success': True,
                        'data': {'couponId': 'c-1', 'code': 'SAVE2500', 'discount': 2500},
                    },
                )
            return _json(400, {'success': False, 'message': 'Coupon has expired'})

        client = _client(handler)
        api = CouponApiImpl(http_client=client)

        applied = await api.validate(code='SAVE2500', item_id='j-42', subtotal=25000)
        rejected = await api.validate(code='OLD', item_id='j-42', subtotal=25000)
        await client.aclose()

        assert applied == CouponApplication(coupon_id='c-1', code='SAVE2500', discount=2500)
        assert rejected == CouponRejected(reason='Coupon has expired')

    @pytest.mark.asyncio
    async def test_payment_order_and_verify_requests(self) -> None:
        seen: list[tuple[str, dict]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = orjson.loads(request.content)
            seen.append((request.url.path, payload))
            if request.url.path.endswith('/create-order'):
                return _json(
                    200,
                    {
                        'success': True,
                        'data': {'orderId': 'order_1', 'amount': 2950000, 'currency': 'INR'},
                    },
                )
            return _json(
                200, {'success': True, 'data': {'paymentId': 'pay_1', 'status': 'captured'}}
            )

        client = _client(handler)
        api = PaymentApiImpl(http_client=client)

        order = await api.create_order(
            amount=29500, currency='INR', receipt='receipt_1', notes={'email': 'a@b.c'}
        )
        verified = await api.verify(
            confirmation=PaymentConfirmation(order_id='order_1', payment_id='pay_1', signature='s')
        )
        await client.aclose()

        assert order.order_id == 'order_1'
        assert order.amount == 2950000
        assert seen[0][1]['amount'] == 29500
        assert seen[1][1] == {
            'razorpay_order_id': 'order_1',
            'razorpay_payment_id': 'pay_1',
            'razorpay_signature': 's',
        }
        assert verified.status == 'captured'

    @pytest.mark.asyncio
    async def test_booking_without_id_is_not_trusted(self) -> None:
        client = _client(lambda request: _json(201, {'success': True, 'data': {}}))

        with pytest.raises(BackendUnavailableError):
            await BookingApiImpl(http_client=client).create_booking(payload={})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_booking_created(self) -> None:
        client = _client(
            lambda request: _json(
                201,
                {'success': True, 'data': {'bookingId': 'bk_1', 'bookingReference': 'QS01'}},
            )
        )

        record = await BookingApiImpl(http_client=client).create_booking(payload={'x': 1})
        await client.aclose()

        assert record.booking_id == 'bk_1'
        assert record.booking_reference == 'QS01'
