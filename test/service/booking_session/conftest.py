"""
Shared fixtures for booking session tests.

Stub classes implement the app interfaces with plain in-memory behavior; tests
configure them through attributes rather than patching.
"""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import pytest

from src.platform.exception.exceptions import NotFoundError
from src.service.booking_session.app.command.booking_flow_registry import BookingFlowRegistry
from src.service.booking_session.app.command.coupon_validator import CouponValidator
from src.service.booking_session.app.command.step_sequencer import StepSequencer
from src.service.booking_session.app.interface.i_booking_api import IBookingApi
from src.service.booking_session.app.interface.i_catalog_query import ICatalogQuery
from src.service.booking_session.app.interface.i_coupon_api import ICouponApi
from src.service.booking_session.app.interface.i_payment_api import IPaymentApi
from src.service.booking_session.app.interface.i_payment_gateway import IPaymentGateway
from src.service.booking_session.domain.enum.gender import Gender
from src.service.booking_session.domain.pricing_engine import PricingPolicy
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.coupon import (
    CouponApplication,
    CouponOffer,
    CouponRejected,
)
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.payment import (
    BookingRecord,
    CheckoutConfig,
    GatewayCancelled,
    GatewayOrder,
    GatewayResult,
    PaymentConfirmation,
    VerifiedPayment,
)
from src.service.booking_session.domain.value_object.traveler import Traveler
from src.service.booking_session.driven_adapter.navigation.in_memory_history_impl import (
    InMemoryHistoryImpl,
)
from src.service.booking_session.driven_adapter.state.in_memory_draft_store_impl import (
    InMemoryDraftStoreImpl,
)


DEPARTURE = date(2025, 3, 14)


# =============================================================================
# Stubs
# =============================================================================


class StubCatalogQuery(ICatalogQuery):
    def __init__(self, *items: CatalogItem) -> None:
        self.items = {item.id: item for item in items}
        self.calls: list[str] = []

    async def get_item(self, *, item_id: str) -> CatalogItem:
        self.calls.append(item_id)
        if item_id not in self.items:
            raise NotFoundError(f'Journey {item_id} not found')
        return self.items[item_id]


class StubCouponApi(ICouponApi):
    def __init__(self) -> None:
        self.result: CouponApplication | CouponRejected = CouponApplication(
            coupon_id='c-1', code='SAVE2500', discount=2500
        )
        self.offers: list[CouponOffer] = []
        self.error: Optional[Exception] = None
        self.validate_calls: list[dict[str, Any]] = []
        self.list_calls = 0

    async def validate(
        self, *, code: str, item_id: str, subtotal: int
    ) -> CouponApplication | CouponRejected:
        self.validate_calls.append({'code': code, 'item_id': item_id, 'subtotal': subtotal})
        if self.error is not None:
            raise self.error
        return self.result

    async def list_active(self) -> list[CouponOffer]:
        self.list_calls += 1
        return list(self.offers)


class StubPaymentApi(IPaymentApi):
    def __init__(self) -> None:
        self.key = 'rzp_test_key'
        self.order_amount: Optional[int] = None  # None -> amount * 100
        self.order_error: Optional[Exception] = None
        self.verify_error: Optional[Exception] = None
        self.order_calls: list[dict[str, Any]] = []
        self.verify_calls: list[PaymentConfirmation] = []

    async def get_public_key(self) -> str:
        return self.key

    async def create_order(
        self, *, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> GatewayOrder:
        self.order_calls.append(
            {'amount': amount, 'currency': currency, 'receipt': receipt, 'notes': notes}
        )
        if self.order_error is not None:
            raise self.order_error
        return GatewayOrder(
            order_id='order_1',
            amount=self.order_amount if self.order_amount is not None else amount * 100,
            currency=currency,
            receipt=receipt,
        )

    async def verify(self, *, confirmation: PaymentConfirmation) -> VerifiedPayment:
        self.verify_calls.append(confirmation)
        if self.verify_error is not None:
            raise self.verify_error
        return VerifiedPayment(
            order_id=confirmation.order_id, payment_id=confirmation.payment_id, status='captured'
        )


class StubBookingApi(IBookingApi):
    def __init__(self) -> None:
        self.error: Optional[Exception] = None
        self.create_calls: list[dict[str, Any]] = []

    async def create_booking(self, *, payload: dict[str, Any]) -> BookingRecord:
        self.create_calls.append(payload)
        if self.error is not None:
            raise self.error
        return BookingRecord(booking_id='bk_1', booking_reference='QS0000BK01')

    async def get_booking(self, *, booking_id: str) -> dict[str, Any]:
        return {'_id': booking_id}


class StubPaymentGateway(IPaymentGateway):
    """Resolves immediately with a preset result"""

    def __init__(self) -> None:
        self.result: GatewayResult = PaymentConfirmation(
            order_id='order_1', payment_id='pay_1', signature='sig_1'
        )
        self.checkout_calls: list[CheckoutConfig] = []
        self.aborted: list[str] = []

    async def checkout(self, *, config: CheckoutConfig) -> GatewayResult:
        self.checkout_calls.append(config)
        return self.result

    async def abort(self, *, order_id: str) -> None:
        self.aborted.append(order_id)
        self.result = GatewayCancelled(reason='Booking was closed')


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def catalog_item() -> CatalogItem:
    return CatalogItem(
        id='spiti-valley',
        title='Spiti Valley Winter',
        unit_price=12500,
        departure_dates=(DEPARTURE, date(2025, 4, 11)),
    )


@pytest.fixture
def pricing_policy() -> PricingPolicy:
    return PricingPolicy(tax_rate=Decimal('0.18'), single_room_fee_per_person=2000)


@pytest.fixture
def coupon_api() -> StubCouponApi:
    return StubCouponApi()


@pytest.fixture
def payment_api() -> StubPaymentApi:
    return StubPaymentApi()


@pytest.fixture
def booking_api() -> StubBookingApi:
    return StubBookingApi()


@pytest.fixture
def payment_gateway() -> StubPaymentGateway:
    return StubPaymentGateway()


@pytest.fixture
def draft_backend() -> dict[str, bytes]:
    return {}


@pytest.fixture
def draft_store(draft_backend: dict[str, bytes]) -> InMemoryDraftStoreImpl:
    return InMemoryDraftStoreImpl(session_id='session-1', backend=draft_backend)


@pytest.fixture
def history() -> InMemoryHistoryImpl:
    return InMemoryHistoryImpl()


@pytest.fixture
def coupon_validator(coupon_api: StubCouponApi) -> CouponValidator:
    return CouponValidator(coupon_api=coupon_api, offer_cache_ttl_seconds=300.0)


@pytest.fixture
def make_sequencer(
    catalog_item: CatalogItem,
    draft_store: InMemoryDraftStoreImpl,
    history: InMemoryHistoryImpl,
    coupon_validator: CouponValidator,
    pricing_policy: PricingPolicy,
) -> Callable[..., StepSequencer]:
    def _make(**overrides: Any) -> StepSequencer:
        kwargs: dict[str, Any] = {
            'item': catalog_item,
            'draft_store': draft_store,
            'history': history,
            'coupon_validator': coupon_validator,
            'pricing_policy': pricing_policy,
            'max_travelers': 10,
        }
        kwargs.update(overrides)
        return StepSequencer(**kwargs)

    return _make


@pytest.fixture
def traveler_info_patch() -> DraftPatch:
    """A complete, valid step-1 output for two travelers"""
    return DraftPatch(
        departure_date=DEPARTURE,
        traveler_count=2,
        email='asha@example.com',
        travelers=(
            Traveler(
                name='Asha Rao',
                age=34,
                gender=Gender.FEMALE,
                emergency_contact='+91 98765 43210',
            ),
            Traveler(
                name='Vikram Rao',
                age=36,
                gender=Gender.MALE,
                emergency_contact='+91 98765 43211',
            ),
        ),
    )


@pytest.fixture
def catalog_query(catalog_item: CatalogItem) -> StubCatalogQuery:
    return StubCatalogQuery(catalog_item)


@pytest.fixture
def flow_registry(
    catalog_query: StubCatalogQuery,
    coupon_validator: CouponValidator,
    payment_api: StubPaymentApi,
    booking_api: StubBookingApi,
    payment_gateway: StubPaymentGateway,
    draft_backend: dict[str, bytes],
    pricing_policy: PricingPolicy,
) -> BookingFlowRegistry:
    def draft_store_factory(*, session_id: str) -> InMemoryDraftStoreImpl:
        return InMemoryDraftStoreImpl(session_id=session_id, backend=draft_backend)

    return BookingFlowRegistry(
        catalog_query=catalog_query,
        coupon_validator=coupon_validator,
        payment_api=payment_api,
        booking_api=booking_api,
        gateway=payment_gateway,
        draft_store_factory=draft_store_factory,
        history_factory=InMemoryHistoryImpl,
        pricing_policy=pricing_policy,
        max_travelers=10,
        currency='INR',
        minor_unit_factor=100,
        support_contact='support@quickescape.example',
        idle_ttl_seconds=1800.0,
    )
