"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from decimal import Decimal

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings, settings
from src.service.booking_session.app.command.booking_flow_registry import BookingFlowRegistry
from src.service.booking_session.app.command.coupon_validator import CouponValidator
from src.service.booking_session.domain.pricing_engine import PricingPolicy
from src.service.booking_session.driven_adapter.gateway.callback_payment_gateway_impl import (
    CallbackPaymentGatewayImpl,
)
from src.service.booking_session.driven_adapter.http.backend_http_client import BackendHttpClient
from src.service.booking_session.driven_adapter.http.booking_api_impl import BookingApiImpl
from src.service.booking_session.driven_adapter.http.catalog_query_impl import CatalogQueryImpl
from src.service.booking_session.driven_adapter.http.coupon_api_impl import CouponApiImpl
from src.service.booking_session.driven_adapter.http.payment_api_impl import PaymentApiImpl
from src.service.booking_session.driven_adapter.navigation.in_memory_history_impl import (
    InMemoryHistoryImpl,
)
from src.service.booking_session.driven_adapter.state.in_memory_draft_store_impl import (
    InMemoryDraftStoreImpl,
)
from src.service.booking_session.driven_adapter.state.kvrocks_draft_store_impl import (
    KvrocksDraftStoreImpl,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Background task group (set by main.py lifespan)
    # Used for checkouts that outlive the request that started them
    task_group = providers.Object(None)

    # Booking backend (one pooled httpx client shared by every API adapter)
    backend_http_client = providers.Singleton(
        BackendHttpClient,
        base_url=settings.BACKEND_API_BASE_URL,
        timeout_seconds=settings.BACKEND_API_TIMEOUT_SECONDS,
    )
    catalog_query = providers.Singleton(CatalogQueryImpl, http_client=backend_http_client)
    coupon_api = providers.Singleton(CouponApiImpl, http_client=backend_http_client)
    payment_api = providers.Singleton(PaymentApiImpl, http_client=backend_http_client)
    booking_api = providers.Singleton(BookingApiImpl, http_client=backend_http_client)

    # Gateway widget callbacks land here (Singleton: checkouts wait on it across requests)
    payment_gateway = providers.Singleton(
        CallbackPaymentGatewayImpl,
        timeout_seconds=settings.PAYMENT_CHECKOUT_TIMEOUT_SECONDS,
    )

    # Coupon validation with cached offer list
    coupon_validator = providers.Singleton(
        CouponValidator,
        coupon_api=coupon_api,
        offer_cache_ttl_seconds=settings.COUPON_OFFER_CACHE_TTL_SECONDS,
    )

    # Draft store, one instance per browsing session
    in_memory_draft_backend = providers.Singleton(dict)
    draft_store = providers.Selector(
        providers.Object(settings.DRAFT_STORE_BACKEND),
        kvrocks=providers.Factory(
            KvrocksDraftStoreImpl,
            ttl_seconds=settings.DRAFT_TTL_SECONDS,
            key_prefix=settings.DRAFT_KEY_PREFIX,
        ),
        memory=providers.Factory(InMemoryDraftStoreImpl, backend=in_memory_draft_backend),
    )

    # Navigation history, one stack per flow
    history = providers.Factory(InMemoryHistoryImpl)

    pricing_policy = providers.Singleton(
        PricingPolicy,
        tax_rate=Decimal(settings.TAX_RATE),
        single_room_fee_per_person=settings.SINGLE_ROOM_FEE_PER_PERSON,
    )

    # Open booking flows (in memory, per browsing session and item)
    booking_flow_registry = providers.Singleton(
        BookingFlowRegistry,
        catalog_query=catalog_query,
        coupon_validator=coupon_validator,
        payment_api=payment_api,
        booking_api=booking_api,
        gateway=payment_gateway,
        draft_store_factory=draft_store.provider,
        history_factory=history.provider,
        pricing_policy=pricing_policy,
        max_travelers=settings.MAX_TRAVELERS,
        currency=settings.PAYMENT_CURRENCY,
        minor_unit_factor=settings.PAYMENT_MINOR_UNIT_FACTOR,
        support_contact=settings.SUPPORT_CONTACT,
        idle_ttl_seconds=settings.FLOW_IDLE_TTL_SECONDS,
    )


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
