"""
HTTP-level fixtures: the real app factory and router, with the backend-facing
providers overridden by the in-memory stubs from the parent conftest.
"""

from collections.abc import AsyncIterator, Generator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

from src.platform.app_factory import create_app
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.command.booking_flow_registry import BookingFlowRegistry
from src.service.booking_session.driven_adapter.gateway.callback_payment_gateway_impl import (
    CallbackPaymentGatewayImpl,
)


SESSION_HEADERS = {'X-Browsing-Session': 'session-1'}


@asynccontextmanager
async def lifespan_for_tests(app: FastAPI) -> AsyncIterator[None]:
    """No Kvrocks, no tracing exporter; a real task group so checkouts run in the background"""
    Logger.base.info('🧪 [Test App] Starting up...')
    container.wire(modules=WIRE_MODULES)

    async with anyio.create_task_group() as tg:
        container.task_group.override(tg)
        yield
        tg.cancel_scope.cancel()

    container.task_group.reset_override()
    container.unwire()
    Logger.base.info('👋 [Test App] Shutdown complete')


@pytest.fixture
def callback_gateway() -> CallbackPaymentGatewayImpl:
    return CallbackPaymentGatewayImpl(timeout_seconds=5)


@pytest.fixture
def client(
    flow_registry: BookingFlowRegistry,
    callback_gateway: CallbackPaymentGatewayImpl,
    booking_api,
) -> Generator[TestClient, None, None]:
    # Checkouts started over HTTP must wait on the same gateway the callback routes resolve
    flow_registry.gateway = callback_gateway

    app = create_app(
        lifespan=lifespan_for_tests,
        title_suffix=' (Test)',
        service_name='test-booking-session-service',
    )
    with (
        container.booking_flow_registry.override(flow_registry),
        container.payment_gateway.override(callback_gateway),
        container.booking_api.override(booking_api),
        TestClient(app, raise_server_exceptions=False, headers=SESSION_HEADERS) as test_client,
    ):
        yield test_client
