"""
Production FastAPI Application

Booking session service with Kvrocks draft storage and background checkouts.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.platform.state.kvrocks_client import kvrocks_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Booking Session] Starting up...')

    # Setup OpenTelemetry tracing
    tracing = TracingConfig(service_name='booking-session-service')
    tracing.setup()
    Logger.base.info('📊 [Booking Session] OpenTelemetry tracing configured')

    # Wire dependency injection for all modules
    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Booking Session] Dependency injection wired')

    # Auto-instrument Redis/Kvrocks and outbound backend calls
    tracing.instrument_redis()
    tracing.instrument_httpx()
    Logger.base.info('📊 [Booking Session] Redis + httpx instrumentation configured')

    # Initialize Kvrocks connection pool (fail-fast)
    if settings.DRAFT_STORE_BACKEND == 'kvrocks':
        await kvrocks_client.initialize()
        Logger.base.info('📡 [Booking Session] Kvrocks initialized')
    else:
        Logger.base.warning('⚠️ [Booking Session] Using in-memory draft store')

    Logger.base.info('✅ [Booking Session] All services initialized')

    # Task group for checkouts that wait on the browser past their request
    async with anyio.create_task_group() as tg:
        container.task_group.override(tg)
        Logger.base.info('✅ [Booking Session] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Booking Session] Shutting down...')
        tg.cancel_scope.cancel()

    container.task_group.reset_override()

    # Close backend HTTP client
    await container.backend_http_client().aclose()
    Logger.base.info('🌐 [Booking Session] Backend HTTP client closed')

    # Disconnect Kvrocks
    await kvrocks_client.disconnect()
    Logger.base.info('📡 [Booking Session] Kvrocks disconnected')

    # Shutdown tracing (flush remaining spans)
    tracing.shutdown()
    Logger.base.info('📊 [Booking Session] Tracing shutdown complete')

    # Unwire DI
    container.unwire()

    Logger.base.info('👋 [Booking Session] Shutdown complete')


# Create FastAPI app using shared factory
app = create_app(
    lifespan=lifespan,
    description='Booking Session Service - traveler details, pricing, coupons and checkout',
)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
