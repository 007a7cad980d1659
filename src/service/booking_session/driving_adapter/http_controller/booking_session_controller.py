from typing import Any, List, Optional

from anyio.abc import TaskGroup
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Cookie, Depends, Header, Response, status
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import AuthenticationError, ConflictError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.command.booking_flow_registry import (
    BookingFlow,
    BookingFlowRegistry,
)
from src.service.booking_session.app.query.get_booking_use_case import GetBookingUseCase
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.value_object.payment import PaymentConfirmation
from src.service.booking_session.driven_adapter.gateway.callback_payment_gateway_impl import (
    CallbackPaymentGatewayImpl,
)
from src.service.booking_session.driven_adapter.http.backend_http_client import (
    backend_auth_token_var,
)
from src.service.booking_session.driving_adapter.http_controller.schema.booking_session_schema import (
    ApplyCouponRequest,
    BookingSessionResponse,
    CouponOfferResponse,
    CouponOutcomeResponse,
    DraftPatchRequest,
    DraftResponse,
    NavigateRequest,
    PaymentCallbackRequest,
    PaymentDismissRequest,
    PaymentFailedRequest,
    PaymentStatusResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


# === Dependencies ===


async def get_browsing_session(
    x_browsing_session: Optional[str] = Header(None),
    booking_session: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None),
) -> str:
    """Browsing session id from header or cookie; forwards the caller's bearer token"""
    if authorization and authorization.lower().startswith('bearer '):
        backend_auth_token_var.set(authorization[7:].strip())

    session_id = x_browsing_session or booking_session
    if not session_id:
        raise AuthenticationError('Browsing session is required')
    return session_id


@inject
async def get_flow(
    item_id: str,
    session_id: str = Depends(get_browsing_session),
    registry: BookingFlowRegistry = Depends(Provide[Container.booking_flow_registry]),
) -> BookingFlow:
    return registry.get(session_id=session_id, item_id=item_id)


def _ensure_order(flow: BookingFlow, order_id: str) -> None:
    attempt = flow.orchestrator.attempt
    if attempt is None or attempt.order_id != order_id:
        raise ConflictError(f'Order {order_id} does not belong to this booking')


# === Booking lookup (declared before /{item_id} routes) ===


@router.get('/bookings/{booking_id}')
@Logger.io
async def get_booking(
    booking_id: str,
    session_id: str = Depends(get_browsing_session),
    use_case: GetBookingUseCase = Depends(GetBookingUseCase.depends),
) -> dict[str, Any]:
    return await use_case.get_booking(booking_id=booking_id)


# === Wizard ===


@router.post('/{item_id}/open')
@Logger.io
@inject
async def open_booking(
    item_id: str,
    session_id: str = Depends(get_browsing_session),
    registry: BookingFlowRegistry = Depends(Provide[Container.booking_flow_registry]),
) -> BookingSessionResponse:
    with tracer.start_as_current_span('controller.open_booking') as span:
        span.set_attribute('item.id', item_id)
        flow = await registry.open(session_id=session_id, item_id=item_id)
        span.set_attribute('step', int(flow.sequencer.step))
        return BookingSessionResponse.from_result(flow.sequencer.snapshot())


@router.get('/{item_id}')
@Logger.io
async def get_booking_session(flow: BookingFlow = Depends(get_flow)) -> BookingSessionResponse:
    return BookingSessionResponse.from_result(flow.sequencer.snapshot())


@router.post('/{item_id}/advance')
@Logger.io
async def advance_step(
    request: DraftPatchRequest,
    response: Response,
    flow: BookingFlow = Depends(get_flow),
) -> BookingSessionResponse:
    result = await flow.sequencer.advance(request.to_patch())
    if not result.ok:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return BookingSessionResponse.from_result(result)


@router.patch('/{item_id}/draft')
@Logger.io
async def update_draft(
    request: DraftPatchRequest,
    response: Response,
    flow: BookingFlow = Depends(get_flow),
) -> BookingSessionResponse:
    result = await flow.sequencer.update_draft(request.to_patch())
    if not result.ok:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return BookingSessionResponse.from_result(result)


@router.post('/{item_id}/back')
@Logger.io
async def retreat_step(flow: BookingFlow = Depends(get_flow)) -> BookingSessionResponse:
    if flow.sequencer.step is BookingStep.first():
        # Leaving from the first step is a close, with the same payment guards
        return BookingSessionResponse.from_result(await flow.close())
    return BookingSessionResponse.from_result(await flow.sequencer.retreat())


@router.post('/{item_id}/navigate')
@Logger.io
async def navigate_history(
    request: NavigateRequest, flow: BookingFlow = Depends(get_flow)
) -> BookingSessionResponse:
    return BookingSessionResponse.from_result(await flow.sequencer.navigate(request.direction))


@router.post('/{item_id}/close')
@Logger.io
async def close_booking(flow: BookingFlow = Depends(get_flow)) -> BookingSessionResponse:
    return BookingSessionResponse.from_result(await flow.close())


# === Coupon ===


@router.get('/{item_id}/coupon/offers', response_model=List[CouponOfferResponse])
@Logger.io
async def list_coupon_offers(flow: BookingFlow = Depends(get_flow)) -> list[CouponOfferResponse]:
    price = flow.sequencer.draft.price
    views = await flow.sequencer.coupon_validator.list_offers(
        subtotal=price.subtotal if price else 0
    )
    return [
        CouponOfferResponse(
            code=view.offer.code,
            description=view.offer.description,
            discount_type=view.offer.discount_type,
            discount_value=view.offer.discount_value,
            min_purchase=view.offer.min_purchase,
            max_discount=view.offer.max_discount,
            eligible=view.eligible,
        )
        for view in views
    ]


@router.post('/{item_id}/coupon')
@Logger.io
async def apply_coupon(
    request: ApplyCouponRequest,
    response: Response,
    flow: BookingFlow = Depends(get_flow),
) -> CouponOutcomeResponse:
    outcome = await flow.sequencer.apply_coupon(code=request.code)
    if not outcome.applied:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return CouponOutcomeResponse(
        applied=outcome.applied,
        reason=outcome.reason,
        draft=DraftResponse.from_draft(outcome.draft),
    )


@router.delete('/{item_id}/coupon')
@Logger.io
async def remove_coupon(flow: BookingFlow = Depends(get_flow)) -> BookingSessionResponse:
    return BookingSessionResponse.from_result(await flow.sequencer.remove_coupon())


# === Payment ===


@router.post('/{item_id}/payment', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def start_payment(
    flow: BookingFlow = Depends(get_flow),
    task_group: Optional[TaskGroup] = Depends(Provide[Container.task_group]),
) -> PaymentStatusResponse:
    if task_group is None:
        raise RuntimeError('Background task group not initialized')

    with tracer.start_as_current_span('controller.start_payment') as span:
        span.set_attribute('item.id', flow.item_id)
        attempt = flow.orchestrator.begin()
        # The checkout waits on the browser, so it runs past this request
        task_group.start_soon(flow.orchestrator.run_in_background, attempt)
        return PaymentStatusResponse.from_outcome(flow.orchestrator.status())


@router.get('/{item_id}/payment')
@Logger.io
async def get_payment_status(flow: BookingFlow = Depends(get_flow)) -> PaymentStatusResponse:
    return PaymentStatusResponse.from_outcome(flow.orchestrator.status())


@router.post('/{item_id}/payment/callback', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def payment_callback(
    request: PaymentCallbackRequest,
    flow: BookingFlow = Depends(get_flow),
    gateway: CallbackPaymentGatewayImpl = Depends(Provide[Container.payment_gateway]),
) -> PaymentStatusResponse:
    _ensure_order(flow, request.razorpay_order_id)
    gateway.complete(
        PaymentConfirmation(
            order_id=request.razorpay_order_id,
            payment_id=request.razorpay_payment_id,
            signature=request.razorpay_signature,
        )
    )
    return PaymentStatusResponse.from_outcome(flow.orchestrator.status())


@router.post('/{item_id}/payment/dismiss', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def payment_dismissed(
    request: PaymentDismissRequest,
    flow: BookingFlow = Depends(get_flow),
    gateway: CallbackPaymentGatewayImpl = Depends(Provide[Container.payment_gateway]),
) -> PaymentStatusResponse:
    _ensure_order(flow, request.order_id)
    gateway.dismiss(request.order_id, reason=request.reason)
    return PaymentStatusResponse.from_outcome(flow.orchestrator.status())


@router.post('/{item_id}/payment/failed', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
@inject
async def payment_failed(
    request: PaymentFailedRequest,
    flow: BookingFlow = Depends(get_flow),
    gateway: CallbackPaymentGatewayImpl = Depends(Provide[Container.payment_gateway]),
) -> PaymentStatusResponse:
    _ensure_order(flow, request.order_id)
    gateway.fail(request.order_id, description=request.description, payment_id=request.payment_id)
    return PaymentStatusResponse.from_outcome(flow.orchestrator.status())
