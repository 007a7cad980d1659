"""
Payment Orchestrator

Drives one checkout cycle against the backend and the gateway widget:

    Idle -> OrderCreated -> GatewayOpen -> Verifying -> BookingCreated
                                                    \-> PaidButUnrecorded

Verification is the only trust boundary. The booking is created at most once per
verified payment; if that call fails the payment identifiers are kept and surfaced,
never retried automatically.
"""

import re
from typing import Any, Optional

from opentelemetry import trace
import uuid_utils

from src.platform.exception.exceptions import (
    ConflictError,
    CustomBaseError,
    DomainError,
    PaidButUnrecordedError,
    PaymentValidationError,
    RejectionError,
    StepTransitionError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking_session.app.command.step_sequencer import StepSequencer
from src.service.booking_session.app.dto.payment_outcome import PaymentOutcome
from src.service.booking_session.app.interface.i_booking_api import IBookingApi
from src.service.booking_session.app.interface.i_payment_api import IPaymentApi
from src.service.booking_session.app.interface.i_payment_gateway import IPaymentGateway
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.entity.payment_attempt_entity import PaymentAttempt
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.enum.payment_state import (
    PaymentAttemptStatus,
    PaymentState,
)
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.payment import (
    CheckoutConfig,
    GatewayCancelled,
    GatewayFailed,
    PaymentConfirmation,
    UnrecordedPayment,
)


PAYMENT_OPERATION = 'payment'
_NON_DIGIT = re.compile(r'\D')


def build_booking_payload(
    *, draft: BookingDraft, item: CatalogItem, confirmation: PaymentConfirmation
) -> dict[str, Any]:
    """Booking creation request: the full draft plus the verified gateway identifiers"""
    price = draft.price
    if price is None:
        raise DomainError('Booking payload needs a priced draft')
    return {
        'journeyId': item.id,
        'startDate': draft.departure_date.isoformat() if draft.departure_date else None,
        'numberOfTravelers': draft.traveler_count,
        'travelers': [
            {
                'name': traveler.name,
                'age': traveler.age,
                'gender': str(traveler.gender) if traveler.gender else None,
                'emergencyContact': traveler.emergency_contact,
            }
            for traveler in draft.travelers
        ],
        'roomPreference': str(draft.room_tier),
        'addOns': list(dict.fromkeys(draft.add_on_ids)),
        'specialRequests': draft.special_requests,
        'email': draft.email,
        'subtotal': price.subtotal,
        'discount': price.discount,
        'totalAmount': price.grand_total,
        'couponDetails': (
            {
                'couponId': draft.coupon.coupon_id,
                'code': draft.coupon.code,
                'discount': draft.coupon.discount,
            }
            if draft.coupon
            else None
        ),
        'paymentId': confirmation.payment_id,
        'orderId': confirmation.order_id,
        'razorpay_order_id': confirmation.order_id,
        'razorpay_payment_id': confirmation.payment_id,
        'razorpay_signature': confirmation.signature,
    }


def prefill_contact(emergency_contact: str) -> str:
    """Gateway widgets accept a bare 10 digit phone number"""
    return _NON_DIGIT.sub('', emergency_contact)[-10:]


class PaymentOrchestrator:
    def __init__(
        self,
        *,
        sequencer: StepSequencer,
        payment_api: IPaymentApi,
        booking_api: IBookingApi,
        gateway: IPaymentGateway,
        currency: str,
        minor_unit_factor: int,
        support_contact: str,
    ) -> None:
        self.sequencer = sequencer
        self.payment_api = payment_api
        self.booking_api = booking_api
        self.gateway = gateway
        self.currency = currency
        self.minor_unit_factor = minor_unit_factor
        self.support_contact = support_contact
        self.tracer = trace.get_tracer(__name__)

        self.attempt: Optional[PaymentAttempt] = None
        self._running = False
        self._checkout_draft: Optional[BookingDraft] = None
        self._generation = 0

    # ========== State ==========

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_finalizing(self) -> bool:
        """Signed confirmation in hand: the cycle must reach a terminal state"""
        return self.attempt is not None and self.attempt.state is PaymentState.VERIFYING

    @property
    def unrecorded_payment(self) -> Optional[UnrecordedPayment]:
        attempt = self.attempt
        if attempt is None or attempt.state is not PaymentState.PAID_BUT_UNRECORDED:
            return None
        return UnrecordedPayment(
            order_id=attempt.order_id or '',
            payment_id=attempt.payment_id or '',
            message=attempt.message or '',
        )

    def status(self) -> PaymentOutcome:
        if self.attempt is None:
            return PaymentOutcome.idle()
        return PaymentOutcome.from_attempt(self.attempt)

    def restore(self, unrecorded: UnrecordedPayment) -> None:
        """Re-enter PaidButUnrecorded for a draft that carries a recovery key"""
        self.attempt = PaymentAttempt(
            item_id=self.sequencer.item.id,
            state=PaymentState.PAID_BUT_UNRECORDED,
            status=PaymentAttemptStatus.SUCCEEDED,
            confirmation=PaymentConfirmation(
                order_id=unrecorded.order_id, payment_id=unrecorded.payment_id, signature=''
            ),
            message=unrecorded.message,
        )
        Logger.base.warning(
            f'🚨 [PAYMENT] Item {self.sequencer.item.id} still holds unrecorded payment '
            f'{unrecorded.payment_id} (order {unrecorded.order_id})'
        )

    # ========== Checkout cycle ==========

    @Logger.io
    def begin(self) -> PaymentAttempt:
        """
        Local checks, then claim the in-flight guard and start a new attempt.

        Raises:
            PaidButUnrecordedError: a captured payment is waiting for reconciliation
            StepTransitionError: flow closed or not on the payment step
            PaymentValidationError: draft not payable
            ConflictError: another step change or payment is in flight
        """
        unrecorded = self.unrecorded_payment
        if unrecorded is not None:
            raise PaidButUnrecordedError(
                unrecorded.message,
                payment_id=unrecorded.payment_id,
                order_id=unrecorded.order_id,
            )
        if self.attempt is not None and self.attempt.state is PaymentState.BOOKING_CREATED:
            raise ConflictError('Booking has already been created for this payment')
        if not self.sequencer.is_open:
            raise StepTransitionError('Booking flow is not open')
        if self.sequencer.step is not BookingStep.PAYMENT:
            raise StepTransitionError('Payment is only available on the payment step')

        draft = self.sequencer.draft
        self._validate(draft)

        self.sequencer.acquire(PAYMENT_OPERATION)
        self._running = True
        self._checkout_draft = draft
        self._generation = self.sequencer.generation
        self.attempt = PaymentAttempt(item_id=self.sequencer.item.id)
        return self.attempt

    @staticmethod
    def _validate(draft: BookingDraft) -> None:
        if '@' not in draft.email:
            raise PaymentValidationError('A valid email is required before payment')
        if not draft.lead_traveler.name.strip():
            raise PaymentValidationError('Lead traveler name is required before payment')
        if draft.price is None or draft.price.grand_total <= 0:
            raise PaymentValidationError('Invalid booking amount')

    @Logger.io
    async def run(self, attempt: PaymentAttempt) -> PaymentOutcome:
        """Carry a begun attempt to a terminal or idle state. Always releases the guard."""
        draft = self._checkout_draft
        if draft is None:
            raise StepTransitionError('Payment attempt has not been started')

        try:
            with self.tracer.start_as_current_span(
                'use_case.payment_checkout',
                attributes={
                    'item.id': self.sequencer.item.id,
                    'amount': draft.price.grand_total if draft.price else 0,
                    'currency': self.currency,
                },
            ) as span:
                try:
                    await self._checkout(attempt=attempt, draft=draft)
                except CustomBaseError as e:
                    # Raised only before a confirmation exists, nothing has been charged
                    Logger.base.warning(f'⚠️ [PAYMENT] Checkout stopped before payment: {e.message}')
                    attempt.mark_failed(e.message)

                span.set_attribute('payment.state', str(attempt.state))
                if attempt.order_id:
                    span.set_attribute('payment.order_id', attempt.order_id)
                if attempt.payment_id:
                    span.set_attribute('payment.payment_id', attempt.payment_id)
        finally:
            self._running = False
            self._checkout_draft = None
            self.sequencer.release()
            metrics.record_payment_attempt(state=str(attempt.status or attempt.state))

        if attempt.state is PaymentState.BOOKING_CREATED:
            await self._complete_flow(attempt)
        return PaymentOutcome.from_attempt(attempt)

    async def pay(self) -> PaymentOutcome:
        attempt = self.begin()
        return await self.run(attempt)

    async def run_in_background(self, attempt: PaymentAttempt) -> None:
        """Task group entry point; an unexpected error must not take the group down"""
        try:
            await self.run(attempt)
        except Exception as e:
            Logger.base.exception(
                f'❌ [PAYMENT] Checkout for item {self.sequencer.item.id} crashed in state '
                f'{attempt.state} (order={attempt.order_id}, payment={attempt.payment_id}): {e}'
            )

    async def abort_checkout(self) -> None:
        """Close the widget wait when the flow is closed; no-op once a confirmation arrived"""
        attempt = self.attempt
        if attempt is None or not self._running or not attempt.is_cancellable:
            return
        if attempt.order_id:
            await self.gateway.abort(order_id=attempt.order_id)

    async def _checkout(self, *, attempt: PaymentAttempt, draft: BookingDraft) -> None:
        item = self.sequencer.item
        price = draft.price
        if price is None:
            raise DomainError('Draft has not been priced')

        # 1. Public key
        key = await self.payment_api.get_public_key()
        if not key:
            raise RejectionError('Payment gateway not configured')

        # 2. Order for the exact total, amount confirmed against the backend record
        order = await self.payment_api.create_order(
            amount=price.grand_total,
            currency=self.currency,
            receipt=f'receipt_{uuid_utils.uuid7()}',
            notes={'item_title': item.title, 'email': draft.email},
        )
        expected_amount = price.grand_total * self.minor_unit_factor
        if order.amount != expected_amount or order.currency != self.currency:
            raise PaymentValidationError(
                f'Order amount {order.amount} {order.currency} does not match booking total '
                f'{expected_amount} {self.currency}'
            )
        attempt.mark_order_created(order)
        Logger.base.info(f'🧾 [PAYMENT] Order {order.order_id} created for {order.amount} {order.currency}')

        if not self.sequencer.is_live(self._generation):
            attempt.mark_abandoned('Booking was closed before checkout opened')
            return

        # 3. Gateway widget
        lead = draft.lead_traveler
        config = CheckoutConfig(
            key=key,
            order_id=order.order_id,
            amount=order.amount,
            currency=order.currency,
            name=item.title,
            description=f'Booking for {item.title}',
            prefill_name=lead.name,
            prefill_email=draft.email,
            prefill_contact=prefill_contact(lead.emergency_contact),
        )
        attempt.mark_gateway_open(config)
        result = await self.gateway.checkout(config=config)

        if isinstance(result, GatewayCancelled):
            Logger.base.info(f'🚫 [PAYMENT] Order {order.order_id} abandoned: {result.reason}')
            attempt.mark_abandoned(result.reason)
            return
        if isinstance(result, GatewayFailed):
            Logger.base.warning(
                f'❌ [PAYMENT] Gateway reported failure for order {order.order_id}: {result.description}'
            )
            attempt.mark_failed(f'Payment failed: {result.description}')
            return
        if result.order_id != order.order_id:
            Logger.base.error(
                f'🚨 [PAYMENT] Confirmation for order {result.order_id} arrived on order '
                f'{order.order_id}, payment={result.payment_id}'
            )
            attempt.mark_failed(self._support_message('Payment could not be matched', result))
            return

        # 4. Server-side verification
        attempt.mark_verifying(result)
        try:
            await self.payment_api.verify(confirmation=result)
        except CustomBaseError as e:
            Logger.base.error(
                f'❌ [PAYMENT] Verification failed for order={result.order_id} '
                f'payment={result.payment_id}: {e.message}'
            )
            attempt.mark_failed(self._support_message('Payment verification failed', result))
            return
        Logger.base.info(f'✅ [PAYMENT] Payment {result.payment_id} verified')

        # 5. Booking record, attempted exactly once
        payload = build_booking_payload(draft=draft, item=item, confirmation=result)
        try:
            record = await self.booking_api.create_booking(payload=payload)
        except Exception as e:
            await self._hold_unrecorded(attempt=attempt, confirmation=result, error=e)
            return

        attempt.mark_booking_created(
            booking_id=record.booking_id, booking_reference=record.booking_reference
        )
        Logger.base.info(
            f'🎉 [PAYMENT] Booking {record.booking_id} ({record.booking_reference}) created '
            f'for payment {result.payment_id}'
        )

    async def _hold_unrecorded(
        self, *, attempt: PaymentAttempt, confirmation: PaymentConfirmation, error: Exception
    ) -> None:
        message = self._support_message(
            'Payment received but the booking could not be saved', confirmation
        )
        attempt.mark_paid_but_unrecorded(message)
        metrics.record_paid_but_unrecorded()
        Logger.base.error(
            f'🚨 [PAYMENT] PAID BUT UNRECORDED item={attempt.item_id} '
            f'order={confirmation.order_id} payment={confirmation.payment_id}: {error}'
        )

        recovery = UnrecordedPayment(
            order_id=confirmation.order_id, payment_id=confirmation.payment_id, message=message
        )
        try:
            await self.sequencer.hold_unrecorded_payment(recovery)
        except Exception as e:
            Logger.base.exception(
                f'🚨 [PAYMENT] Could not persist recovery key for payment '
                f'{confirmation.payment_id}: {e}'
            )

    async def _complete_flow(self, attempt: PaymentAttempt) -> None:
        try:
            await self.sequencer.complete()
        except Exception as e:
            Logger.base.exception(
                f'⚠️ [PAYMENT] Booking {attempt.booking_id} created but the draft was not cleared: {e}'
            )

    def _support_message(self, headline: str, confirmation: PaymentConfirmation) -> str:
        return (
            f'{headline}. Please contact {self.support_contact} with Payment ID '
            f'{confirmation.payment_id} (Order ID {confirmation.order_id}).'
        )
