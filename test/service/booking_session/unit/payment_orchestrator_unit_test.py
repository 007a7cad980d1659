"""
Unit tests for PaymentOrchestrator

Test Focus:
1. Happy path: order -> widget -> verify -> booking, draft cleared afterwards
2. Cancel / gateway failure / verification failure end idle without a booking call
3. Booking failure after verification: paid-but-unrecorded, single create call,
   recovery key persisted, re-payment blocked
4. Local pre-checks and order amount reconciliation
"""

from collections.abc import Callable

import pytest
import pytest_asyncio

from src.platform.exception.exceptions import (
    BackendUnavailableError,
    ConflictError,
    DomainError,
    PaidButUnrecordedError,
    PaymentValidationError,
    RejectionError,
    StepTransitionError,
)
from src.service.booking_session.app.command.payment_orchestrator import (
    PaymentOrchestrator,
    build_booking_payload,
    prefill_contact,
)
from src.service.booking_session.app.command.step_sequencer import StepSequencer
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.entity.payment_attempt_entity import PaymentAttempt
from src.service.booking_session.domain.enum.payment_state import (
    PaymentAttemptStatus,
    PaymentState,
)
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.payment import (
    GatewayCancelled,
    GatewayFailed,
    PaymentConfirmation,
    UnrecordedPayment,
)
from src.service.booking_session.driven_adapter.state.in_memory_draft_store_impl import (
    InMemoryDraftStoreImpl,
)


ITEM_ID = 'spiti-valley'
SUPPORT = 'support@quickescape.example'


@pytest.fixture
def sequencer(make_sequencer: Callable[..., StepSequencer]) -> StepSequencer:
    return make_sequencer()


@pytest.fixture
def orchestrator(
    sequencer: StepSequencer, payment_api, booking_api, payment_gateway
) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        sequencer=sequencer,
        payment_api=payment_api,
        booking_api=booking_api,
        gateway=payment_gateway,
        currency='INR',
        minor_unit_factor=100,
        support_contact=SUPPORT,
    )


@pytest_asyncio.fixture
async def at_payment_step(sequencer: StepSequencer, traveler_info_patch: DraftPatch) -> None:
    await sequencer.mount()
    await sequencer.advance(traveler_info_patch)
    await sequencer.advance(DraftPatch())


@pytest.mark.unit
class TestHappyPath:
    @pytest.mark.asyncio
    async def test_successful_checkout_creates_booking_and_clears_draft(
        self,
        at_payment_step: None,
        orchestrator: PaymentOrchestrator,
        sequencer: StepSequencer,
        payment_api,
        booking_api,
        payment_gateway,
        draft_store: InMemoryDraftStoreImpl,
    ) -> None:
        # Act
        outcome = await orchestrator.pay()

        # Assert: order for the exact total
        assert payment_api.order_calls[0]['amount'] == 29500
        assert payment_api.order_calls[0]['currency'] == 'INR'
        assert payment_api.order_calls[0]['receipt'].startswith('receipt_')

        # Assert: widget opened with the backend order
        config = payment_gateway.checkout_calls[0]
        assert config.order_id == 'order_1'
        assert config.amount == 2950000
        assert config.key == 'rzp_test_key'
        assert config.prefill_contact == '9876543210'

        # Assert: verified then recorded exactly once
        assert len(payment_api.verify_calls) == 1
        assert len(booking_api.create_calls) == 1
        assert outcome.state is PaymentState.BOOKING_CREATED
        assert outcome.status is PaymentAttemptStatus.SUCCEEDED
        assert outcome.booking_id == 'bk_1'
        assert outcome.booking_reference == 'QS0000BK01'

        # Assert: flow completed
        assert not sequencer.is_open
        assert sequencer.in_flight is None
        assert not orchestrator.is_running
        assert await draft_store.load(item_id=ITEM_ID) is None

    @pytest.mark.asyncio
    async def test_repay_after_booking_is_a_conflict(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator
    ) -> None:
        await orchestrator.pay()

        with pytest.raises(ConflictError):
            orchestrator.begin()


@pytest.mark.unit
class TestFailureExits:
    @pytest.mark.asyncio
    async def test_cancelled_widget_is_abandoned_and_keeps_draft(
        self,
        at_payment_step: None,
        orchestrator: PaymentOrchestrator,
        sequencer: StepSequencer,
        payment_gateway,
        payment_api,
        booking_api,
    ) -> None:
        payment_gateway.result = GatewayCancelled(reason='Payment cancelled')

        outcome = await orchestrator.pay()

        assert outcome.state is PaymentState.IDLE
        assert outcome.status is PaymentAttemptStatus.ABANDONED
        assert outcome.order_id == 'order_1'
        assert payment_api.verify_calls == []
        assert booking_api.create_calls == []
        assert sequencer.is_open
        assert sequencer.in_flight is None

    @pytest.mark.asyncio
    async def test_gateway_failure_surfaces_description(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, payment_gateway
    ) -> None:
        payment_gateway.result = GatewayFailed(description='Card declined', payment_id='pay_9')

        outcome = await orchestrator.pay()

        assert outcome.status is PaymentAttemptStatus.FAILED
        assert outcome.message == 'Payment failed: Card declined'

    @pytest.mark.asyncio
    async def test_verification_failure_never_creates_booking(
        self,
        at_payment_step: None,
        orchestrator: PaymentOrchestrator,
        payment_api,
        booking_api,
    ) -> None:
        # Arrange
        payment_api.verify_error = RejectionError('Invalid payment signature', 400)

        # Act
        outcome = await orchestrator.pay()

        # Assert: identifiers kept for support
        assert booking_api.create_calls == []
        assert outcome.state is PaymentState.IDLE
        assert outcome.status is PaymentAttemptStatus.FAILED
        assert outcome.payment_id == 'pay_1'
        assert outcome.order_id == 'order_1'
        assert 'Payment ID pay_1' in (outcome.message or '')
        assert SUPPORT in (outcome.message or '')

    @pytest.mark.asyncio
    async def test_confirmation_for_another_order_is_not_verified(
        self,
        at_payment_step: None,
        orchestrator: PaymentOrchestrator,
        payment_gateway,
        payment_api,
    ) -> None:
        payment_gateway.result = PaymentConfirmation(
            order_id='order_other', payment_id='pay_1', signature='sig_1'
        )

        outcome = await orchestrator.pay()

        assert payment_api.verify_calls == []
        assert outcome.status is PaymentAttemptStatus.FAILED

    @pytest.mark.asyncio
    async def test_order_creation_failure_ends_idle(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, payment_api, payment_gateway
    ) -> None:
        payment_api.order_error = BackendUnavailableError('Booking backend unavailable')

        outcome = await orchestrator.pay()

        assert outcome.state is PaymentState.IDLE
        assert outcome.status is PaymentAttemptStatus.FAILED
        assert payment_gateway.checkout_calls == []


@pytest.mark.unit
class TestPaidButUnrecorded:
    @pytest.mark.asyncio
    async def test_booking_failure_keeps_identifiers_and_persists_recovery_key(
        self,
        at_payment_step: None,
        orchestrator: PaymentOrchestrator,
        sequencer: StepSequencer,
        booking_api,
        draft_store: InMemoryDraftStoreImpl,
    ) -> None:
        # Arrange
        booking_api.error = BackendUnavailableError('Booking backend unavailable')

        # Act
        outcome = await orchestrator.pay()

        # Assert: one attempt only, no automatic retry
        assert len(booking_api.create_calls) == 1
        assert outcome.state is PaymentState.PAID_BUT_UNRECORDED
        assert outcome.payment_id == 'pay_1'
        assert outcome.order_id == 'order_1'
        assert 'Payment ID pay_1 (Order ID order_1)' in (outcome.message or '')

        # Assert: draft kept with the recovery key
        assert sequencer.is_open
        stored = await draft_store.load(item_id=ITEM_ID)
        assert stored is not None
        assert stored[1].unrecorded_payment is not None
        assert stored[1].unrecorded_payment.payment_id == 'pay_1'

    @pytest.mark.asyncio
    async def test_repay_is_blocked(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, booking_api, payment_api
    ) -> None:
        booking_api.error = RuntimeError('connection reset')
        await orchestrator.pay()

        with pytest.raises(PaidButUnrecordedError) as exc_info:
            orchestrator.begin()

        assert exc_info.value.payment_id == 'pay_1'
        assert len(payment_api.order_calls) == 1

    def test_restore_reenters_paid_but_unrecorded(self, orchestrator: PaymentOrchestrator) -> None:
        orchestrator.restore(
            UnrecordedPayment(order_id='order_7', payment_id='pay_7', message='contact us')
        )

        status = orchestrator.status()
        assert status.state is PaymentState.PAID_BUT_UNRECORDED
        assert status.payment_id == 'pay_7'
        assert orchestrator.unrecorded_payment is not None


@pytest.mark.unit
class TestPreChecks:
    @pytest.mark.asyncio
    async def test_not_on_payment_step(
        self, sequencer: StepSequencer, orchestrator: PaymentOrchestrator, payment_api
    ) -> None:
        await sequencer.mount()

        with pytest.raises(StepTransitionError):
            await orchestrator.pay()
        assert payment_api.order_calls == []

    @pytest.mark.asyncio
    async def test_run_without_begin_is_rejected(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, payment_api
    ) -> None:
        with pytest.raises(StepTransitionError, match='not been started'):
            await orchestrator.run(PaymentAttempt(item_id=ITEM_ID))
        assert payment_api.order_calls == []
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_zero_total_is_not_payable(
        self,
        make_sequencer: Callable[..., StepSequencer],
        traveler_info_patch: DraftPatch,
        payment_api,
        booking_api,
        payment_gateway,
    ) -> None:
        # Arrange
        free_item = CatalogItem(
            id='free-walk',
            title='Free Walk',
            unit_price=0,
            departure_dates=(traveler_info_patch.departure_date,),  # type: ignore[arg-type]
        )
        sequencer = make_sequencer(item=free_item)
        await sequencer.mount()
        await sequencer.advance(traveler_info_patch)
        await sequencer.advance(DraftPatch())
        orchestrator = PaymentOrchestrator(
            sequencer=sequencer,
            payment_api=payment_api,
            booking_api=booking_api,
            gateway=payment_gateway,
            currency='INR',
            minor_unit_factor=100,
            support_contact=SUPPORT,
        )

        # Act / Assert
        with pytest.raises(PaymentValidationError, match='Invalid booking amount'):
            orchestrator.begin()
        assert sequencer.in_flight is None

    @pytest.mark.asyncio
    async def test_missing_gateway_key(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, payment_api
    ) -> None:
        payment_api.key = ''

        outcome = await orchestrator.pay()

        assert outcome.status is PaymentAttemptStatus.FAILED
        assert outcome.message == 'Payment gateway not configured'
        assert payment_api.order_calls == []

    @pytest.mark.asyncio
    async def test_order_amount_mismatch_stops_before_widget(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator, payment_api, payment_gateway
    ) -> None:
        payment_api.order_amount = 100

        outcome = await orchestrator.pay()

        assert outcome.status is PaymentAttemptStatus.FAILED
        assert 'does not match' in (outcome.message or '')
        assert payment_gateway.checkout_calls == []

    @pytest.mark.asyncio
    async def test_second_begin_while_running_is_a_conflict(
        self, at_payment_step: None, orchestrator: PaymentOrchestrator
    ) -> None:
        orchestrator.begin()

        with pytest.raises(ConflictError):
            orchestrator.begin()


@pytest.mark.unit
class TestBookingPayload:
    @pytest.mark.asyncio
    async def test_payload_carries_draft_and_gateway_identifiers(
        self, at_payment_step: None, sequencer: StepSequencer, catalog_item: CatalogItem
    ) -> None:
        confirmation = PaymentConfirmation(order_id='order_1', payment_id='pay_1', signature='s')

        payload = build_booking_payload(
            draft=sequencer.draft, item=catalog_item, confirmation=confirmation
        )

        assert payload['journeyId'] == ITEM_ID
        assert payload['startDate'] == '2025-03-14'
        assert payload['numberOfTravelers'] == 2
        assert payload['travelers'][0] == {
            'name': 'Asha Rao',
            'age': 34,
            'gender': 'female',
            'emergencyContact': '+91 98765 43210',
        }
        assert payload['totalAmount'] == 29500
        assert payload['couponDetails'] is None
        assert payload['razorpay_payment_id'] == 'pay_1'

    def test_unpriced_draft_has_no_payload(self, catalog_item: CatalogItem) -> None:
        confirmation = PaymentConfirmation(order_id='order_1', payment_id='pay_1', signature='s')

        with pytest.raises(DomainError, match='priced draft'):
            build_booking_payload(
                draft=BookingDraft.create(item_id=ITEM_ID),
                item=catalog_item,
                confirmation=confirmation,
            )

    def test_prefill_contact_keeps_last_ten_digits(self) -> None:
        assert prefill_contact('+91 98765-43210') == '9876543210'
        assert prefill_contact('') == ''
