from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import Callable, Optional

from opentelemetry import trace

from src.platform.exception.exceptions import ConflictError, DomainError, StepTransitionError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking_session.app.command.coupon_validator import CouponValidator
from src.service.booking_session.app.command.navigation_synchronizer import (
    NavigationSynchronizer,
)
from src.service.booking_session.app.dto.coupon_outcome import CouponOutcome
from src.service.booking_session.app.dto.step_result import StepResult
from src.service.booking_session.app.interface.i_draft_store import IDraftStore
from src.service.booking_session.app.interface.i_history_port import IHistoryPort
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.pricing_engine import PricingPolicy, reprice
from src.service.booking_session.domain.step_rule import validate_step
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.coupon import CouponRejected
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.field_error import FieldError
from src.service.booking_session.domain.value_object.payment import UnrecordedPayment


class CloseReason(StrEnum):
    CLOSED = 'closed'  # Explicit close / escape
    NAVIGATED_AWAY = 'navigated_away'  # History event without a step tag
    COMPLETED = 'completed'  # Booking created


class NavigationDirection(StrEnum):
    BACK = 'back'
    FORWARD = 'forward'


CloseListener = Callable[[CloseReason], None]


class StepSequencer:
    """
    Booking wizard state machine for one catalog item in one browsing session.

    States: TravelerInfo (1) -> Review (2) -> Payment (3), plus Closed from anywhere.

    Invariants:
    - The draft is replaced only by a validated, freshly priced candidate; a rejected
      step leaves the previous draft object untouched.
    - Every successful transition is persisted before it becomes visible.
    - Back-navigation is delegated to the history port; the step changes when the
      history event comes back through the NavigationSynchronizer.
    - Async results are applied only if the flow generation is unchanged, i.e. the
      user has not closed the flow while the call was pending.
    """

    def __init__(
        self,
        *,
        item: CatalogItem,
        draft_store: IDraftStore,
        history: IHistoryPort,
        coupon_validator: CouponValidator,
        pricing_policy: PricingPolicy,
        max_travelers: int,
    ) -> None:
        self.item = item
        self.draft_store = draft_store
        self.history = history
        self.coupon_validator = coupon_validator
        self.pricing_policy = pricing_policy
        self.max_travelers = max_travelers
        self.tracer = trace.get_tracer(__name__)

        self._step = BookingStep.first()
        self._draft = self._fresh_draft()
        self._open = False
        self._generation = 0
        self._in_flight: Optional[str] = None
        self._pending_store_clear = False
        self._close_listeners: list[CloseListener] = []
        self.navigator = NavigationSynchronizer(
            history=history,
            on_step=self._on_history_step,
            on_exit=self._on_history_exit,
        )

    # ========== State ==========

    @property
    def step(self) -> BookingStep:
        return self._step

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> Optional[str]:
        return self._in_flight

    def is_live(self, generation: int) -> bool:
        return self._open and generation == self._generation

    def snapshot(self, errors: tuple[FieldError, ...] = ()) -> StepResult:
        return StepResult(step=self._step, draft=self._draft, is_open=self._open, errors=errors)

    def add_close_listener(self, listener: CloseListener) -> None:
        self._close_listeners.append(listener)

    # ========== In-flight guard ==========

    def acquire(self, operation: str) -> None:
        if self._in_flight is not None:
            raise ConflictError(f'Another {self._in_flight} is already in progress for this booking')
        self._in_flight = operation

    def release(self) -> None:
        self._in_flight = None

    @asynccontextmanager
    async def guarded(self, operation: str) -> AsyncIterator[None]:
        self.acquire(operation)
        try:
            yield
        finally:
            self.release()

    def _ensure_open(self) -> None:
        if not self._open:
            raise StepTransitionError('Booking flow is not open')

    # ========== Lifecycle ==========

    @Logger.io
    async def mount(self) -> StepResult:
        """Resume a stored draft for this item, or start fresh at step 1"""
        with self.tracer.start_as_current_span(
            'use_case.mount_booking_flow', attributes={'item.id': self.item.id}
        ) as span:
            step, draft = BookingStep.first(), self._fresh_draft()

            stored = await self.draft_store.load(item_id=self.item.id)
            if stored is not None:
                stored_step, stored_draft = stored
                try:
                    # Catalog prices may have moved since the draft was saved
                    step, draft = stored_step, self._price(stored_draft)
                    Logger.base.info(
                        f'♻️ [DRAFT] Resuming item {self.item.id} at step {int(step)}'
                    )
                except DomainError as e:
                    Logger.base.warning(
                        f'⚠️ [DRAFT] Stored draft for item {self.item.id} no longer prices ({e}), starting fresh'
                    )
                    if stored_draft.unrecorded_payment is not None:
                        # The recovery key outlives the draft it was attached to
                        draft = draft.with_unrecorded_payment(stored_draft.unrecorded_payment)
            span.set_attribute('resumed', stored is not None)

            self._generation += 1
            self._step, self._draft, self._open = step, draft, True
            self.navigator.enter(up_to=step)
            return self.snapshot()

    @Logger.io
    async def advance(self, patch: DraftPatch) -> StepResult:
        """
        Validate the step, merge, reprice, persist, push history, then move to step+1.

        Field errors are returned in the result instead of raised; the draft is unchanged.
        """
        self._ensure_open()
        if self._step.is_last:
            raise StepTransitionError('Already at the last step')

        async with self.guarded('step change'):
            from_step = self._step
            with self.tracer.start_as_current_span(
                'use_case.advance_step',
                attributes={'item.id': self.item.id, 'step.from': int(from_step)},
            ):
                errors = self._patch_count_errors(patch)
                if not errors:
                    candidate = self._draft.merge(patch)
                    errors = validate_step(
                        from_step,
                        draft=candidate,
                        item=self.item,
                        max_travelers=self.max_travelers,
                    )
                if errors:
                    metrics.record_step_transition(
                        from_step=int(from_step), to_step=int(from_step), result='invalid'
                    )
                    return self.snapshot(errors=tuple(errors))

                candidate = self._price(candidate)
                next_step = from_step.next()
                generation = self._generation

                await self.draft_store.save(item_id=self.item.id, step=next_step, draft=candidate)
                if not self.is_live(generation):
                    Logger.base.info(f'🗑️ [DRAFT] Flow for item {self.item.id} closed mid-advance')
                    return self.snapshot()

                self._draft, self._step = candidate, next_step
                self.navigator.forward_to(next_step)
                metrics.record_step_transition(
                    from_step=int(from_step), to_step=int(next_step), result='ok'
                )
                return self.snapshot()

    @Logger.io
    async def update_draft(self, patch: DraftPatch) -> StepResult:
        """In-step edits (room tier, add-ons, traveler count preview) without advancing"""
        self._ensure_open()
        async with self.guarded('draft update'):
            errors = self._patch_count_errors(patch)
            if errors:
                return self.snapshot(errors=tuple(errors))

            candidate = self._draft.merge(patch)
            errors = self._pricing_errors(candidate)
            if errors:
                return self.snapshot(errors=tuple(errors))

            candidate = self._price(candidate)
            generation = self._generation
            await self.draft_store.save(item_id=self.item.id, step=self._step, draft=candidate)
            if self.is_live(generation):
                self._draft = candidate
            return self.snapshot()

    @Logger.io
    async def retreat(self) -> StepResult:
        """Back button inside the flow: history back from step 2+, close from step 1"""
        self._ensure_open()
        if self._step is BookingStep.first():
            return await self.close()
        return await self.navigate(NavigationDirection.BACK)

    @Logger.io
    async def navigate(self, direction: NavigationDirection) -> StepResult:
        """Browser back/forward; the step follows whatever entry history lands on"""
        self._ensure_open()
        if self._in_flight is not None:
            raise ConflictError(f'Cannot navigate while {self._in_flight} is in progress')

        if direction is NavigationDirection.BACK:
            self.history.back()
        else:
            self.history.forward()
        await self._flush_navigation()
        return self.snapshot()

    @Logger.io
    async def close(self, *, reason: CloseReason = CloseReason.CLOSED) -> StepResult:
        """
        Clear the stored draft, reset to an empty step-1 draft and notify the host.

        A draft holding an unrecorded payment stays stored so a reopen still blocks repayment.
        """
        keep_stored = self._holds_unrecorded_payment()
        self._close_locally(reason)
        self._pending_store_clear = False
        if not keep_stored:
            await self.draft_store.clear(item_id=self.item.id)
        return self.snapshot()

    async def complete(self) -> StepResult:
        return await self.close(reason=CloseReason.COMPLETED)

    # ========== Coupon ==========

    @Logger.io
    async def apply_coupon(self, *, code: str) -> CouponOutcome:
        self._ensure_open()
        if self._draft.coupon is not None:
            raise ConflictError(
                f'Coupon {self._draft.coupon.code} is already applied, remove it before applying another'
            )

        async with self.guarded('coupon check'):
            generation = self._generation
            subtotal = self._draft.price.subtotal if self._draft.price else 0
            result = await self.coupon_validator.apply(
                code=code, item_id=self.item.id, subtotal=subtotal
            )

            if not self.is_live(generation):
                Logger.base.info(f'🗑️ [COUPON] Discarding result, flow for {self.item.id} closed')
                return CouponOutcome(applied=False, draft=self._draft, reason='Booking was closed')

            if isinstance(result, CouponRejected):
                return CouponOutcome(applied=False, draft=self._draft, reason=result.reason)

            candidate = self._price(self._draft.with_coupon(result))
            await self.draft_store.save(item_id=self.item.id, step=self._step, draft=candidate)
            if self.is_live(generation):
                self._draft = candidate
            return CouponOutcome(applied=True, draft=self._draft, application=result)

    @Logger.io
    async def remove_coupon(self) -> StepResult:
        """Pure local operation: drop the discount and reprice"""
        self._ensure_open()
        async with self.guarded('coupon removal'):
            candidate = self._price(self._draft.without_coupon())
            generation = self._generation
            await self.draft_store.save(item_id=self.item.id, step=self._step, draft=candidate)
            if self.is_live(generation):
                self._draft = candidate
            return self.snapshot()

    # ========== Payment hand-off ==========

    async def hold_unrecorded_payment(self, payment: UnrecordedPayment) -> None:
        """Persist the recovery key next to the draft; the draft itself is kept"""
        self._draft = self._draft.with_unrecorded_payment(payment)
        await self.draft_store.save(item_id=self.item.id, step=self._step, draft=self._draft)

    # ========== History callbacks (sync, invoked by the synchronizer) ==========

    def _on_history_step(self, step: BookingStep) -> None:
        self._step = step

    def _on_history_exit(self) -> None:
        keep_stored = self._holds_unrecorded_payment()
        self._close_locally(CloseReason.NAVIGATED_AWAY)
        self._pending_store_clear = not keep_stored

    async def _flush_navigation(self) -> None:
        if self._pending_store_clear:
            self._pending_store_clear = False
            await self.draft_store.clear(item_id=self.item.id)
        elif self._open:
            await self.draft_store.save(item_id=self.item.id, step=self._step, draft=self._draft)

    # ========== Internals ==========

    def _holds_unrecorded_payment(self) -> bool:
        held = self._draft.unrecorded_payment
        if held is not None and self._open:
            Logger.base.error(
                f'🚨 [DRAFT] Keeping stored draft for item {self.item.id}: '
                f'payment {held.payment_id} (order {held.order_id}) has no booking yet'
            )
        return held is not None

    def _close_locally(self, reason: CloseReason) -> None:
        was_open = self._open
        self._generation += 1
        self._open = False
        self._step = BookingStep.first()
        self._draft = self._fresh_draft()
        self.navigator.exit()
        if was_open:
            Logger.base.info(f'🚪 [FLOW] Item {self.item.id} closed ({reason})')
            for listener in self._close_listeners:
                listener(reason)

    def _fresh_draft(self) -> BookingDraft:
        return self._price(BookingDraft.create(item_id=self.item.id))

    def _price(self, draft: BookingDraft) -> BookingDraft:
        return reprice(draft=draft, item=self.item, policy=self.pricing_policy)

    def _count_errors(self, count: Optional[int]) -> list[FieldError]:
        if count is None or 1 <= count <= self.max_travelers:
            return []
        return [
            FieldError(
                'traveler_count',
                f'Number of travelers must be between 1 and {self.max_travelers}',
            )
        ]

    def _patch_count_errors(self, patch: DraftPatch) -> list[FieldError]:
        """Bound the requested count before merge pads the traveler list to it"""
        count = patch.traveler_count
        if count is None and patch.travelers is not None:
            count = len(patch.travelers)
        return self._count_errors(count)

    def _pricing_errors(self, draft: BookingDraft) -> list[FieldError]:
        errors = self._count_errors(draft.traveler_count)
        for add_on_id in draft.add_on_ids:
            if self.item.find_add_on(add_on_id) is None:
                errors.append(FieldError('add_on_ids', f'Unknown add-on: {add_on_id}'))
        return errors
