import time
from typing import Callable

import attrs

from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking_session.app.command.coupon_validator import CouponValidator
from src.service.booking_session.app.command.payment_orchestrator import PaymentOrchestrator
from src.service.booking_session.app.command.step_sequencer import StepSequencer
from src.service.booking_session.app.dto.step_result import StepResult
from src.service.booking_session.app.interface.i_booking_api import IBookingApi
from src.service.booking_session.app.interface.i_catalog_query import ICatalogQuery
from src.service.booking_session.app.interface.i_draft_store import IDraftStore
from src.service.booking_session.app.interface.i_history_port import IHistoryPort
from src.service.booking_session.app.interface.i_payment_api import IPaymentApi
from src.service.booking_session.app.interface.i_payment_gateway import IPaymentGateway
from src.service.booking_session.domain.pricing_engine import PricingPolicy


DraftStoreFactory = Callable[..., IDraftStore]  # called with session_id=
HistoryFactory = Callable[[], IHistoryPort]


@attrs.define
class BookingFlow:
    """One open booking wizard: a browsing session looking at one catalog item"""

    session_id: str
    item_id: str
    sequencer: StepSequencer
    orchestrator: PaymentOrchestrator
    last_seen: float = attrs.field(factory=time.monotonic)

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    @property
    def is_busy(self) -> bool:
        return self.orchestrator.is_running

    async def close(self) -> StepResult:
        if self.orchestrator.is_finalizing:
            raise ConflictError('Payment is being verified, the booking cannot be closed right now')

        await self.orchestrator.abort_checkout()
        return await self.sequencer.close()

    def detach(self) -> None:
        self.sequencer.navigator.detach()


class BookingFlowRegistry:
    """
    In-memory home of the open booking flows, keyed by (browsing session, item).

    Flows are cheap to rebuild: opening an item again mounts a fresh wizard from the
    draft store, unless a payment is in flight on the current one.
    """

    def __init__(
        self,
        *,
        catalog_query: ICatalogQuery,
        coupon_validator: CouponValidator,
        payment_api: IPaymentApi,
        booking_api: IBookingApi,
        gateway: IPaymentGateway,
        draft_store_factory: DraftStoreFactory,
        history_factory: HistoryFactory,
        pricing_policy: PricingPolicy,
        max_travelers: int,
        currency: str,
        minor_unit_factor: int,
        support_contact: str,
        idle_ttl_seconds: float,
    ) -> None:
        self.catalog_query = catalog_query
        self.coupon_validator = coupon_validator
        self.payment_api = payment_api
        self.booking_api = booking_api
        self.gateway = gateway
        self.draft_store_factory = draft_store_factory
        self.history_factory = history_factory
        self.pricing_policy = pricing_policy
        self.max_travelers = max_travelers
        self.currency = currency
        self.minor_unit_factor = minor_unit_factor
        self.support_contact = support_contact
        self.idle_ttl_seconds = idle_ttl_seconds
        self._flows: dict[tuple[str, str], BookingFlow] = {}

    def __len__(self) -> int:
        return len(self._flows)

    @Logger.io
    async def open(self, *, session_id: str, item_id: str) -> BookingFlow:
        """Mount (or resume) the wizard for an item; reuses the flow while a payment runs"""
        self._evict_idle()

        key = (session_id, item_id)
        current = self._flows.get(key)
        if current is not None and current.is_busy:
            current.touch()
            return current

        item = await self.catalog_query.get_item(item_id=item_id)
        sequencer = StepSequencer(
            item=item,
            draft_store=self.draft_store_factory(session_id=session_id),
            history=self.history_factory(),
            coupon_validator=self.coupon_validator,
            pricing_policy=self.pricing_policy,
            max_travelers=self.max_travelers,
        )
        orchestrator = PaymentOrchestrator(
            sequencer=sequencer,
            payment_api=self.payment_api,
            booking_api=self.booking_api,
            gateway=self.gateway,
            currency=self.currency,
            minor_unit_factor=self.minor_unit_factor,
            support_contact=self.support_contact,
        )
        await sequencer.mount()
        if sequencer.draft.unrecorded_payment is not None:
            orchestrator.restore(sequencer.draft.unrecorded_payment)

        if current is not None:
            current.detach()
        flow = BookingFlow(
            session_id=session_id, item_id=item_id, sequencer=sequencer, orchestrator=orchestrator
        )
        self._flows[key] = flow
        metrics.active_flows.set(len(self._flows))
        Logger.base.info(
            f'🧳 [FLOW] Opened item {item_id} for session {session_id} at step {int(sequencer.step)}'
        )
        return flow

    def get(self, *, session_id: str, item_id: str) -> BookingFlow:
        flow = self._flows.get((session_id, item_id))
        if flow is None:
            raise NotFoundError('Booking flow not found, open the item first')
        flow.touch()
        return flow

    def _evict_idle(self) -> None:
        now = time.monotonic()
        stale = [
            key
            for key, flow in self._flows.items()
            if not flow.is_busy and now - flow.last_seen > self.idle_ttl_seconds
        ]
        for key in stale:
            # The stored draft outlives the in-memory flow and is resumed on the next open
            self._flows.pop(key).detach()
        if stale:
            Logger.base.info(f'🧹 [FLOW] Evicted {len(stale)} idle flows')
            metrics.active_flows.set(len(self._flows))
