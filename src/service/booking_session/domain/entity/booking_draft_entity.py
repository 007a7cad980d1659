from datetime import date
from typing import Optional

import attrs

from src.platform.exception.exceptions import ConflictError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.domain.enum.room_tier import RoomTier
from src.service.booking_session.domain.value_object.coupon import CouponApplication
from src.service.booking_session.domain.value_object.draft_patch import DraftPatch
from src.service.booking_session.domain.value_object.payment import UnrecordedPayment
from src.service.booking_session.domain.value_object.price_breakdown import PriceBreakdown
from src.service.booking_session.domain.value_object.traveler import Traveler


def resize_travelers(travelers: tuple[Traveler, ...], count: int) -> tuple[Traveler, ...]:
    """Pad with blank travelers or drop from the tail so len(travelers) == count"""
    if count <= len(travelers):
        return travelers[:count]
    return travelers + tuple(Traveler.blank() for _ in range(count - len(travelers)))


@attrs.define(frozen=True)
class BookingDraft:
    """
    The in-progress, not-yet-paid booking for one catalog item.

    Immutable: every change returns a new draft, so a rejected step leaves the
    previous value untouched. `price` is only ever written by the pricing engine.
    """

    item_id: str
    traveler_count: int = 1
    travelers: tuple[Traveler, ...] = attrs.field(factory=lambda: (Traveler.blank(),))
    departure_date: Optional[date] = None
    room_tier: RoomTier = RoomTier.DOUBLE
    add_on_ids: tuple[str, ...] = ()
    special_requests: str = ''
    email: str = ''
    coupon: Optional[CouponApplication] = None
    price: Optional[PriceBreakdown] = None
    unrecorded_payment: Optional[UnrecordedPayment] = None

    def __attrs_post_init__(self) -> None:
        if len(self.travelers) != self.traveler_count:
            raise DomainError(
                f'Traveler list length {len(self.travelers)} does not match '
                f'traveler count {self.traveler_count}'
            )

    @classmethod
    @Logger.io
    def create(cls, *, item_id: str, traveler_count: int = 1) -> 'BookingDraft':
        if not item_id:
            raise DomainError('item_id is required')
        if traveler_count < 1:
            raise DomainError('traveler_count must be at least 1')
        return cls(
            item_id=item_id,
            traveler_count=traveler_count,
            travelers=resize_travelers((), traveler_count),
        )

    @property
    def lead_traveler(self) -> Traveler:
        return self.travelers[0]

    def merge(self, patch: DraftPatch) -> 'BookingDraft':
        """
        Apply a partial step output.

        Traveler list and traveler count are reconciled: an explicit count wins and the
        list is padded or truncated to it; a list without a count sets the count.
        """
        changes: dict = {
            field.name: value
            for field in attrs.fields(DraftPatch)
            if (value := getattr(patch, field.name)) is not None
        }

        travelers = changes.pop('travelers', self.travelers)
        count = changes.pop('traveler_count', None)
        if count is None:
            count = len(travelers) if patch.travelers is not None else self.traveler_count
        # Out-of-range counts survive the merge so step validation can report them
        count = max(count, 0)

        return attrs.evolve(
            self,
            traveler_count=count,
            travelers=resize_travelers(tuple(travelers), count),
            **changes,
        )

    def with_coupon(self, application: CouponApplication) -> 'BookingDraft':
        if self.coupon is not None:
            raise ConflictError(
                f'Coupon {self.coupon.code} is already applied, remove it before applying another'
            )
        return attrs.evolve(self, coupon=application)

    def without_coupon(self) -> 'BookingDraft':
        return attrs.evolve(self, coupon=None)

    def with_price(self, price: PriceBreakdown) -> 'BookingDraft':
        return attrs.evolve(self, price=price)

    def with_unrecorded_payment(self, payment: UnrecordedPayment) -> 'BookingDraft':
        return attrs.evolve(self, unrecorded_payment=payment)
