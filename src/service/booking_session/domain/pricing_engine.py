"""
Pricing Engine

Pure computation: (draft, catalog item) -> PriceBreakdown. No I/O, no clock.
Amounts stay integers until the tax step, which is the only place rounding happens
(half-up to the smallest currency unit).
"""

from decimal import ROUND_HALF_UP, Decimal

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.add_on_pricing import AddOnPricing
from src.service.booking_session.domain.enum.room_tier import RoomTier
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.price_breakdown import PriceBreakdown


_WHOLE_UNIT = Decimal('1')


@attrs.define(frozen=True)
class PricingPolicy:
    tax_rate: Decimal
    single_room_fee_per_person: int

    def __attrs_post_init__(self) -> None:
        if self.tax_rate < 0:
            raise DomainError('tax_rate must not be negative')
        if self.single_room_fee_per_person < 0:
            raise DomainError('single_room_fee_per_person must not be negative')


def compute_add_ons_total(*, draft: BookingDraft, item: CatalogItem) -> int:
    total = 0
    for add_on_id in dict.fromkeys(draft.add_on_ids):  # Selecting twice does not charge twice
        add_on = item.find_add_on(add_on_id)
        if add_on is None:
            raise DomainError(f'Unknown add-on {add_on_id!r} for item {item.id}')
        multiplier = draft.traveler_count if add_on.pricing is AddOnPricing.PER_PERSON else 1
        total += add_on.price * multiplier
    return total


def compute_price(
    *, draft: BookingDraft, item: CatalogItem, policy: PricingPolicy
) -> PriceBreakdown:
    base_price = item.unit_price * draft.traveler_count
    room_upgrade_total = (
        policy.single_room_fee_per_person * draft.traveler_count
        if draft.room_tier is RoomTier.SINGLE
        else 0
    )
    add_ons_total = compute_add_ons_total(draft=draft, item=item)
    subtotal = base_price + room_upgrade_total + add_ons_total

    coupon_discount = draft.coupon.discount if draft.coupon else 0
    discount = min(max(coupon_discount, 0), subtotal)

    taxable_amount = subtotal - discount
    taxes = int((Decimal(taxable_amount) * policy.tax_rate).quantize(_WHOLE_UNIT, ROUND_HALF_UP))

    return PriceBreakdown(
        base_price=base_price,
        room_upgrade_total=room_upgrade_total,
        add_ons_total=add_ons_total,
        subtotal=subtotal,
        discount=discount,
        taxable_amount=taxable_amount,
        taxes=taxes,
        grand_total=taxable_amount + taxes,
    )


def reprice(*, draft: BookingDraft, item: CatalogItem, policy: PricingPolicy) -> BookingDraft:
    """Return the draft with its price replaced by a fresh computation"""
    return draft.with_price(compute_price(draft=draft, item=item, policy=policy))
