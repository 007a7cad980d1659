from typing import Optional

import attrs

from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.value_object.coupon import CouponApplication, CouponOffer


@attrs.define(frozen=True)
class CouponOutcome:
    applied: bool
    draft: BookingDraft
    application: Optional[CouponApplication] = None
    reason: Optional[str] = None


@attrs.define(frozen=True)
class OfferView:
    offer: CouponOffer
    eligible: bool  # Optimistic hint only; the validate call decides
