"""
Draft record codec

Stored shape: {"step": 1|2|3, "data": {...BookingDraft fields...}} as orjson bytes.
Decoding is strict; anything that does not rebuild a valid draft raises ValueError.
"""

from datetime import date
from typing import Any, Optional

import attrs
import orjson

from src.platform.exception.exceptions import DomainError
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.enum.gender import Gender
from src.service.booking_session.domain.enum.room_tier import RoomTier
from src.service.booking_session.domain.value_object.coupon import CouponApplication
from src.service.booking_session.domain.value_object.payment import UnrecordedPayment
from src.service.booking_session.domain.value_object.price_breakdown import PriceBreakdown
from src.service.booking_session.domain.value_object.traveler import Traveler


def encode_draft_record(*, step: BookingStep, draft: BookingDraft) -> bytes:
    return orjson.dumps({'step': int(step), 'data': attrs.asdict(draft, recurse=True)})


def decode_draft_record(raw: bytes | str) -> tuple[BookingStep, BookingDraft]:
    try:
        record = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValueError(f'Draft record is not JSON: {e}') from e
    if not isinstance(record, dict) or not isinstance(record.get('data'), dict):
        raise ValueError('Draft record must be an object with a data object')

    try:
        step = BookingStep(record.get('step'))
        draft = _decode_draft(record['data'])
    except (KeyError, TypeError, DomainError) as e:
        raise ValueError(f'Draft record is malformed: {e}') from e
    return step, draft


def _decode_draft(data: dict[str, Any]) -> BookingDraft:
    travelers = tuple(_decode_traveler(traveler) for traveler in data.get('travelers') or ())
    return BookingDraft(
        item_id=str(data['item_id']),
        traveler_count=int(data.get('traveler_count', len(travelers))),
        travelers=travelers,
        departure_date=_decode_date(data.get('departure_date')),
        room_tier=RoomTier(data.get('room_tier', RoomTier.DOUBLE)),
        add_on_ids=tuple(str(add_on_id) for add_on_id in data.get('add_on_ids') or ()),
        special_requests=str(data.get('special_requests') or ''),
        email=str(data.get('email') or ''),
        coupon=(
            CouponApplication(**_require_object(data['coupon'], 'coupon'))
            if data.get('coupon')
            else None
        ),
        price=(
            PriceBreakdown(**_require_object(data['price'], 'price')) if data.get('price') else None
        ),
        unrecorded_payment=(
            UnrecordedPayment(
                **_require_object(data['unrecorded_payment'], 'unrecorded_payment')
            )
            if data.get('unrecorded_payment')
            else None
        ),
    )


def _decode_traveler(raw: Any) -> Traveler:
    data = _require_object(raw, 'traveler')
    age: Optional[int] = data.get('age')
    gender = data.get('gender')
    return Traveler(
        name=str(data.get('name') or ''),
        age=int(age) if age is not None else None,
        gender=Gender(gender) if gender else None,
        emergency_contact=str(data.get('emergency_contact') or ''),
    )


def _require_object(value: Any, field: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f'{field} must be an object, got {type(value).__name__}')
    return value


def _decode_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None
