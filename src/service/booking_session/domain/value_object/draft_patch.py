from datetime import date
from typing import Optional

import attrs

from src.service.booking_session.domain.enum.room_tier import RoomTier
from src.service.booking_session.domain.value_object.traveler import Traveler


@attrs.define(frozen=True)
class DraftPatch:
    """Partial step output; None means 'leave as is'"""

    departure_date: Optional[date] = None
    traveler_count: Optional[int] = None
    travelers: Optional[tuple[Traveler, ...]] = None
    room_tier: Optional[RoomTier] = None
    add_on_ids: Optional[tuple[str, ...]] = None
    special_requests: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in attrs.astuple(self, recurse=False))
