from typing import Optional

import attrs

from src.service.booking_session.domain.enum.gender import Gender


MIN_TRAVELER_AGE = 1
MAX_TRAVELER_AGE = 120


@attrs.define(frozen=True)
class Traveler:
    name: str = ''
    age: Optional[int] = None
    gender: Optional[Gender] = None
    emergency_contact: str = ''

    @classmethod
    def blank(cls) -> 'Traveler':
        return cls()
