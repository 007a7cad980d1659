"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.booking_session.app.query import get_booking_use_case
from src.service.booking_session.driving_adapter.http_controller import (
    booking_session_controller,
)


WIRE_MODULES: list[ModuleType] = [
    get_booking_use_case,
    booking_session_controller,
]
