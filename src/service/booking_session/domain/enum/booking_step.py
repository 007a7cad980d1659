"""
Booking Step Enum

The wizard order is fixed: traveler info, then review, then payment.
"""

from enum import IntEnum


class BookingStep(IntEnum):
    TRAVELER_INFO = 1
    REVIEW = 2
    PAYMENT = 3

    @classmethod
    def first(cls) -> 'BookingStep':
        return cls.TRAVELER_INFO

    @classmethod
    def last(cls) -> 'BookingStep':
        return cls.PAYMENT

    @property
    def is_last(self) -> bool:
        return self is BookingStep.last()

    def next(self) -> 'BookingStep':
        return BookingStep(self + 1)
