from enum import StrEnum


class AddOnPricing(StrEnum):
    PER_PERSON = 'per_person'
    FLAT = 'flat'
