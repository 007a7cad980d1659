from enum import StrEnum


class RoomTier(StrEnum):
    SINGLE = 'single'  # Charged the single-room supplement per person
    DOUBLE = 'double'
    TRIPLE = 'triple'
