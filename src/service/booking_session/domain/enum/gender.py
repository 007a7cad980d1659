from enum import StrEnum


class Gender(StrEnum):
    MALE = 'male'
    FEMALE = 'female'
    OTHER = 'other'
