"""
Step Rules

Each wizard step is a validation predicate over the candidate draft (the current draft
with the step's partial output merged in). Violations come back as FieldError values,
never as exceptions, so the caller can render them next to the offending fields.
"""

from typing import Callable

from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.value_object.catalog_item import CatalogItem
from src.service.booking_session.domain.value_object.field_error import FieldError
from src.service.booking_session.domain.value_object.traveler import (
    MAX_TRAVELER_AGE,
    MIN_TRAVELER_AGE,
    Traveler,
)


StepValidator = Callable[[BookingDraft, CatalogItem, int], list[FieldError]]


def validate_traveler(traveler: Traveler, *, index: int) -> list[FieldError]:
    prefix = f'travelers[{index}]'
    errors: list[FieldError] = []
    if not traveler.name.strip():
        errors.append(FieldError(f'{prefix}.name', 'Name is required'))
    if traveler.age is None:
        errors.append(FieldError(f'{prefix}.age', 'Age is required'))
    elif not MIN_TRAVELER_AGE <= traveler.age <= MAX_TRAVELER_AGE:
        errors.append(
            FieldError(
                f'{prefix}.age', f'Age must be between {MIN_TRAVELER_AGE} and {MAX_TRAVELER_AGE}'
            )
        )
    if traveler.gender is None:
        errors.append(FieldError(f'{prefix}.gender', 'Gender is required'))
    if not traveler.emergency_contact.strip():
        errors.append(FieldError(f'{prefix}.emergency_contact', 'Emergency contact is required'))
    return errors


def validate_traveler_info(
    draft: BookingDraft, item: CatalogItem, max_travelers: int
) -> list[FieldError]:
    errors: list[FieldError] = []
    if not 1 <= draft.traveler_count <= max_travelers:
        errors.append(
            FieldError('traveler_count', f'Number of travelers must be between 1 and {max_travelers}')
        )
    if draft.departure_date is None:
        errors.append(FieldError('departure_date', 'Please select a departure date'))
    elif item.departure_dates and draft.departure_date not in item.departure_dates:
        errors.append(FieldError('departure_date', 'Selected departure date is not available'))
    if '@' not in draft.email:
        errors.append(FieldError('email', 'A valid email is required'))
    for index, traveler in enumerate(draft.travelers):
        errors.extend(validate_traveler(traveler, index=index))
    return errors


def validate_review(
    draft: BookingDraft, item: CatalogItem, max_travelers: int
) -> list[FieldError]:
    # Review also re-checks step 1, a resumed draft may have been edited elsewhere
    errors = validate_traveler_info(draft, item, max_travelers)
    for add_on_id in draft.add_on_ids:
        if item.find_add_on(add_on_id) is None:
            errors.append(FieldError('add_on_ids', f'Unknown add-on: {add_on_id}'))
    return errors


STEP_VALIDATORS: dict[BookingStep, StepValidator] = {
    BookingStep.TRAVELER_INFO: validate_traveler_info,
    BookingStep.REVIEW: validate_review,
}


def validate_step(
    step: BookingStep, *, draft: BookingDraft, item: CatalogItem, max_travelers: int
) -> list[FieldError]:
    validator = STEP_VALIDATORS.get(step)
    return validator(draft, item, max_travelers) if validator else []
