import attrs

from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.domain.value_object.field_error import FieldError


@attrs.define(frozen=True)
class StepResult:
    """Snapshot of a flow after a sequencer operation"""

    step: BookingStep
    draft: BookingDraft
    is_open: bool
    errors: tuple[FieldError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors
