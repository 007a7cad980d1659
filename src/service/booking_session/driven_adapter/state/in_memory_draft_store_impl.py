from typing import Optional

from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_draft_store import IDraftStore
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.driven_adapter.state.draft_codec import (
    decode_draft_record,
    encode_draft_record,
)


class InMemoryDraftStoreImpl(IDraftStore):
    """
    Process-local draft store for development and tests.

    Records go through the same codec as Kvrocks so both backends agree on what
    survives a round trip. `backend` is shared by every session's store instance.
    """

    def __init__(self, *, session_id: str, backend: Optional[dict[str, bytes]] = None) -> None:
        self.session_id = session_id
        self.backend: dict[str, bytes] = backend if backend is not None else {}

    def _build_key(self, *, item_id: str) -> str:
        return f'booking_draft:{self.session_id}:{item_id}'

    async def load(self, *, item_id: str) -> Optional[tuple[BookingStep, BookingDraft]]:
        raw = self.backend.get(self._build_key(item_id=item_id))
        if raw is None:
            return None
        try:
            return decode_draft_record(raw)
        except ValueError as e:
            Logger.base.warning(f'⚠️ [DRAFT] Ignoring malformed in-memory draft: {e}')
            return None

    async def save(self, *, item_id: str, step: BookingStep, draft: BookingDraft) -> None:
        self.backend[self._build_key(item_id=item_id)] = encode_draft_record(step=step, draft=draft)

    async def clear(self, *, item_id: str) -> None:
        self.backend.pop(self._build_key(item_id=item_id), None)
