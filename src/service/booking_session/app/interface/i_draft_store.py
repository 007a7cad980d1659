from abc import ABC, abstractmethod
from typing import Optional

from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep


class IDraftStore(ABC):
    """
    Session-scoped draft storage, one record per catalog item.

    Implementations are bound to a single browsing session. Malformed stored data
    must read back as None rather than raise.
    """

    @abstractmethod
    async def load(self, *, item_id: str) -> Optional[tuple[BookingStep, BookingDraft]]:
        pass

    @abstractmethod
    async def save(self, *, item_id: str, step: BookingStep, draft: BookingDraft) -> None:
        pass

    @abstractmethod
    async def clear(self, *, item_id: str) -> None:
        pass
