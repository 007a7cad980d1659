from typing import Callable, Optional

from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_history_port import (
    IHistoryPort,
    NavigationListener,
)


class InMemoryHistoryImpl(IHistoryPort):
    """
    Browser-style history stack for one booking flow.

    Index 0 is the page the flow was opened from and carries no step tag. Pushing
    truncates every entry past the cursor, like pushState after going back.
    """

    def __init__(self) -> None:
        self._entries: list[Optional[int]] = [None]
        self._cursor = 0
        self._listeners: list[NavigationListener] = []

    @property
    def entries(self) -> tuple[Optional[int], ...]:
        return tuple(self._entries)

    @property
    def current(self) -> Optional[int]:
        return self._entries[self._cursor]

    def push(self, *, step: int) -> None:
        del self._entries[self._cursor + 1 :]
        self._entries.append(step)
        self._cursor += 1

    def back(self) -> None:
        if self._cursor == 0:
            Logger.base.debug('🧭 [NAV] Already at the first history entry')
            return
        self._cursor -= 1
        self._notify()

    def forward(self) -> None:
        if self._cursor >= len(self._entries) - 1:
            Logger.base.debug('🧭 [NAV] No forward history entry')
            return
        self._cursor += 1
        self._notify()

    def discard(self, *, count: int) -> None:
        # The base entry is never removed
        count = min(max(count, 0), len(self._entries) - 1)
        if count:
            del self._entries[-count:]
        self._cursor = min(self._cursor, len(self._entries) - 1)

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        tag = self.current
        for listener in list(self._listeners):
            listener(tag)
