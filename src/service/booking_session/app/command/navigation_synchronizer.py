from typing import Callable, Optional

from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_history_port import IHistoryPort
from src.service.booking_session.domain.enum.booking_step import BookingStep


class NavigationSynchronizer:
    """
    Keeps the wizard step and the history stack in lockstep.

    Entries are pushed strictly in the order steps are entered and every forward push
    truncates the forward history, so the entry at position p always carries tag p.
    Back therefore lands on the step the user actually came from.

    Flow:
    1. enter(): push entries 1..n (n > 1 when resuming a stored draft)
    2. forward_to(): push the destination step after each advance
    3. History events: tagged entry -> on_step(tag), untagged entry -> on_exit()
    4. exit(): drop every entry the flow pushed so a later back cannot resurrect it
    """

    def __init__(
        self,
        *,
        history: IHistoryPort,
        on_step: Callable[[BookingStep], None],
        on_exit: Callable[[], None],
    ) -> None:
        self._history = history
        self._on_step = on_step
        self._on_exit = on_exit
        self._entries = 0  # Flow entries currently on the stack, forward ones included
        self._active = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_active(self) -> bool:
        return self._active

    def enter(self, *, up_to: BookingStep = BookingStep.TRAVELER_INFO) -> None:
        if self._active:
            self.exit()
        if self._unsubscribe is None:
            self._unsubscribe = self._history.subscribe(self.handle_navigation)
        self._active = True
        self._entries = 0
        for step in range(BookingStep.first(), up_to + 1):
            self._push(BookingStep(step))

    def forward_to(self, step: BookingStep) -> None:
        if not self._active:
            return
        # A push after going back replaces everything past the current entry
        self._entries = step - 1
        self._push(step)

    def _push(self, step: BookingStep) -> None:
        self._history.push(step=int(step))
        self._entries += 1

    def handle_navigation(self, tag: Optional[int]) -> None:
        if not self._active:
            return

        step = self._parse_tag(tag)
        if step is None:
            Logger.base.info(f'🚪 [NAV] Untagged history entry ({tag!r}), leaving the flow')
            self.exit()
            self._on_exit()
            return

        Logger.base.info(f'🧭 [NAV] History moved to step {int(step)}')
        self._on_step(step)

    def exit(self) -> None:
        """Logically exhaust back-navigation for this flow"""
        if self._entries:
            self._history.discard(count=self._entries)
        self._entries = 0
        self._active = False

    def detach(self) -> None:
        self.exit()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @staticmethod
    def _parse_tag(tag: Optional[int]) -> Optional[BookingStep]:
        if tag is None:
            return None
        try:
            return BookingStep(tag)
        except ValueError:
            return None
