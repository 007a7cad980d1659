from abc import ABC, abstractmethod
from typing import Callable, Optional


# Receives the step tag of the entry navigated to, None for an entry the flow did not push
NavigationListener = Callable[[Optional[int]], None]


class IHistoryPort(ABC):
    """Browser-style history stack for one booking flow"""

    @abstractmethod
    def push(self, *, step: int) -> None:
        """Push an entry tagged with step; drops any forward entries"""
        pass

    @abstractmethod
    def back(self) -> None:
        """Navigate one entry back; listeners are notified with the landing entry's tag"""
        pass

    @abstractmethod
    def forward(self) -> None:
        pass

    @abstractmethod
    def discard(self, *, count: int) -> None:
        """Drop the last count flow entries without notifying listeners"""
        pass

    @abstractmethod
    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        """Register a listener; returns the unsubscribe callable"""
        pass
