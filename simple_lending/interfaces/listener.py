"""Event listener protocol — callback invoked for each committed ledger event."""
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models import LendingEvent


class EventListener(Protocol):
    """Abstract interface for ledger event observers."""

    def __call__(self, event: "LendingEvent") -> None: ...
