"""Asset custody protocol — moves the pooled asset in and out of the ledger."""
from typing import Protocol


class AssetCustody(Protocol):
    """Abstract interface for ERC-20-style custody of the pooled asset."""

    def pull(self, owner: str, amount: int) -> None:
        """Move ``amount`` from ``owner`` into custody; raise on missing allowance or balance."""
        ...

    def push(self, recipient: str, amount: int) -> None:
        """Move ``amount`` out of custody to ``recipient``."""
        ...

    def can_pull(self, owner: str, amount: int) -> bool: ...
