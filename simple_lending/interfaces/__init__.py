"""Protocol interfaces for the lending ledger and its collaborators."""
from .custody import AssetCustody
from .listener import EventListener
from .notifier import Notifier

__all__ = ["AssetCustody", "EventListener", "Notifier"]
