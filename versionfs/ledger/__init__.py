"""Ledger access: typed client plus interchangeable transports."""

from .client import LedgerClient
from .local import LocalLedger
from .transport import InspectResult, LedgerTransport, MoveCall

__all__ = [
    "InspectResult",
    "LedgerClient",
    "LedgerTransport",
    "LocalLedger",
    "MoveCall",
]
