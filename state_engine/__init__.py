"""Shared counters and accessory signalling."""

from .ledger import QueryLedger, QueryRecord
from .led_bridge import LedCommand, LedSignalBridge, LedSignalPolicy

__all__ = [
    "LedCommand",
    "LedSignalBridge",
    "LedSignalPolicy",
    "QueryLedger",
    "QueryRecord",
]
