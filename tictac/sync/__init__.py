"""
Sync Module - Reconciles local caches with the ledger.

The ledger is authoritative for remote games; the sync controller only
ever replaces its cache with complete, in-order fetch responses.
"""

from .controller import SyncController
from .lobby import LobbyView, RefreshPlan

__all__ = [
    "SyncController",
    "LobbyView",
    "RefreshPlan",
]
