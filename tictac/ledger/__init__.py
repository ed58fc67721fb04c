"""
Ledger module - The external authority for remote games.

Provides:
- LedgerClient: Interface consumed by the sync controller and session manager
- LedgerSnapshot: One decoded getSessionState response
- Typed events and decode_event for raw notifications
- InMemoryLedger: Process-local reference ledger
"""

from .events import (
    EventKind,
    LedgerEvent,
    SessionCreated,
    SessionJoined,
    MoveMade,
    SessionFinished,
    SessionDraw,
    SessionCancelled,
    SESSION_KINDS,
    LIST_KINDS,
    ALL_KINDS,
    decode_event,
)
from .client import LedgerClient, LedgerSnapshot, Subscription
from .memory import InMemoryLedger

__all__ = [
    "EventKind",
    "LedgerEvent",
    "SessionCreated",
    "SessionJoined",
    "MoveMade",
    "SessionFinished",
    "SessionDraw",
    "SessionCancelled",
    "SESSION_KINDS",
    "LIST_KINDS",
    "ALL_KINDS",
    "decode_event",
    "LedgerClient",
    "LedgerSnapshot",
    "Subscription",
    "InMemoryLedger",
]
