"""
Errors - Exception hierarchy for the engine.

Local rejections (bad move, busy session) are non-fatal and leave state
untouched. External failures carry the ledger's message verbatim.
Storage and sync failures are logged by their owners and never escape
as fatal errors to the presentation layer.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine_core.validator import RejectionReason


class TicTacError(Exception):
    """Base class for all engine errors."""


class MoveValidationError(TicTacError):
    """A move was rejected by the turn validator."""

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class SessionBusyError(TicTacError):
    """A move is already outstanding for this session."""


class SessionNotFound(TicTacError):
    """No session with the requested id exists."""


class ExternalSubmissionError(TicTacError):
    """The ledger rejected or failed to confirm a submission."""

    def __init__(self, message: str, session_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.session_id = session_id


class SyncFailure(TicTacError):
    """A reconciliation fetch from the ledger failed."""

    def __init__(self, session_id: str, cause: Exception):
        super().__init__(f"Failed to fetch session {session_id}: {cause}")
        self.session_id = session_id
        self.cause = cause


class StorageCorruption(TicTacError):
    """A persisted record failed schema validation."""

    def __init__(self, key: str, detail: str):
        super().__init__(f"Corrupt record at {key!r}: {detail}")
        self.key = key
        self.detail = detail


class StatusRegression(TicTacError):
    """A status transition would move a session backwards."""

    def __init__(self, current, proposed):
        super().__init__(f"Cannot move from {current.name} to {proposed.name}")
        self.current = current
        self.proposed = proposed
