"""
Move System - Moves and their results.

A move is a position claimed by an actor. Applying one yields a
MoveResult: the new session on success, a rejection reason otherwise.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import GameSession
    from .validator import RejectionReason


@dataclass(frozen=True)
class Move:
    """A (position, actor) pair submitted against a session."""
    position: int
    actor: str | None = None


@dataclass
class MoveResult:
    """
    Result of applying a move.

    Contains:
    - Whether the move was accepted
    - New session (if accepted)
    - Rejection reason and message (if not)
    - Human-readable changes for logs and UI
    """
    success: bool
    new_session: GameSession | None = None
    error: str | None = None
    reason: RejectionReason | None = None
    changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, reason: RejectionReason, error: str) -> MoveResult:
        return cls(success=False, error=error, reason=reason)

    @classmethod
    def success_with_session(
        cls,
        session: GameSession,
        changes: list[str] | None = None,
    ) -> MoveResult:
        return cls(success=True, new_session=session, changes=changes or [])
