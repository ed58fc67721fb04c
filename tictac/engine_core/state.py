"""
Game State - The session value the engine operates on.

Design principles:
- Immutable-friendly: every mutation returns a new session
- Serializable: sessions round-trip through persisted records
- Mode-aware: remote sessions mirror the ledger, local ones are authoritative
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
import time
import uuid

from .board import Board, Mark, Winner, empty_board


class GameStatus(IntEnum):
    """Lifecycle status, ledger encoding."""
    WAITING = 0
    IN_PROGRESS = 1
    FINISHED = 2
    CANCELLED = 3

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.FINISHED, GameStatus.CANCELLED)


class SessionMode(str, Enum):
    """Who decides the outcome of a session."""
    REMOTE = "remote"  # External ledger is authoritative
    AI = "ai"  # Human against the adversarial agent
    HOTSEAT = "hotseat"  # Two humans, one device

    @property
    def is_local(self) -> bool:
        return self != SessionMode.REMOTE


class Difficulty(str, Enum):
    """Agent tiers."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Local session ids carry their mode so a bare id can be routed.
SESSION_ID_PREFIXES = {
    SessionMode.AI: "ai-",
    SessionMode.HOTSEAT: "local-",
}

HUMAN_MARK = Mark.X
AGENT_MARK = Mark.O
AGENT_LABEL = "AI"
HOTSEAT_LABELS = ("Player 1", "Player 2")


def new_session_id(mode: SessionMode) -> str:
    """Generate a mode-tagged id for a local session."""
    prefix = SESSION_ID_PREFIXES.get(mode)
    if prefix is None:
        raise ValueError("Remote session ids are assigned by the ledger")
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def mode_for_session_id(session_id: str) -> SessionMode:
    """Recover the mode from a session id. Untagged ids are remote."""
    for mode, prefix in SESSION_ID_PREFIXES.items():
        if session_id.startswith(prefix):
            return mode
    return SessionMode.REMOTE


@dataclass(frozen=True)
class GameSession:
    """
    One game instance.

    player_x/player_o hold ledger identities (remote), display labels
    (hotseat), or an identity plus the agent label (AI).
    """
    session_id: str
    mode: SessionMode
    board: Board = field(default_factory=empty_board)
    current_turn: Mark = Mark.X
    status: GameStatus = GameStatus.WAITING
    winner: Winner = Winner.NONE

    player_x: str | None = None
    player_o: str | None = None
    stake: str = "0"
    difficulty: Difficulty | None = None
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if len(self.board) != 9:
            raise ValueError("Board must have 9 cells")
        if (self.winner != Winner.NONE) != (self.status == GameStatus.FINISHED):
            raise ValueError(
                f"Winner {self.winner.name} inconsistent with status {self.status.name}"
            )

    @property
    def is_local(self) -> bool:
        return self.mode.is_local

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    @property
    def move_count(self) -> int:
        return sum(1 for cell in self.board if cell != Mark.EMPTY)

    def identity_for(self, mark: Mark) -> str | None:
        if mark == Mark.X:
            return self.player_x
        if mark == Mark.O:
            return self.player_o
        return None

    def _copy_with(self, **kwargs) -> GameSession:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)
