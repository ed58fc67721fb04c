"""
Turn Validator - Decides whether a candidate move is legal.

The same checks run for every mode. For remote sessions they answer
"would the ledger accept this" from the last confirmed snapshot; for
local sessions they gate the state machine directly.

Checks, in precedence order:
1. Game is in progress
2. Position is on the board
3. Cell is empty
4. Actor owns the current turn
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .board import BOARD_SIZE, Mark
from .state import GameStatus


class RejectionReason(str, Enum):
    """Why a move was refused."""
    NOT_IN_PROGRESS = "not_in_progress"
    OUT_OF_BOUNDS = "out_of_bounds"
    OCCUPIED = "occupied"
    WRONG_TURN = "wrong_turn"
    REMOTE_AUTHORITATIVE = "remote_authoritative"


REJECTION_MESSAGES = {
    RejectionReason.NOT_IN_PROGRESS: "Game is not in progress",
    RejectionReason.OUT_OF_BOUNDS: "Position out of bounds",
    RejectionReason.OCCUPIED: "Position already occupied",
    RejectionReason.WRONG_TURN: "Not your turn",
    RejectionReason.REMOTE_AUTHORITATIVE: "Remote games are decided by the ledger",
}


@dataclass(frozen=True)
class MoveValidation:
    """Accepted, or rejected with a reason."""
    valid: bool
    reason: RejectionReason | None = None

    @property
    def message(self) -> str:
        if self.reason is None:
            return ""
        return REJECTION_MESSAGES[self.reason]

    @classmethod
    def accepted(cls) -> MoveValidation:
        return cls(valid=True)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> MoveValidation:
        return cls(valid=False, reason=reason)


def normalize_identity(identity: str | None) -> str | None:
    """Canonical comparable form. Blank identities count as absent."""
    if identity is None:
        return None
    normalized = identity.strip().casefold()
    return normalized or None


def is_turn_owner(
    current_turn: int,
    actor: str | None,
    identity_x: str | None,
    identity_o: str | None,
) -> bool:
    """True if actor holds the identity for the mark whose turn it is."""
    actor_n = normalize_identity(actor)
    x_n = normalize_identity(identity_x)
    o_n = normalize_identity(identity_o)
    if actor_n is None or x_n is None or o_n is None:
        return False

    if current_turn == Mark.X:
        return actor_n == x_n
    if current_turn == Mark.O:
        return actor_n == o_n
    return False


def is_valid_position(position) -> bool:
    # bool is an int subclass but never a cell index
    if isinstance(position, bool) or not isinstance(position, int):
        return False
    return 0 <= position < BOARD_SIZE


def validate_move(
    board: Sequence[int],
    position,
    current_turn: int,
    actor: str | None,
    identity_x: str | None,
    identity_o: str | None,
    status: int,
) -> MoveValidation:
    """
    Validate a move against a board snapshot.

    This is the only gate through which a cell may go from EMPTY to a mark.
    """
    if status != GameStatus.IN_PROGRESS:
        return MoveValidation.rejected(RejectionReason.NOT_IN_PROGRESS)

    if not is_valid_position(position):
        return MoveValidation.rejected(RejectionReason.OUT_OF_BOUNDS)

    if board[position] != Mark.EMPTY:
        return MoveValidation.rejected(RejectionReason.OCCUPIED)

    if not is_turn_owner(current_turn, actor, identity_x, identity_o):
        return MoveValidation.rejected(RejectionReason.WRONG_TURN)

    return MoveValidation.accepted()


def player_symbol(actor: str | None, identity_x: str | None) -> str:
    """'X' if actor is player X, 'O' otherwise, '' when unknown."""
    actor_n = normalize_identity(actor)
    x_n = normalize_identity(identity_x)
    if actor_n is None or x_n is None:
        return ""
    return "X" if actor_n == x_n else "O"


def opponent_identity(
    actor: str | None,
    identity_x: str | None,
    identity_o: str | None,
) -> str:
    """The identity on the other side of the board from actor."""
    if not actor or not identity_x or not identity_o:
        return ""
    if normalize_identity(actor) == normalize_identity(identity_x):
        return identity_o
    return identity_x


def format_identity(identity: str | None) -> str:
    """Abbreviate a long ledger identity as 0x1234...5678."""
    if not identity:
        return ""
    if len(identity) <= 10:
        return identity
    return f"{identity[:6]}...{identity[-4:]}"
