"""
Engine Core - Deterministic board, validation and session state.

The engine:
1. Represents the board and detects wins/draws
2. Validates moves identically for every mode
3. Applies local moves and mirrors remote snapshots
4. Produces status text for the displayed game
"""

from .board import (
    Mark,
    Winner,
    Board,
    WINNING_LINES,
    CENTER,
    CORNERS,
    EDGES,
    empty_board,
    make_board,
    empty_positions,
    check_winner,
    is_board_full,
    is_draw,
    outcome,
)
from .state import GameSession, GameStatus, SessionMode, Difficulty
from .action import Move, MoveResult
from .validator import (
    MoveValidation,
    RejectionReason,
    is_turn_owner,
    validate_move,
)
from .reducer import GameStateMachine, apply_move
from .messages import turn_message, session_message

__all__ = [
    "Mark",
    "Winner",
    "Board",
    "WINNING_LINES",
    "CENTER",
    "CORNERS",
    "EDGES",
    "empty_board",
    "make_board",
    "empty_positions",
    "check_winner",
    "is_board_full",
    "is_draw",
    "outcome",
    "GameSession",
    "GameStatus",
    "SessionMode",
    "Difficulty",
    "Move",
    "MoveResult",
    "MoveValidation",
    "RejectionReason",
    "is_turn_owner",
    "validate_move",
    "GameStateMachine",
    "apply_move",
    "turn_message",
    "session_message",
]
