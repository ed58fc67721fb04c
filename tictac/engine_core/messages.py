"""
Status Messages - One-line status text for the displayed game.
"""

from __future__ import annotations

from .board import Mark, Winner
from .state import AGENT_MARK, GameSession, GameStatus, HOTSEAT_LABELS, SessionMode
from .validator import is_turn_owner


def turn_message(
    status: int,
    current_turn: int,
    actor: str | None,
    identity_x: str | None,
    identity_o: str | None,
    winner: int = Winner.NONE,
) -> str:
    """Status text for a remote game as seen by actor."""
    if status == GameStatus.FINISHED:
        if winner == Winner.X:
            return "Player X won!"
        if winner == Winner.O:
            return "Player O won!"
        return "Game ended in a draw"

    if status == GameStatus.CANCELLED:
        return "Game cancelled"

    if status == GameStatus.WAITING:
        return "Waiting for opponent..."

    if not actor or not identity_x or not identity_o:
        return "Loading..."

    if is_turn_owner(current_turn, actor, identity_x, identity_o):
        return "Your turn!"

    symbol = Mark(current_turn).symbol
    return f"Opponent's turn ({symbol})..."


def hotseat_label(mark: Mark) -> str:
    index = 0 if mark == Mark.X else 1
    return f"{HOTSEAT_LABELS[index]} ({mark.symbol})"


def local_message(session: GameSession, thinking: bool = False) -> str:
    """Status text for an AI or hotseat game."""
    if session.mode == SessionMode.AI:
        if session.status == GameStatus.FINISHED:
            if session.winner == Winner.DRAW:
                return "Draw!"
            if session.winner == Winner.for_mark(AGENT_MARK):
                return "AI won! Try again!"
            return "You won! Congratulations!"
        if thinking or session.current_turn == AGENT_MARK:
            return "AI is thinking..."
        return "Your turn!"

    if session.status == GameStatus.FINISHED:
        if session.winner == Winner.DRAW:
            return "Draw!"
        return f"{hotseat_label(Mark(int(session.winner)))} won!"
    return f"{hotseat_label(session.current_turn)}'s turn"


def session_message(session: GameSession | None, actor: str | None, thinking: bool = False) -> str:
    """Status text for any session."""
    if session is None:
        return "Loading..."
    if session.is_local:
        return local_message(session, thinking=thinking)
    return turn_message(
        session.status,
        session.current_turn,
        actor,
        session.player_x,
        session.player_o,
        session.winner,
    )
