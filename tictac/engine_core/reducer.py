"""
State Machine - Applies moves and status transitions to sessions.

The state machine is the single point of session mutation.

Lifecycle:
    WAITING -> IN_PROGRESS   second seat filled (ledger event, or at creation locally)
    IN_PROGRESS -> FINISHED  win or draw after an accepted move
    * -> CANCELLED           only when the ledger says so

Authority:
- Local sessions: transitions are decided here, synchronously with the move
- Remote sessions: this is a passive mirror; transitions arrive as
  complete ledger snapshots and are never inferred locally
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

from ..errors import StatusRegression
from .action import Move, MoveResult
from .board import Mark, Winner, outcome, place
from .state import GameSession, GameStatus, SessionMode
from .validator import RejectionReason, validate_move

if TYPE_CHECKING:
    from ..ledger.client import LedgerSnapshot

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[GameStatus, frozenset[GameStatus]] = {
    GameStatus.WAITING: frozenset({GameStatus.IN_PROGRESS, GameStatus.CANCELLED}),
    GameStatus.IN_PROGRESS: frozenset({GameStatus.FINISHED, GameStatus.CANCELLED}),
    GameStatus.FINISHED: frozenset(),
    GameStatus.CANCELLED: frozenset(),
}


def can_transition(current: GameStatus, proposed: GameStatus) -> bool:
    """Same-status is always allowed; anything else must be a forward edge."""
    return current == proposed or proposed in ALLOWED_TRANSITIONS[current]


class GameStateMachine:
    """
    Stateless - all state lives in GameSession.

    Usage:
        machine = GameStateMachine()
        result = machine.apply_move(session, Move(4, "Player 1"))
        if result.success:
            session = result.new_session
    """

    def apply_move(self, session: GameSession, move: Move) -> MoveResult:
        """Validate and apply a move to a local session."""
        if session.mode == SessionMode.REMOTE:
            return MoveResult.failure(
                RejectionReason.REMOTE_AUTHORITATIVE,
                "Remote games are decided by the ledger",
            )
        return self.apply_authoritative(session, move)

    def apply_authoritative(self, session: GameSession, move: Move) -> MoveResult:
        """
        Apply a move as the deciding authority.

        Used for local sessions and by the in-memory ledger itself.
        """
        validation = validate_move(
            session.board,
            move.position,
            session.current_turn,
            move.actor,
            session.player_x,
            session.player_o,
            session.status,
        )
        if not validation.valid:
            return MoveResult.failure(validation.reason, validation.message)

        mark = session.current_turn
        board = place(session.board, move.position, mark)
        result = outcome(board)
        changes = [f"{mark.symbol} played {move.position}"]

        if result == Winner.NONE:
            new_session = session._copy_with(board=board, current_turn=mark.opponent)
        else:
            new_session = session._copy_with(
                board=board,
                current_turn=mark.opponent,
                status=self._checked(session.status, GameStatus.FINISHED),
                winner=result,
            )
            changes.append(
                "Draw" if result == Winner.DRAW else f"{mark.symbol} wins"
            )

        logger.debug("Session %s: %s", session.session_id, "; ".join(changes))
        return MoveResult.success_with_session(new_session, changes)

    def start(self, session: GameSession) -> GameSession:
        """WAITING -> IN_PROGRESS once both seats are filled."""
        if not session.player_x or not session.player_o:
            raise ValueError("Both seats must be filled to start")
        status = self._checked(session.status, GameStatus.IN_PROGRESS)
        return session._copy_with(status=status)

    def cancel(self, session: GameSession) -> GameSession:
        """Apply a cancellation reported by the ledger."""
        status = self._checked(session.status, GameStatus.CANCELLED)
        return session._copy_with(status=status, winner=Winner.NONE)

    def mirror(self, current: GameSession | None, snapshot: LedgerSnapshot) -> GameSession:
        """
        Replace a remote session with a ledger snapshot.

        Every field comes from the snapshot. Raises StatusRegression if the
        snapshot is older than what is already displayed.
        """
        if current is not None:
            if current.session_id != snapshot.session_id:
                raise ValueError(
                    f"Snapshot for {snapshot.session_id} cannot replace {current.session_id}"
                )
            self._checked(current.status, snapshot.status)
        return snapshot.to_session()

    def _checked(self, current: GameStatus, proposed: GameStatus) -> GameStatus:
        if not can_transition(current, proposed):
            raise StatusRegression(current, proposed)
        return proposed


def apply_move(session: GameSession, move: Move) -> MoveResult:
    """Convenience wrapper around GameStateMachine.apply_move."""
    return GameStateMachine().apply_move(session, move)

