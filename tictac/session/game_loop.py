"""
Game Loop - Turn driver for local games.

The loop:
1. Human claims a cell
2. Engine validates and applies it, persists the full record
3. In AI games, the agent "thinks" for a moment and replies
4. Engine applies and persists the reply
5. Repeat until the game is over

Hotseat games skip steps 3-4; the device is passed between players.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging

from ..bots import AdversarialAgent
from ..engine_core.action import Move
from ..engine_core.board import Winner
from ..engine_core.messages import local_message
from ..engine_core.reducer import GameStateMachine
from ..engine_core.state import AGENT_MARK, HUMAN_MARK, Difficulty, GameSession, SessionMode
from ..engine_core.validator import RejectionReason
from ..storage import LocalSessionStore

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of the game loop."""
    WAITING_HUMAN = "waiting_human"
    AGENT_THINKING = "agent_thinking"
    GAME_OVER = "game_over"


@dataclass
class TurnResult:
    """
    Result of processing a turn.

    Contains the session after every move applied this turn and the
    status line to show.
    """
    success: bool
    loop_state: LoopState
    session: GameSession | None = None

    # Moves applied this turn, e.g. "X played 4"
    moves: list[str] = field(default_factory=list)
    agent_move: int | None = None

    # Ledger transaction id for a remote submission
    transaction: str | None = None

    # Rejection
    reason: RejectionReason | None = None
    errors: list[str] = field(default_factory=list)

    message: str = ""

    @property
    def winner(self) -> Winner:
        if self.session is None:
            return Winner.NONE
        return self.session.winner


class LocalGameLoop:
    """
    Drives one local session.

    Usage:
        loop = LocalGameLoop(store, agent=AdversarialAgent("hard"))
        result = await loop.play(session, 4)
        if result.success:
            session = result.session
    """

    def __init__(
        self,
        store: LocalSessionStore,
        agent: AdversarialAgent | None = None,
        ai_delay: float = 0.5,
        machine: GameStateMachine | None = None,
    ):
        self.store = store
        self.agent = agent
        self.ai_delay = ai_delay
        self.machine = machine or GameStateMachine()
        self.state = LoopState.WAITING_HUMAN

    @property
    def thinking(self) -> bool:
        return self.state == LoopState.AGENT_THINKING

    async def play(self, session: GameSession, position: int) -> TurnResult:
        """Apply the human's move and, in AI games, the agent's reply."""
        if session.mode == SessionMode.AI and session.current_turn != HUMAN_MARK:
            actor = None  # not the human's turn
        else:
            actor = session.identity_for(session.current_turn)

        result = self.machine.apply_move(session, Move(position, actor))
        if not result.success:
            return self._rejected(session, result.reason, result.error)

        session = self._persist(result.new_session)
        turn = self._finish(session, list(result.changes))
        if self._agent_to_move(session):
            turn = await self._agent_turn(session, turn.moves)
        return turn

    async def resume(self, session: GameSession) -> TurnResult:
        """Let the agent move if a stored AI game was left on its turn."""
        if not self._agent_to_move(session):
            return self._finish(session, [])
        return await self._agent_turn(session, [])

    def _agent_to_move(self, session: GameSession) -> bool:
        return (
            session.mode == SessionMode.AI
            and not session.is_over
            and session.current_turn == AGENT_MARK
        )

    async def _agent_turn(self, session: GameSession, moves: list[str]) -> TurnResult:
        agent = self.agent or AdversarialAgent(session.difficulty or Difficulty.HARD)
        self.state = LoopState.AGENT_THINKING
        try:
            if self.ai_delay:
                await asyncio.sleep(self.ai_delay)
            decision = agent.decide(session.board)
            result = self.machine.apply_move(
                session, Move(decision.position, session.identity_for(AGENT_MARK))
            )
        finally:
            self.state = LoopState.WAITING_HUMAN

        if not result.success:
            # Policies only pick empty cells, so the session changed underneath
            logger.error(
                "Agent move %d rejected in %s: %s",
                decision.position, session.session_id, result.error,
            )
            return self._rejected(session, result.reason, result.error, moves)

        session = self._persist(result.new_session)
        turn = self._finish(session, moves + result.changes)
        turn.agent_move = decision.position
        return turn

    def _persist(self, session: GameSession) -> GameSession:
        return self.store.replace_board_and_turn(
            session, session.board, session.current_turn, session.status, session.winner,
        )

    def _finish(self, session: GameSession, moves: list[str]) -> TurnResult:
        self.state = LoopState.GAME_OVER if session.is_over else LoopState.WAITING_HUMAN
        return TurnResult(
            success=True,
            loop_state=self.state,
            session=session,
            moves=moves,
            message=local_message(session),
        )

    def _rejected(
        self,
        session: GameSession,
        reason: RejectionReason | None,
        error: str | None,
        moves: list[str] | None = None,
    ) -> TurnResult:
        return TurnResult(
            success=False,
            loop_state=self.state,
            session=session,
            moves=moves or [],
            reason=reason,
            errors=[error or "Move rejected"],
            message=local_message(session),
        )
