"""
In-Memory Ledger - A process-local authoritative ledger.

Behaves like the external ledger as seen through LedgerClient:
- Moves are validated with the same validator and state machine
- Confirmation is asynchronous (optional delay)
- Events are emitted to subscribers after each confirmed change
- State is reported in the ledger's raw encoding and decoded on read

Used by the CLI for remote-mode demos and by the test suite.
"""

from __future__ import annotations
import asyncio
from decimal import Decimal, InvalidOperation
import itertools
import logging
from typing import Any, Iterable

from ..engine_core.action import Move
from ..engine_core.board import Mark, Winner
from ..engine_core.reducer import GameStateMachine
from ..engine_core.state import GameSession, GameStatus, SessionMode
from ..engine_core.validator import normalize_identity
from ..errors import ExternalSubmissionError, SessionNotFound
from .client import EventHandler, LedgerClient, LedgerSnapshot, Subscription, ZERO_IDENTITY
from .events import (
    EventKind,
    LedgerEvent,
    MoveMade,
    SessionCancelled,
    SessionCreated,
    SessionDraw,
    SessionFinished,
    SessionJoined,
)

logger = logging.getLogger(__name__)


class InMemoryLedger(LedgerClient):
    """
    Usage:
        ledger = InMemoryLedger()
        sid = await ledger.create_session("0xabc", stake="0.01")
        await ledger.join_session(sid, "0xdef")
        await ledger.submit_move(sid, 4, "0xabc")
    """

    def __init__(self, confirmation_delay: float = 0.0):
        self.confirmation_delay = confirmation_delay
        self.machine = GameStateMachine()
        self._games: dict[str, GameSession] = {}
        self._ids = itertools.count(1)
        self._tx = itertools.count(1)
        self._subscribers: dict[int, tuple[frozenset[EventKind], EventHandler]] = {}
        self._sub_ids = itertools.count(1)
        self._wins: dict[str, int] = {}

        # Observability for tests
        self.state_fetches = 0

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_session_state(self, session_id: str) -> LedgerSnapshot:
        self.state_fetches += 1
        game = self._get(session_id)
        return LedgerSnapshot.from_raw(session_id, self._encode(game))

    async def list_open_sessions(self) -> list[str]:
        return [
            sid for sid, game in self._games.items()
            if game.status == GameStatus.WAITING
        ]

    async def list_player_sessions(self, identity: str) -> list[str]:
        who = normalize_identity(identity)
        return [
            sid for sid, game in self._games.items()
            if who is not None and who in (
                normalize_identity(game.player_x),
                normalize_identity(game.player_o),
            )
        ]

    async def player_wins(self, identity: str) -> int:
        return self._wins.get(normalize_identity(identity) or "", 0)

    # =========================================================================
    # Commands
    # =========================================================================

    async def create_session(self, creator: str, stake: str = "0") -> str:
        if not normalize_identity(creator):
            raise ExternalSubmissionError("Creator identity is required")
        stake = _parse_stake(stake)

        session_id = str(next(self._ids))
        self._games[session_id] = GameSession(
            session_id=session_id,
            mode=SessionMode.REMOTE,
            status=GameStatus.WAITING,
            player_x=creator,
            stake=stake,
        )
        logger.info("Ledger: session %s created by %s (stake %s)", session_id, creator, stake)
        self._emit(SessionCreated(session_id, creator=creator, stake=stake))
        return session_id

    async def join_session(self, session_id: str, joiner: str) -> None:
        game = self._get(session_id)
        if game.status != GameStatus.WAITING:
            raise ExternalSubmissionError("Game is not open", session_id)
        if not normalize_identity(joiner):
            raise ExternalSubmissionError("Joiner identity is required", session_id)
        if normalize_identity(joiner) == normalize_identity(game.player_x):
            raise ExternalSubmissionError("Cannot join your own game", session_id)

        self._games[session_id] = self.machine.start(game._copy_with(player_o=joiner))
        logger.info("Ledger: %s joined session %s", joiner, session_id)
        self._emit(SessionJoined(session_id, joiner=joiner))

    async def submit_move(self, session_id: str, position: int, actor: str) -> str:
        if self.confirmation_delay:
            await asyncio.sleep(self.confirmation_delay)

        game = self._games.get(session_id)
        if game is None:
            raise ExternalSubmissionError(f"Game {session_id} does not exist", session_id)

        result = self.machine.apply_authoritative(game, Move(position, actor))
        if not result.success:
            raise ExternalSubmissionError(result.error or "Move rejected", session_id)

        updated = result.new_session
        self._games[session_id] = updated
        tx = f"tx-{next(self._tx)}"
        logger.info("Ledger: %s in session %s (%s)", "; ".join(result.changes), session_id, tx)

        self._emit(MoveMade(session_id, player=actor, position=position))
        if updated.status == GameStatus.FINISHED:
            if updated.winner == Winner.DRAW:
                self._emit(SessionDraw(session_id))
            else:
                winner = updated.identity_for(Mark(int(updated.winner)))
                key = normalize_identity(winner) or ""
                self._wins[key] = self._wins.get(key, 0) + 1
                prize = str(Decimal(updated.stake) * 2)
                self._emit(SessionFinished(session_id, winner=winner, prize=prize))
        return tx

    async def cancel_session(self, session_id: str) -> None:
        game = self._get(session_id)
        if game.is_over:
            raise ExternalSubmissionError("Game is already over", session_id)
        self._games[session_id] = self.machine.cancel(game)
        logger.info("Ledger: session %s cancelled", session_id)
        self._emit(SessionCancelled(session_id))

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, kinds: Iterable[EventKind], handler: EventHandler) -> Subscription:
        kinds = frozenset(EventKind(k) for k in kinds)
        sub_id = next(self._sub_ids)
        self._subscribers[sub_id] = (kinds, handler)
        return Subscription(kinds, lambda: self._subscribers.pop(sub_id, None))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _emit(self, event: LedgerEvent):
        for kinds, handler in list(self._subscribers.values()):
            if event.kind not in kinds:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Ledger subscriber failed on %s", event.kind.value)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get(self, session_id: str) -> GameSession:
        game = self._games.get(str(session_id))
        if game is None:
            raise SessionNotFound(f"Game {session_id} does not exist")
        return game

    def _encode(self, game: GameSession) -> dict[str, Any]:
        """Raw ledger encoding: draws are winner=0, empty seats the zero identity."""
        winner = 0 if game.winner == Winner.DRAW else int(game.winner)
        return {
            "identity_x": game.player_x or ZERO_IDENTITY,
            "identity_o": game.player_o or ZERO_IDENTITY,
            "stake": game.stake,
            "board": [int(c) for c in game.board],
            "current_turn": int(game.current_turn),
            "winner": winner,
            "status": int(game.status),
            "created_at": game.created_at,
        }


def _parse_stake(stake: str) -> str:
    try:
        value = Decimal(str(stake))
    except InvalidOperation:
        raise ExternalSubmissionError(f"Invalid stake: {stake!r}")
    if not value.is_finite():
        raise ExternalSubmissionError(f"Invalid stake: {stake!r}")
    if value < 0:
        raise ExternalSubmissionError("Stake must not be negative")
    return str(value)
