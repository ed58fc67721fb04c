"""
Local Session Store - The single slot holding the current local game.

A local game (AI or hotseat) is written whole after every move so that a
restarted client resumes exactly where it left off.
"""

from __future__ import annotations
import logging
from typing import Sequence

from ..engine_core.board import Mark, Winner, empty_board, make_board
from ..engine_core.state import (
    AGENT_LABEL,
    HOTSEAT_LABELS,
    Difficulty,
    GameSession,
    GameStatus,
    HUMAN_MARK,
    SessionMode,
    new_session_id,
)
from .backend import KeyValueStore
from .records import SessionRecord, load_record, save_record

logger = logging.getLogger(__name__)


CURRENT_GAME_KEY = "tictac.current_game"


class LocalSessionStore:
    """
    Usage:
        store = LocalSessionStore(MemoryStore())
        session = store.create(SessionMode.AI, Difficulty.HARD, "0xabc")
        ...
        session = store.replace_board_and_turn(session, board, Mark.O)
    """

    def __init__(self, backend: KeyValueStore, key: str = CURRENT_GAME_KEY):
        self.backend = backend
        self.key = key

    def create(
        self,
        mode: SessionMode | str,
        difficulty: Difficulty | str | None = None,
        player_label: str | None = None,
    ) -> GameSession:
        """
        Start a fresh local game and persist it, replacing any previous one.

        The human always holds X and opens.
        """
        mode = SessionMode(mode)
        if mode == SessionMode.REMOTE:
            raise ValueError("Remote sessions are created on the ledger")

        if mode == SessionMode.AI:
            player_x = player_label or "You"
            player_o = AGENT_LABEL
            difficulty = Difficulty(difficulty or Difficulty.HARD)
        else:
            player_x, player_o = HOTSEAT_LABELS
            difficulty = None

        session = GameSession(
            session_id=new_session_id(mode),
            mode=mode,
            board=empty_board(),
            current_turn=HUMAN_MARK,
            status=GameStatus.IN_PROGRESS,
            player_x=player_x,
            player_o=player_o,
            difficulty=difficulty,
        )
        self.save(session)
        logger.info("Created local %s session %s", mode.value, session.session_id)
        return session

    def load_current(self) -> GameSession | None:
        record = load_record(self.backend, self.key, SessionRecord)
        if record is None:
            return None
        try:
            return record.to_session()
        except ValueError as e:
            logger.warning("Stored session %s is inconsistent: %s", record.session_id, e)
            return None

    def load(self, session_id: str) -> GameSession | None:
        """Load the stored game only if it is the one asked for."""
        session = self.load_current()
        if session is None or session.session_id != session_id:
            return None
        return session

    def save(self, session: GameSession):
        save_record(self.backend, self.key, SessionRecord.from_session(session))

    def replace_board_and_turn(
        self,
        session: GameSession,
        board: Sequence[int],
        next_turn: Mark,
        status: GameStatus | None = None,
        winner: Winner = Winner.NONE,
    ) -> GameSession:
        """Write the full record with a new board, turn and (optionally) outcome."""
        updated = session._copy_with(
            board=make_board(board),
            current_turn=Mark(next_turn),
            status=session.status if status is None else GameStatus(status),
            winner=Winner(winner),
        )
        self.save(updated)
        return updated

    def clear(self):
        self.backend.delete(self.key)
