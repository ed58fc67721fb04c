"""
Ledger Client - Interface to the external authority for remote games.

The ledger:
- Owns the canonical record of every remote session
- Confirms or rejects submitted moves asynchronously
- Notifies subscribers after each confirmed change

Capabilities are passed explicitly to the components that need them.
There is no module-level client.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from ..engine_core.board import Board, Mark, Winner, make_board
from ..engine_core.state import GameSession, GameStatus, SessionMode
from .events import EventKind, LedgerEvent


EventHandler = Callable[[LedgerEvent], None]

# Unfilled seats are reported as the zero identity
ZERO_IDENTITY = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    One complete getSessionState response.

    Snapshots are never patched; a newer fetch replaces the whole value.
    """
    session_id: str
    identity_x: str | None
    identity_o: str | None
    stake: str
    board: Board
    current_turn: Mark
    winner: Winner
    status: GameStatus
    created_at: float

    @classmethod
    def from_raw(cls, session_id: str, raw: Mapping[str, Any]) -> LedgerSnapshot:
        """
        Decode a raw ledger response.

        The ledger reports a draw as winner=0 on a finished game; that is
        normalized to Winner.DRAW here.
        """
        status = GameStatus(int(raw["status"]))
        winner = Winner(int(raw.get("winner", 0)))
        if status == GameStatus.FINISHED and winner == Winner.NONE:
            winner = Winner.DRAW
        elif status != GameStatus.FINISHED and winner != Winner.NONE:
            raise ValueError(f"Session {session_id} has a winner but status {status.name}")

        turn = int(raw.get("current_turn", Mark.X))
        return cls(
            session_id=str(session_id),
            identity_x=_identity(raw.get("identity_x")),
            identity_o=_identity(raw.get("identity_o")),
            stake=str(raw.get("stake", "0")),
            board=make_board(raw["board"]),
            current_turn=Mark(turn) if turn in (Mark.X, Mark.O) else Mark.X,
            winner=winner,
            status=status,
            created_at=float(raw.get("created_at", 0.0)),
        )

    def to_session(self) -> GameSession:
        return GameSession(
            session_id=self.session_id,
            mode=SessionMode.REMOTE,
            board=self.board,
            current_turn=self.current_turn,
            status=self.status,
            winner=self.winner,
            player_x=self.identity_x,
            player_o=self.identity_o,
            stake=self.stake,
            created_at=self.created_at,
        )


def _identity(value: Any) -> str | None:
    if not value or str(value).lower() == ZERO_IDENTITY:
        return None
    return str(value)


class Subscription:
    """
    Disposer for a ledger subscription.

    The owner must call close() on teardown. Closing twice is harmless.
    """

    def __init__(self, kinds: Iterable[EventKind], dispose: Callable[[], None]):
        self.kinds = frozenset(kinds)
        self._dispose = dispose
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._dispose()


class LedgerClient(ABC):
    """
    Abstract ledger client.

    Implementations talk to a real ledger; InMemoryLedger is the
    in-process reference used by the CLI and tests.
    """

    @abstractmethod
    async def get_session_state(self, session_id: str) -> LedgerSnapshot:
        """Fetch the complete current state of one session."""

    @abstractmethod
    async def submit_move(self, session_id: str, position: int, actor: str) -> str:
        """
        Submit a move and wait for confirmation.

        Returns a confirmation handle. Raises ExternalSubmissionError if the
        ledger rejects the move or the submission fails.
        """

    @abstractmethod
    async def create_session(self, creator: str, stake: str = "0") -> str:
        """Open a new session with creator as X. Returns the session id."""

    @abstractmethod
    async def join_session(self, session_id: str, joiner: str) -> None:
        """Take the O seat of a waiting session."""

    @abstractmethod
    async def list_open_sessions(self) -> list[str]:
        """Ids of sessions waiting for a second player."""

    @abstractmethod
    async def list_player_sessions(self, identity: str) -> list[str]:
        """Ids of every session identity has played in."""

    @abstractmethod
    async def player_wins(self, identity: str) -> int:
        """Number of games identity has won."""

    @abstractmethod
    def subscribe(self, kinds: Iterable[EventKind], handler: EventHandler) -> Subscription:
        """Deliver events of the given kinds to handler until closed."""
