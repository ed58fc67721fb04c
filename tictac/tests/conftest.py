"""
Pytest fixtures for TicTac tests.
"""

import random

import pytest

from ..config import Settings
from ..engine_core.board import make_board
from ..engine_core.state import GameSession, GameStatus, SessionMode
from ..ledger import InMemoryLedger
from ..session import SessionManager
from ..storage import MemoryStore


ALICE = "0xA11CE00000000000000000000000000000000001"
BOB = "0xB0B0000000000000000000000000000000000002"


def board(text: str):
    """Board from a 9-character string of X, O and '.'."""
    return make_board({"X": 1, "O": 2, ".": 0}[c] for c in text)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with no artificial delays."""
    return Settings(list_debounce=0.02, fetch_delay=0.0, ai_delay=0.0)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def manager(ledger, store, fast_settings) -> SessionManager:
    """Session manager signed in as ALICE with a seeded agent."""
    return SessionManager(
        ledger=ledger,
        store=store,
        settings=fast_settings,
        identity=ALICE,
        rng=random.Random(7),
    )


@pytest.fixture
def remote_session() -> GameSession:
    """A remote game in progress, ALICE as X to move."""
    return GameSession(
        session_id="1",
        mode=SessionMode.REMOTE,
        status=GameStatus.IN_PROGRESS,
        player_x=ALICE,
        player_o=BOB,
    )


@pytest.fixture
def hotseat_session() -> GameSession:
    """A hotseat game in progress, Player 1 as X to move."""
    return GameSession(
        session_id="local-test",
        mode=SessionMode.HOTSEAT,
        status=GameStatus.IN_PROGRESS,
        player_x="Player 1",
        player_o="Player 2",
    )
