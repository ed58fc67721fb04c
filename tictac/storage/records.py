"""
Persisted Records - Versioned schemas for everything written to storage.

Every record carries schema_version. A record that does not parse or does
not match its schema is corrupt: decode_record raises StorageCorruption and
load_record logs it and reports the record as absent.
"""

from __future__ import annotations
import logging
import time
from typing import Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..engine_core.board import Mark, Winner
from ..engine_core.state import Difficulty, GameSession, GameStatus, SessionMode
from ..errors import StorageCorruption
from .backend import KeyValueStore

logger = logging.getLogger(__name__)


R = TypeVar("R", bound=BaseModel)


class SessionRecord(BaseModel):
    """A local game, stored whole after every move."""
    schema_version: Literal[1] = 1
    session_id: str
    mode: SessionMode
    board: list[int] = Field(min_length=9, max_length=9)
    current_turn: Mark
    status: GameStatus
    winner: Winner = Winner.NONE
    player_x: Optional[str] = None
    player_o: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    created_at: float = Field(default_factory=time.time)

    @field_validator("board")
    @classmethod
    def _cells_are_marks(cls, board: list[int]) -> list[int]:
        for cell in board:
            Mark(cell)
        return board

    @field_validator("mode")
    @classmethod
    def _local_only(cls, mode: SessionMode) -> SessionMode:
        if mode == SessionMode.REMOTE:
            raise ValueError("remote sessions are never persisted locally")
        return mode

    @classmethod
    def from_session(cls, session: GameSession) -> SessionRecord:
        return cls(
            session_id=session.session_id,
            mode=session.mode,
            board=[int(c) for c in session.board],
            current_turn=session.current_turn,
            status=session.status,
            winner=session.winner,
            player_x=session.player_x,
            player_o=session.player_o,
            difficulty=session.difficulty,
            created_at=session.created_at,
        )

    def to_session(self) -> GameSession:
        return GameSession(
            session_id=self.session_id,
            mode=self.mode,
            board=tuple(Mark(c) for c in self.board),
            current_turn=self.current_turn,
            status=self.status,
            winner=self.winner,
            player_x=self.player_x,
            player_o=self.player_o,
            difficulty=self.difficulty,
            created_at=self.created_at,
        )


class Achievement(BaseModel):
    id: str
    name: str
    icon: str = ""
    unlocked_at: float = Field(default_factory=time.time)


class AchievementsRecord(BaseModel):
    """Unlocked achievements, scoped to one account."""
    schema_version: Literal[1] = 1
    account: str
    achievements: list[Achievement] = Field(default_factory=list)


class PreferencesRecord(BaseModel):
    """User preferences, scoped to one account."""
    schema_version: Literal[1] = 1
    account: str = ""
    theme: Literal["dark", "light"] = "dark"
    sound_enabled: bool = True
    notifications_enabled: bool = True
    auto_refresh: bool = True
    default_stake: str = "0.0001"
    ai_difficulty: Difficulty = Difficulty.HARD
    language: str = "en"


def decode_record(raw: str, model: Type[R], key: str = "record") -> R:
    """Parse and validate a stored record, or raise StorageCorruption."""
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise StorageCorruption(key, f"{e.error_count()} validation error(s)") from e
    except ValueError as e:
        raise StorageCorruption(key, str(e)) from e


def load_record(store: KeyValueStore, key: str, model: Type[R]) -> R | None:
    """Read a record; absent and corrupt records both come back as None."""
    try:
        raw = store.get(key)
    except UnicodeDecodeError as e:
        corruption = StorageCorruption(key, f"not valid UTF-8 ({e.reason})")
        logger.warning("%s; treating as absent", corruption)
        return None
    if raw is None:
        return None
    try:
        return decode_record(raw, model, key)
    except StorageCorruption as e:
        logger.warning("%s; treating as absent", e)
        return None


def save_record(store: KeyValueStore, key: str, record: BaseModel):
    store.set(key, record.model_dump_json())
