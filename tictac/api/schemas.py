"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a client UI and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- INVALID_MOVE: Move failed local validation (occupied, wrong turn, ...)
- SESSION_BUSY: A move is already outstanding for the displayed game
- SESSION_NOT_FOUND: Session does not exist or nothing is open
- LEDGER_REJECTED: The ledger refused or failed a submission
"""

from enum import Enum
from typing import Literal, Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.board import Mark, Winner
from ..engine_core.state import Difficulty, GameSession, GameStatus, SessionMode
from ..engine_core.validator import format_identity
from ..ledger.client import LedgerSnapshot
from ..storage.records import Achievement, PreferencesRecord


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_MOVE = "INVALID_MOVE"
    SESSION_BUSY = "SESSION_BUSY"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    LEDGER_REJECTED = "LEDGER_REJECTED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to start a game."""
    mode: SessionMode = Field(SessionMode.AI, description="remote, ai or hotseat")
    difficulty: Optional[Difficulty] = Field(
        None, description="Agent tier for AI games (defaults to preferences)"
    )
    stake: str = Field("0", description="Stake for remote games, decimal string")


class MoveRequest(BaseModel):
    """Request to claim a cell in the displayed game."""
    position: int = Field(..., description="Cell index 0-8, row-major")


class PreferencesUpdate(BaseModel):
    """Partial preferences update; omitted fields keep their value."""
    theme: Optional[Literal["dark", "light"]] = None
    sound_enabled: Optional[bool] = None
    notifications_enabled: Optional[bool] = None
    auto_refresh: Optional[bool] = None
    default_stake: Optional[str] = None
    ai_difficulty: Optional[Difficulty] = None
    language: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """The displayed game."""
    session_id: str
    mode: SessionMode
    board: list[int] = Field(..., description="9 cells: 0 empty, 1 X, 2 O")
    current_turn: Mark
    status: GameStatus
    winner: Winner
    player_x: Optional[str] = None
    player_o: Optional[str] = None
    player_x_display: str = ""
    player_o_display: str = ""
    stake: str = "0"
    difficulty: Optional[Difficulty] = None
    message: str = Field("", description="One-line status text")
    busy: bool = False
    created_at: float = 0.0
    api_version: str = "v1"

    @classmethod
    def from_session(cls, session: GameSession, message: str = "", busy: bool = False) -> "GameStateResponse":
        return cls(
            session_id=session.session_id,
            mode=session.mode,
            board=[int(c) for c in session.board],
            current_turn=session.current_turn,
            status=session.status,
            winner=session.winner,
            player_x=session.player_x,
            player_o=session.player_o,
            player_x_display=format_identity(session.player_x),
            player_o_display=format_identity(session.player_o),
            stake=session.stake,
            difficulty=session.difficulty,
            message=message,
            busy=busy,
            created_at=session.created_at,
        )


class MoveResponse(BaseModel):
    """Result of a submitted move."""
    success: bool
    moves: list[str] = Field(default_factory=list, description="Moves applied, e.g. 'X played 4'")
    agent_move: Optional[int] = Field(None, description="Cell the agent replied with (AI games)")
    transaction: Optional[str] = Field(None, description="Ledger transaction id (remote games)")
    game_state: Optional[GameStateResponse] = None
    api_version: str = "v1"


class MoveAllowedResponse(BaseModel):
    position: int
    allowed: bool


class LobbyEntry(BaseModel):
    """One remote session in the lobby."""
    session_id: str
    player_x: Optional[str] = None
    player_o: Optional[str] = None
    player_x_display: str = ""
    stake: str = "0"
    status: GameStatus
    created_at: float = 0.0

    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot) -> "LobbyEntry":
        return cls(
            session_id=snapshot.session_id,
            player_x=snapshot.identity_x,
            player_o=snapshot.identity_o,
            player_x_display=format_identity(snapshot.identity_x),
            stake=snapshot.stake,
            status=snapshot.status,
            created_at=snapshot.created_at,
        )


class LobbyResponse(BaseModel):
    open_sessions: list[LobbyEntry] = Field(default_factory=list)
    my_sessions: list[LobbyEntry] = Field(default_factory=list)
    refreshed_at: float = 0.0
    api_version: str = "v1"


class AchievementsResponse(BaseModel):
    account: str
    achievements: list[Achievement] = Field(default_factory=list)
    newly_unlocked: list[str] = Field(default_factory=list)


class PreferencesResponse(BaseModel):
    preferences: PreferencesRecord
    api_version: str = "v1"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
