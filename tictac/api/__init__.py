"""
API Module - Client interface.

Exposes the session manager via a REST API and a WebSocket.
A client:
1. Creates, joins or opens a game
2. Polls or subscribes for the displayed game
3. Submits moves
4. Browses the lobby, preferences and achievements

Remote games are decided by the ledger; the API only relays.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    MoveRequest,
    PreferencesUpdate,
    # Responses
    ErrorResponse,
    GameStateResponse,
    MoveResponse,
    MoveAllowedResponse,
    LobbyEntry,
    LobbyResponse,
    AchievementsResponse,
    PreferencesResponse,
    HealthResponse,
    ErrorCode,
)
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "MoveRequest",
    "PreferencesUpdate",
    # Responses
    "ErrorResponse",
    "GameStateResponse",
    "MoveResponse",
    "MoveAllowedResponse",
    "LobbyEntry",
    "LobbyResponse",
    "AchievementsResponse",
    "PreferencesResponse",
    "HealthResponse",
    "ErrorCode",
    "create_app",
]
