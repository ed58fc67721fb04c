"""
FastAPI Application - REST API for a tic-tac-toe client.

Endpoints:
    POST   /api/v1/sessions                     Create a game (remote, ai, hotseat)
    POST   /api/v1/sessions/{id}/join           Join an open remote game
    POST   /api/v1/sessions/{id}/open           Display an existing game
    GET    /api/v1/game                         Displayed game and status message
    POST   /api/v1/game/moves                   Claim a cell
    GET    /api/v1/game/moves/{position}/allowed  Whether a cell may be claimed now
    GET    /api/v1/lobby                        Open games and my games
    GET    /api/v1/preferences                  Preferences for the identity
    PUT    /api/v1/preferences                  Update preferences
    GET    /api/v1/achievements                 Achievements (checks for new ones)
    WS     /api/v1/game/ws                      Push updates for the displayed game

Move Flow:
    Local games: the response carries the human move and, in AI games,
    the agent's reply.
    Remote games: the response is sent after the ledger confirms the
    move and the displayed game has been reconciled from the ledger.

All requests and responses are JSON with explicit Pydantic schemas.
"""

from contextlib import asynccontextmanager
from typing import Optional, Union
import asyncio
import json
import logging

from ..config import Settings
from ..errors import (
    ExternalSubmissionError,
    MoveValidationError,
    SessionBusyError,
    SessionNotFound,
    TicTacError,
)

logger = logging.getLogger(__name__)


def create_app(manager=None, settings: Optional[Settings] = None):
    """
    Create the FastAPI application.

    Args:
        manager: Optional SessionManager instance (creates new if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from ..session import SessionManager, TurnResult
    from ..storage import FileStore, MemoryStore
    from .schemas import (
        # Request models
        CreateSessionRequest,
        MoveRequest,
        PreferencesUpdate,
        # Response models
        ErrorResponse,
        GameStateResponse,
        MoveResponse,
        MoveAllowedResponse,
        LobbyEntry,
        LobbyResponse,
        AchievementsResponse,
        PreferencesResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    settings = settings or (manager.settings if manager else Settings.from_env())
    if manager is None:
        store = FileStore(settings.data_dir) if settings.env == "production" else MemoryStore()
        manager = SessionManager(store=store, settings=settings)

    # WebSocket connections for the displayed game
    ws_connections: list[WebSocket] = []

    @asynccontextmanager
    async def lifespan(app):
        yield
        manager.close()

    app = FastAPI(
        title="TicTac Engine API",
        description="""
Tic-tac-toe against the ledger, the built-in agent, or a friend on the same device.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_MOVE` | Cell occupied, out of range, not your turn, or game not in progress |
| `SESSION_BUSY` | A move is already outstanding |
| `SESSION_NOT_FOUND` | Game does not exist or nothing is open |
| `LEDGER_REJECTED` | The ledger refused or failed the submission |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(),
        )

    def error_for(exc: Exception) -> JSONResponse:
        """Map engine exceptions onto error responses."""
        if isinstance(exc, MoveValidationError):
            return make_error_response(
                ErrorCode.INVALID_MOVE, exc.message, details={"reason": exc.reason.value},
            )
        if isinstance(exc, SessionBusyError):
            return make_error_response(ErrorCode.SESSION_BUSY, str(exc), status_code=409)
        if isinstance(exc, SessionNotFound):
            return make_error_response(ErrorCode.SESSION_NOT_FOUND, str(exc), status_code=404)
        if isinstance(exc, ExternalSubmissionError):
            return make_error_response(
                ErrorCode.LEDGER_REJECTED, exc.message, status_code=502,
                details={"session_id": exc.session_id} if exc.session_id else None,
            )
        if isinstance(exc, ValueError):
            return make_error_response(ErrorCode.VALIDATION_ERROR, str(exc))
        logger.error("Unhandled engine error: %s", exc)
        return make_error_response(ErrorCode.INTERNAL_ERROR, str(exc), status_code=500)

    def game_state() -> Optional[GameStateResponse]:
        session = manager.current_session()
        if session is None:
            return None
        return GameStateResponse.from_session(
            session,
            message=manager.current_status_message(),
            busy=manager.busy,
        )

    async def broadcast(message: dict):
        """Send a message to every connected client, dropping dead sockets."""
        dead_connections = []
        for ws in ws_connections:
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                dead_connections.append(ws)
        for ws in dead_connections:
            ws_connections.remove(ws)

    async def broadcast_state():
        state = game_state()
        if state is not None:
            await broadcast({"type": "state_update", "payload": state.model_dump(mode="json")})

    def on_reconciled(session):
        # Sync listeners are synchronous; push from a task
        if ws_connections:
            asyncio.get_running_loop().create_task(broadcast_state())

    manager.sync.add_listener(on_reconciled)

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=GameStateResponse,
        responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Create a new game",
    )
    async def create_session(request: CreateSessionRequest) -> Union[GameStateResponse, JSONResponse]:
        """
        Create a game and display it.

        `mode=remote` opens a seat on the ledger and waits for an opponent;
        `ai` and `hotseat` games start immediately with X to move.
        """
        try:
            await manager.create_session(request.mode, request.difficulty, request.stake)
        except (TicTacError, ValueError) as e:
            return error_for(e)
        return game_state()

    @app.post(
        "/api/v1/sessions/{session_id}/join",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Join an open remote game",
    )
    async def join_session(session_id: str) -> Union[GameStateResponse, JSONResponse]:
        try:
            await manager.join_session(session_id)
        except (TicTacError, ValueError) as e:
            return error_for(e)
        return game_state()

    @app.post(
        "/api/v1/sessions/{session_id}/open",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Display an existing game",
    )
    async def open_session(session_id: str) -> Union[GameStateResponse, JSONResponse]:
        try:
            await manager.open_session(session_id)
        except (TicTacError, ValueError) as e:
            return error_for(e)
        return game_state()

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/game",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Get the displayed game",
    )
    async def get_game() -> Union[GameStateResponse, JSONResponse]:
        state = game_state()
        if state is None:
            return make_error_response(ErrorCode.SESSION_NOT_FOUND, "No game is open", status_code=404)
        return state

    @app.post(
        "/api/v1/game/moves",
        response_model=MoveResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Move failed validation"},
            409: {"model": ErrorResponse, "description": "A move is already outstanding"},
            502: {"model": ErrorResponse, "description": "Ledger rejected the move"},
        },
        tags=["Game"],
        summary="Claim a cell",
    )
    async def submit_move(request: MoveRequest) -> Union[MoveResponse, JSONResponse]:
        try:
            turn: TurnResult = await manager.submit_move(request.position)
        except TicTacError as e:
            return error_for(e)

        # Remote boards change through reconciliation only; wait for it
        await manager.sync.wait_idle()
        await broadcast_state()

        return MoveResponse(
            success=turn.success,
            moves=turn.moves,
            agent_move=turn.agent_move,
            transaction=turn.transaction,
            game_state=game_state(),
        )

    @app.get(
        "/api/v1/game/moves/{position}/allowed",
        response_model=MoveAllowedResponse,
        tags=["Game"],
        summary="Whether a cell may be claimed now",
    )
    async def move_allowed(position: int) -> MoveAllowedResponse:
        return MoveAllowedResponse(position=position, allowed=manager.is_move_allowed(position))

    # =========================================================================
    # Lobby, Preferences, Achievements
    # =========================================================================

    @app.get(
        "/api/v1/lobby",
        response_model=LobbyResponse,
        tags=["Lobby"],
        summary="List open games and my games",
    )
    async def get_lobby(
        refresh: bool = Query(False, description="Fetch from the ledger instead of the cache"),
    ) -> LobbyResponse:
        lobby = manager.lobby
        if refresh or lobby.cycle == 0:
            lobby = await manager.refresh_lobby()
        return LobbyResponse(
            open_sessions=[LobbyEntry.from_snapshot(s) for s in lobby.joinable],
            my_sessions=[LobbyEntry.from_snapshot(s) for s in lobby.my_sessions],
            refreshed_at=lobby.refreshed_at,
        )

    @app.get(
        "/api/v1/preferences",
        response_model=PreferencesResponse,
        tags=["Preferences"],
        summary="Get preferences",
    )
    async def get_preferences() -> PreferencesResponse:
        return PreferencesResponse(preferences=manager.get_preferences())

    @app.put(
        "/api/v1/preferences",
        response_model=PreferencesResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Preferences"],
        summary="Update preferences",
    )
    async def update_preferences(update: PreferencesUpdate) -> Union[PreferencesResponse, JSONResponse]:
        changes = update.model_dump(exclude_none=True)
        try:
            prefs = manager.update_preferences(**changes)
        except ValueError as e:
            return error_for(e)
        return PreferencesResponse(preferences=prefs)

    @app.get(
        "/api/v1/achievements",
        response_model=AchievementsResponse,
        tags=["Achievements"],
        summary="List achievements, unlocking any newly earned",
    )
    async def get_achievements() -> AchievementsResponse:
        newly = await manager.refresh_achievements()
        return AchievementsResponse(
            account=manager.account,
            achievements=manager.list_achievements(),
            newly_unlocked=newly,
        )

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/game/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: Displayed game changed
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.append(websocket)

        try:
            # Send initial state
            state = game_state()
            if state is not None:
                await websocket.send_json({
                    "type": "state_update",
                    "payload": state.model_dump(mode="json"),
                })

            # Listen for messages
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            logger.debug("WebSocket client disconnected")
        finally:
            if websocket in ws_connections:
                ws_connections.remove(websocket)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="tictac-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "TicTac Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app
