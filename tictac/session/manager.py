"""
Session Manager - The one object a presentation layer talks to.

LIFECYCLE:
1. User creates, joins or opens a session
   - Local (AI / hotseat): stored in the single local slot, decided here
   - Remote: created or joined on the ledger, then watched
2. During the game:
   - Presentation asks whether a cell may be claimed (is_move_allowed)
   - Presentation submits the move (submit_move)
   - Local: engine applies it, agent replies after a short delay
   - Remote: ledger confirms it, the sync controller updates the board
3. Game ends -> status message says who won; achievements may unlock

AUTHORITY RULES:
- Remote boards change ONLY through sync reconciliation
- While a submission or agent reply is outstanding, the session is busy
- A rejected or failed move never changes the displayed board
"""

from __future__ import annotations
import logging
import random
from typing import Any

from ..bots import AdversarialAgent
from ..config import Settings
from ..engine_core.board import Board
from ..engine_core.messages import session_message
from ..engine_core.reducer import GameStateMachine
from ..engine_core.state import (
    HUMAN_MARK,
    Difficulty,
    GameSession,
    SessionMode,
    mode_for_session_id,
)
from ..engine_core.validator import MoveValidation, RejectionReason, validate_move
from ..errors import (
    ExternalSubmissionError,
    MoveValidationError,
    SessionBusyError,
    SessionNotFound,
)
from ..ledger import InMemoryLedger, LedgerClient
from ..storage import (
    AchievementStore,
    KeyValueStore,
    LocalSessionStore,
    MemoryStore,
    PreferencesRecord,
    PreferencesStore,
)
from ..storage.records import Achievement
from ..sync import LobbyView, SyncController
from .game_loop import LocalGameLoop, LoopState, TurnResult

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Usage:
        manager = SessionManager(ledger, identity="0xabc")
        await manager.create_session(SessionMode.AI, Difficulty.HARD)
        turn = await manager.submit_move(4)
        print(manager.current_status_message())
    """

    def __init__(
        self,
        ledger: LedgerClient | None = None,
        store: KeyValueStore | None = None,
        settings: Settings | None = None,
        identity: str | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or Settings()
        self.identity = identity or self.settings.identity
        self.ledger = ledger or InMemoryLedger()
        self.store = store or MemoryStore()
        self.rng = rng
        self.machine = GameStateMachine()

        self.local_store = LocalSessionStore(self.store)
        self.achievements = AchievementStore(self.store)
        self.preferences = PreferencesStore(self.store)

        self.sync = SyncController(
            self.ledger,
            identity=self.identity,
            debounce=self.settings.list_debounce,
            fetch_cap=self.settings.list_fetch_cap,
            fetch_delay=self.settings.fetch_delay,
            machine=self.machine,
        )
        self.loop = LocalGameLoop(
            self.local_store,
            ai_delay=self.settings.ai_delay,
            machine=self.machine,
        )

        self._local: GameSession | None = None
        self._busy = False

    @property
    def account(self) -> str:
        """Key for per-account records; anonymous play uses the empty account."""
        return self.identity or ""

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def lobby(self) -> LobbyView:
        return self.sync.lobby

    # =========================================================================
    # Opening sessions
    # =========================================================================

    async def create_session(
        self,
        mode: SessionMode | str,
        difficulty: Difficulty | str | None = None,
        stake: str = "0",
    ) -> GameSession:
        """Start a new game and display it."""
        mode = SessionMode(mode)

        if mode.is_local:
            if mode == SessionMode.AI and difficulty is None:
                difficulty = self.preferences.get(self.account).ai_difficulty
            session = self.local_store.create(mode, difficulty, player_label=self.identity)
            self._show_local(session)
            return session

        self.sync.attach()
        session_id = await self.ledger.create_session(self.identity or "", stake)
        logger.info("Created remote session %s", session_id)
        return await self._show_remote(session_id)

    async def join_session(self, session_id: str) -> GameSession:
        """Take the open seat of a remote game and display it."""
        session_id = str(session_id)
        if mode_for_session_id(session_id).is_local:
            raise ValueError("Local sessions cannot be joined")
        self.sync.attach()
        await self.ledger.join_session(session_id, self.identity or "")
        logger.info("Joined remote session %s", session_id)
        return await self._show_remote(session_id)

    async def open_session(self, session_id: str) -> GameSession:
        """Display an existing session; local ids are read from storage."""
        session_id = str(session_id)
        if mode_for_session_id(session_id).is_local:
            session = self.local_store.load(session_id)
            if session is None:
                raise SessionNotFound(f"Game {session_id} does not exist")
            self._show_local(session)
            if not session.is_over:
                await self._run_local(self.loop.resume(session))
            return self._local

        self.sync.attach()
        return await self._show_remote(session_id)

    async def resume_local(self) -> GameSession | None:
        """Reopen whatever local game is in the store, if any."""
        session = self.local_store.load_current()
        if session is None:
            return None
        return await self.open_session(session.session_id)

    def _show_local(self, session: GameSession):
        self.sync.unwatch()
        self._local = session
        if session.mode == SessionMode.AI:
            self.loop.agent = AdversarialAgent(
                session.difficulty or Difficulty.HARD, rng=self.rng,
            )
        else:
            self.loop.agent = None

    async def _show_remote(self, session_id: str) -> GameSession:
        self._local = None
        await self.sync.watch(session_id)
        if self.sync.session is None:
            self.sync.unwatch()
            raise SessionNotFound(f"Game {session_id} does not exist")
        return self.sync.session

    # =========================================================================
    # Queries
    # =========================================================================

    def current_session(self) -> GameSession | None:
        if self._local is not None:
            return self._local
        return self.sync.session

    def current_board(self) -> Board | None:
        session = self.current_session()
        return session.board if session else None

    def current_status_message(self) -> str:
        return session_message(
            self.current_session(), self.identity, thinking=self.loop.thinking,
        )

    def is_move_allowed(self, position: int) -> bool:
        if self._busy:
            return False
        return self._validate(position).valid

    def _validate(self, position: int) -> MoveValidation:
        session = self.current_session()
        if session is None:
            return MoveValidation.rejected(RejectionReason.NOT_IN_PROGRESS)

        if session.is_local:
            if session.mode == SessionMode.AI and session.current_turn != HUMAN_MARK:
                actor = None
            else:
                actor = session.identity_for(session.current_turn)
        else:
            actor = self.identity

        return validate_move(
            session.board,
            position,
            session.current_turn,
            actor,
            session.player_x,
            session.player_o,
            session.status,
        )

    # =========================================================================
    # Moves
    # =========================================================================

    async def submit_move(self, position: int) -> TurnResult:
        """
        Claim a cell in the displayed session.

        Raises:
            SessionBusyError: a previous move is still outstanding
            SessionNotFound: nothing is displayed
            MoveValidationError: the move fails local validation
            ExternalSubmissionError: the ledger rejected or failed the move
        """
        if self._busy:
            raise SessionBusyError("A move is already in progress")

        session = self.current_session()
        if session is None:
            raise SessionNotFound("No game is open")

        validation = self._validate(position)
        if not validation.valid:
            raise MoveValidationError(validation.reason, validation.message)

        if session.is_local:
            return await self._run_local(self.loop.play(session, position))
        return await self._submit_remote(session, position)

    async def _run_local(self, turn_coro) -> TurnResult:
        self._busy = True
        try:
            turn = await turn_coro
        finally:
            self._busy = False
        if turn.session is not None:
            self._local = turn.session
        return turn

    async def _submit_remote(self, session: GameSession, position: int) -> TurnResult:
        self._busy = True
        try:
            tx = await self.ledger.submit_move(session.session_id, position, self.identity)
        except ExternalSubmissionError as e:
            logger.warning("Move %d in %s rejected by ledger: %s", position, session.session_id, e.message)
            raise
        except Exception as e:
            logger.exception("Move %d in %s failed", position, session.session_id)
            raise ExternalSubmissionError(str(e), session.session_id) from e
        finally:
            self._busy = False

        logger.info("Move %d in %s confirmed (%s)", position, session.session_id, tx)
        # The board is updated by reconciliation, not here
        displayed = self.sync.session or session
        return TurnResult(
            success=True,
            loop_state=LoopState.GAME_OVER if displayed.is_over else LoopState.WAITING_HUMAN,
            session=displayed,
            moves=[f"{session.current_turn.symbol} submitted {position}"],
            transaction=tx,
            message=self.current_status_message(),
        )

    # =========================================================================
    # Lobby, achievements, preferences
    # =========================================================================

    async def refresh_lobby(self) -> LobbyView:
        return await self.sync.refresh_lobby()

    async def refresh_achievements(self) -> list[str]:
        """Unlock achievements earned on the ledger; returns the new ids."""
        if not self.identity:
            return []
        wins = await self.ledger.player_wins(self.identity)
        games = len(await self.ledger.list_player_sessions(self.identity))
        unlocked = self.achievements.check_and_unlock(self.identity, wins, games)
        if unlocked:
            logger.info("New achievements for %s: %s", self.identity, ", ".join(unlocked))
        return unlocked

    def list_achievements(self) -> list[Achievement]:
        return self.achievements.list(self.account)

    def get_preferences(self) -> PreferencesRecord:
        return self.preferences.get(self.account)

    def update_preferences(self, **changes: Any) -> PreferencesRecord:
        return self.preferences.update(self.account, **changes)

    def close(self):
        """Dispose subscriptions and pending sync work."""
        self.sync.close()
