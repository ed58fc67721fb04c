"""
Sync Controller - Keeps the displayed remote game consistent with the ledger.

The controller is the bridge between ledger notifications (asynchronous,
possibly out of order) and the local read-only cache. It:

1. Subscribes to ledger events with an explicit disposer
2. Reconciles the displayed session when an event names it
3. Debounces bursts of lobby events into one bounded refresh
4. Notifies listeners after each applied reconciliation

Key principle: the LEDGER owns remote state. The cache is only ever
replaced wholesale by one fetch response, never patched field by field,
and a response is applied only if it is newer than the last one applied.
"""

from __future__ import annotations
import asyncio
import logging
import time
from typing import Callable

from ..engine_core.reducer import GameStateMachine
from ..engine_core.state import GameSession
from ..errors import StatusRegression, SyncFailure
from ..ledger.client import LedgerClient, LedgerSnapshot, Subscription
from ..ledger.events import ALL_KINDS, LIST_KINDS, SESSION_KINDS, EventKind, LedgerEvent
from .lobby import LobbyView, RefreshPlan

logger = logging.getLogger(__name__)


SessionListener = Callable[[GameSession], None]
LobbyListener = Callable[[LobbyView], None]


class SyncController:
    """
    Usage:
        sync = SyncController(ledger, identity="0xabc")
        sync.attach()
        await sync.watch("42")

        # ledger events now keep sync.session fresh
        ...
        sync.close()
    """

    def __init__(
        self,
        ledger: LedgerClient,
        identity: str | None = None,
        debounce: float = 1.0,
        fetch_cap: int = 20,
        fetch_delay: float = 0.05,
        machine: GameStateMachine | None = None,
    ):
        if fetch_cap < 0:
            raise ValueError("fetch_cap must not be negative")
        self.ledger = ledger
        self.identity = identity
        self.debounce = debounce
        self.fetch_cap = fetch_cap
        self.fetch_delay = fetch_delay
        self.machine = machine or GameStateMachine()

        # Displayed session cache (replaced wholesale)
        self.watched_id: str | None = None
        self.snapshot: LedgerSnapshot | None = None
        self.session: GameSession | None = None

        # Lobby cache
        self.lobby = LobbyView()

        # Ordering of reconciliation fetches
        self._fetch_seq = 0
        self._applied_seq = 0

        # Pending work
        self._tasks: set[asyncio.Task] = set()
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._refresh_task: asyncio.Task | None = None
        self._refresh_pending = False

        self._subscription: Subscription | None = None
        self._session_listeners: list[SessionListener] = []
        self._lobby_listeners: list[LobbyListener] = []

        # Observability
        self.refresh_count = 0
        self.fetch_count = 0
        self.last_refresh_fetches = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def attach(self) -> Subscription:
        """Subscribe to every event kind. Idempotent."""
        if self._subscription is None or self._subscription.closed:
            self._subscription = self.ledger.subscribe(ALL_KINDS, self.handle_event)
        return self._subscription

    def close(self):
        """Dispose the subscription and cancel all pending work."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def add_listener(self, listener: SessionListener):
        self._session_listeners.append(listener)

    def add_lobby_listener(self, listener: LobbyListener):
        self._lobby_listeners.append(listener)

    # =========================================================================
    # Displayed session
    # =========================================================================

    def watch(self, session_id: str) -> asyncio.Task:
        """
        Display a remote session and schedule its first reconciliation.

        Switching sessions drops the previous cache.
        """
        session_id = str(session_id)
        if session_id != self.watched_id:
            self.watched_id = session_id
            self.snapshot = None
            self.session = None
        return self.schedule_reconcile()

    def unwatch(self):
        self.watched_id = None
        self.snapshot = None
        self.session = None

    def handle_event(self, event: LedgerEvent):
        """Subscription callback: route by event kind."""
        if event.kind in SESSION_KINDS:
            self.on_notification(event)
        elif event.kind in LIST_KINDS:
            # A join also starts the displayed game for its creator
            if event.kind == EventKind.SESSION_JOINED:
                self.on_notification(event)
            self.on_list_notification(event)

    def on_notification(self, event: LedgerEvent):
        """Reconcile if the event concerns the displayed session."""
        if self.watched_id is None or event.session_id != self.watched_id:
            return
        logger.debug("Event %s for displayed session %s", event.kind.value, event.session_id)
        self.schedule_reconcile()

    def schedule_reconcile(self) -> asyncio.Task:
        """Start a stamped reconciliation fetch for the displayed session."""
        if self.watched_id is None:
            raise ValueError("No session is being watched")
        self._fetch_seq += 1
        task = asyncio.get_running_loop().create_task(
            self._reconcile(self.watched_id, self._fetch_seq)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def reconcile(self) -> bool:
        """Reconcile now and wait for the result."""
        return await self.schedule_reconcile()

    async def wait_idle(self):
        """Wait until no reconciliation fetch is outstanding."""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    async def _reconcile(self, session_id: str, seq: int) -> bool:
        try:
            snapshot = await self.ledger.get_session_state(session_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("%s; keeping cached state", SyncFailure(session_id, e))
            return False

        if session_id != self.watched_id:
            logger.debug("Dropping fetch for %s: no longer displayed", session_id)
            return False

        if seq <= self._applied_seq:
            logger.debug("Dropping stale fetch #%d for %s (applied #%d)", seq, session_id, self._applied_seq)
            return False

        try:
            session = self.machine.mirror(self.session, snapshot)
        except StatusRegression as e:
            logger.warning("Ignoring snapshot for %s: %s", session_id, e)
            return False

        # Both caches come from the same response and are assigned together
        self._applied_seq = seq
        self.snapshot = snapshot
        self.session = session

        for listener in list(self._session_listeners):
            listener(session)
        return True

    # =========================================================================
    # Lobby
    # =========================================================================

    def on_list_notification(self, event: LedgerEvent | None = None):
        """Restart the debounce window; one refresh runs when it closes."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = asyncio.get_running_loop().call_later(
            self.debounce, self._start_refresh
        )

    def _start_refresh(self):
        self._debounce_handle = None
        if self._refresh_task is not None and not self._refresh_task.done():
            # Run once more after the current cycle finishes
            self._refresh_pending = True
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self._run_refresh())

    async def _run_refresh(self):
        while True:
            self._refresh_pending = False
            await self.refresh_lobby()
            if not self._refresh_pending:
                break

    async def wait_for_refresh(self):
        """Wait for the in-flight lobby refresh, if any."""
        if self._refresh_task is not None:
            await self._refresh_task

    async def refresh_lobby(self) -> LobbyView:
        """
        Run one refresh cycle.

        Fetches details for at most fetch_cap sessions, pausing fetch_delay
        between requests. Sessions beyond the cap wait for a later cycle.
        """
        self.refresh_count += 1
        cycle = self.refresh_count

        try:
            open_ids = [str(s) for s in await self.ledger.list_open_sessions()]
            my_ids: list[str] = []
            if self.identity:
                my_ids = [str(s) for s in await self.ledger.list_player_sessions(self.identity)]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Lobby refresh #%d failed to list sessions: %s", cycle, e)
            return self.lobby

        plan = RefreshPlan.bounded(open_ids, my_ids, self.fetch_cap)
        available = len(open_ids) + len(set(my_ids) - set(open_ids))
        if plan.total < available:
            logger.info(
                "Lobby refresh #%d: showing %d of %d sessions",
                cycle, plan.total, available,
            )

        fetched = 0
        open_sessions: list[LedgerSnapshot] = []
        my_sessions: list[LedgerSnapshot] = []
        for bucket, ids in ((open_sessions, plan.open_ids), (my_sessions, plan.my_ids)):
            for session_id in ids:
                if fetched and self.fetch_delay:
                    await asyncio.sleep(self.fetch_delay)
                fetched += 1
                self.fetch_count += 1
                try:
                    bucket.append(await self.ledger.get_session_state(session_id))
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning("Lobby refresh #%d: skipping session %s: %s", cycle, session_id, e)

        # My sessions that are still open were fetched with the open list
        mine = set(my_ids)
        my_sessions = [s for s in open_sessions if s.session_id in mine] + my_sessions

        self.last_refresh_fetches = fetched
        self.lobby = LobbyView(
            open_sessions=tuple(open_sessions),
            my_sessions=tuple(my_sessions),
            refreshed_at=time.time(),
            cycle=cycle,
        )
        for listener in list(self._lobby_listeners):
            listener(self.lobby)
        return self.lobby
