"""
Tests for the sync controller.

Tests:
- Ledger events reconcile only the displayed session
- Out-of-order fetch responses are dropped
- The cache is always one complete snapshot
- Lobby notifications are debounced into one bounded refresh
"""

import asyncio

import pytest

from ..engine_core.board import Mark
from ..engine_core.state import GameStatus
from ..ledger import InMemoryLedger, LedgerSnapshot
from ..sync import RefreshPlan, SyncController
from .conftest import ALICE, BOB


class ScriptedLedger(InMemoryLedger):
    """Ledger whose state fetches block until the test resolves them."""

    def __init__(self):
        super().__init__()
        self.pending: list[asyncio.Future] = []

    async def get_session_state(self, session_id):
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        result = await future
        if isinstance(result, Exception):
            raise result
        return result


def snapshot(cells, turn, status=1, winner=0, identity_o=BOB) -> LedgerSnapshot:
    return LedgerSnapshot.from_raw("1", {
        "identity_x": ALICE,
        "identity_o": identity_o,
        "stake": "0",
        "board": cells,
        "current_turn": turn,
        "winner": winner,
        "status": status,
        "created_at": 1.0,
    })


class TestReconciliation:
    """Tests for displayed-session reconciliation."""

    @pytest.mark.asyncio
    async def test_move_event_reconciles_displayed_session(self, ledger):
        sid = await ledger.create_session(ALICE)
        await ledger.join_session(sid, BOB)

        sync = SyncController(ledger, ALICE, debounce=10)
        sync.attach()
        await sync.watch(sid)
        assert sync.session.status == GameStatus.IN_PROGRESS

        await ledger.submit_move(sid, 4, ALICE)
        # Nothing changes until the reconciliation fetch completes
        assert sync.session.board[4] == Mark.EMPTY

        await sync.wait_idle()
        assert sync.session.board[4] == Mark.X
        assert sync.session.current_turn == Mark.O
        assert sync.session == sync.snapshot.to_session()
        sync.close()

    @pytest.mark.asyncio
    async def test_events_for_other_sessions_ignored(self, ledger):
        mine = await ledger.create_session(ALICE)
        await ledger.join_session(mine, BOB)
        other = await ledger.create_session(BOB)
        await ledger.join_session(other, "0xC0FFEE")

        sync = SyncController(ledger, ALICE, debounce=10)
        sync.attach()
        await sync.watch(mine)
        fetches = ledger.state_fetches

        await ledger.submit_move(other, 0, BOB)
        await sync.wait_idle()

        assert ledger.state_fetches == fetches
        sync.close()

    @pytest.mark.asyncio
    async def test_join_starts_creators_game(self, ledger):
        sid = await ledger.create_session(ALICE)
        sync = SyncController(ledger, ALICE, debounce=10)
        sync.attach()
        await sync.watch(sid)
        assert sync.session.status == GameStatus.WAITING

        await ledger.join_session(sid, BOB)
        await sync.wait_idle()

        assert sync.session.status == GameStatus.IN_PROGRESS
        assert sync.session.player_o == BOB
        sync.close()

    @pytest.mark.asyncio
    async def test_stale_response_dropped(self):
        ledger = ScriptedLedger()
        sync = SyncController(ledger, ALICE)

        first = sync.watch("1")
        await asyncio.sleep(0)
        second = sync.schedule_reconcile()
        await asyncio.sleep(0)
        assert len(ledger.pending) == 2

        older = snapshot([1, 0, 0, 0, 0, 0, 0, 0, 0], turn=2)
        newer = snapshot([1, 2, 0, 0, 0, 0, 0, 0, 0], turn=1)

        # The later request answers first
        ledger.pending[1].set_result(newer)
        assert await second is True
        ledger.pending[0].set_result(older)
        assert await first is False

        assert sync.snapshot is newer
        assert sync.session == newer.to_session()

    @pytest.mark.asyncio
    async def test_cache_is_always_one_whole_snapshot(self):
        ledger = ScriptedLedger()
        sync = SyncController(ledger, ALICE)
        seen = []
        sync.add_listener(seen.append)

        candidates = [
            snapshot([0] * 9, turn=1, status=0, identity_o=None),
            snapshot([1, 0, 0, 0, 0, 0, 0, 0, 0], turn=2),
            snapshot([1, 2, 0, 0, 0, 0, 0, 0, 0], turn=1),
            snapshot([1, 2, 1, 0, 0, 0, 0, 0, 0], turn=2),
        ]
        tasks = [sync.watch("1")]
        await asyncio.sleep(0)
        for _ in candidates[1:]:
            tasks.append(sync.schedule_reconcile())
            await asyncio.sleep(0)

        # Answer in a scrambled order
        for index in (2, 0, 3, 1):
            ledger.pending[index].set_result(candidates[index])
            await asyncio.sleep(0)
        await asyncio.gather(*tasks)

        whole = [c.to_session() for c in candidates]
        assert sync.session in whole
        assert all(s in whole for s in seen)
        assert sync.session == candidates[3].to_session()

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_cache(self):
        ledger = ScriptedLedger()
        sync = SyncController(ledger, ALICE)

        first = sync.watch("1")
        await asyncio.sleep(0)
        good = snapshot([1, 0, 0, 0, 0, 0, 0, 0, 0], turn=2)
        ledger.pending[0].set_result(good)
        assert await first is True

        second = sync.schedule_reconcile()
        await asyncio.sleep(0)
        ledger.pending[1].set_result(ConnectionError("node unreachable"))
        assert await second is False

        assert sync.snapshot is good

    @pytest.mark.asyncio
    async def test_status_regression_ignored(self):
        ledger = ScriptedLedger()
        sync = SyncController(ledger, ALICE)

        first = sync.watch("1")
        await asyncio.sleep(0)
        finished = snapshot([1, 1, 1, 2, 2, 0, 0, 0, 0], turn=1, status=2, winner=1)
        ledger.pending[0].set_result(finished)
        await first

        second = sync.schedule_reconcile()
        await asyncio.sleep(0)
        ledger.pending[1].set_result(snapshot([1, 1, 0, 2, 2, 0, 0, 0, 0], turn=1))
        assert await second is False
        assert sync.session.status == GameStatus.FINISHED

    @pytest.mark.asyncio
    async def test_switching_sessions_drops_old_responses(self):
        ledger = ScriptedLedger()
        sync = SyncController(ledger, ALICE)

        first = sync.watch("1")
        await asyncio.sleep(0)
        sync.watch("2")
        await asyncio.sleep(0)

        ledger.pending[0].set_result(snapshot([0] * 9, turn=1, status=0, identity_o=None))
        assert await first is False
        assert sync.session is None
        sync.close()

    @pytest.mark.asyncio
    async def test_close_disposes_subscription(self, ledger):
        sync = SyncController(ledger, ALICE)
        sync.attach()
        sync.attach()
        assert ledger.subscriber_count == 1

        sync.close()
        assert ledger.subscriber_count == 0


class TestLobbyRefresh:
    """Tests for debounced, bounded lobby refreshes."""

    @pytest.mark.asyncio
    async def test_burst_of_creations_triggers_one_bounded_refresh(self, ledger):
        sync = SyncController(ledger, None, debounce=0.05, fetch_cap=20, fetch_delay=0)
        sync.attach()

        for i in range(30):
            await ledger.create_session(f"0xP{i}")

        await asyncio.sleep(0.2)
        await sync.wait_for_refresh()

        assert sync.refresh_count == 1
        assert sync.last_refresh_fetches == 20
        assert [s.session_id for s in sync.lobby.open_sessions] == [str(i) for i in range(1, 21)]
        sync.close()

    @pytest.mark.asyncio
    async def test_cap_shared_with_my_sessions(self, ledger):
        for _ in range(2):
            sid = await ledger.create_session(ALICE)
            await ledger.join_session(sid, BOB)
        for i in range(3):
            await ledger.create_session(f"0xC{i}")

        sync = SyncController(ledger, ALICE, fetch_cap=4, fetch_delay=0)
        lobby = await sync.refresh_lobby()

        assert sync.last_refresh_fetches == 4
        assert len(lobby.open_sessions) == 3
        assert len(lobby.my_sessions) == 1
        assert all(s.status == GameStatus.WAITING for s in lobby.joinable)

    @pytest.mark.asyncio
    async def test_my_open_session_fetched_once(self, ledger):
        sid = await ledger.create_session(ALICE)

        sync = SyncController(ledger, ALICE, fetch_delay=0)
        lobby = await sync.refresh_lobby()

        assert sync.last_refresh_fetches == 1
        assert [s.session_id for s in lobby.open_sessions] == [sid]
        assert [s.session_id for s in lobby.my_sessions] == [sid]

    @pytest.mark.asyncio
    async def test_refresh_requested_during_refresh_runs_once_after(self, ledger):
        for i in range(3):
            await ledger.create_session(f"0xP{i}")
        sync = SyncController(ledger, None, debounce=0, fetch_delay=0.05)

        sync.on_list_notification()
        await asyncio.sleep(0.02)
        assert sync.refresh_count == 1

        sync.on_list_notification()
        await asyncio.sleep(0.01)
        await sync.wait_for_refresh()

        assert sync.refresh_count == 2
        assert len(sync.lobby.open_sessions) == 3

    @pytest.mark.asyncio
    async def test_failed_detail_is_skipped(self):
        class FlakyLedger(InMemoryLedger):
            async def get_session_state(self, session_id):
                if session_id == "2":
                    raise ConnectionError("timeout")
                return await super().get_session_state(session_id)

        flaky = FlakyLedger()
        for i in range(3):
            await flaky.create_session(f"0xP{i}")

        sync = SyncController(flaky, None, fetch_delay=0)
        lobby = await sync.refresh_lobby()

        assert [s.session_id for s in lobby.open_sessions] == ["1", "3"]
        assert sync.last_refresh_fetches == 3

    @pytest.mark.asyncio
    async def test_failed_listing_keeps_lobby(self):
        class DownLedger(InMemoryLedger):
            async def list_open_sessions(self):
                raise ConnectionError("node unreachable")

        sync = SyncController(DownLedger(), None)
        before = sync.lobby
        assert await sync.refresh_lobby() is before

    def test_plan_dedupes_and_bounds(self):
        plan = RefreshPlan.bounded(["1", "2"], ["2", "3", "4"], cap=3)
        assert plan.open_ids == ["1", "2"]
        assert plan.my_ids == ["3"]
        assert plan.total == 3

    def test_plan_with_zero_cap(self):
        assert RefreshPlan.bounded(["1"], ["2"], cap=0).total == 0
