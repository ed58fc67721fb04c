"""
Tests for local persistence.

Tests:
- Memory and file backends
- Current local game slot round trip
- Corrupt and future-version records are treated as absent
- Achievements and preferences are scoped to one account
"""

import json

import pytest

from ..engine_core.board import Mark, Winner
from ..engine_core.state import AGENT_LABEL, Difficulty, GameStatus, SessionMode
from ..errors import StorageCorruption
from ..storage import (
    CURRENT_GAME_KEY,
    AchievementStore,
    FileStore,
    LocalSessionStore,
    MemoryStore,
    PreferencesRecord,
    PreferencesStore,
    SessionRecord,
    decode_record,
)
from ..storage.achievements import ACHIEVEMENTS_KEY
from ..storage.preferences import PREFERENCES_KEY
from .conftest import ALICE, BOB, board


class TestBackends:
    """Tests for the key-value backends."""

    def test_memory_store(self):
        store = MemoryStore()
        assert store.get("missing") is None

        store.set("k", "v")
        assert store.get("k") == "v"
        assert store.keys() == ["k"]

        store.delete("k")
        store.delete("k")
        assert store.get("k") is None

    def test_file_store_round_trip(self, tmp_path):
        store = FileStore(tmp_path / "data")
        store.set(CURRENT_GAME_KEY, '{"a": 1}')

        assert store.get(CURRENT_GAME_KEY) == '{"a": 1}'
        assert store.keys() == [CURRENT_GAME_KEY]
        assert not list((tmp_path / "data").glob("*.tmp"))

        # A second instance sees the same data
        assert FileStore(tmp_path / "data").get(CURRENT_GAME_KEY) == '{"a": 1}'

    def test_file_store_unsafe_keys_stay_inside_directory(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("../escape", "one")
        store.set("..-escape", "two")

        assert store.get("../escape") == "one"
        assert store.get("..-escape") == "two"
        assert all(p.parent == tmp_path for p in tmp_path.iterdir())

    def test_file_store_delete_and_clear(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("a", "1")
        store.set("b", "2")

        store.delete("a")
        store.delete("a")
        assert store.get("a") is None

        store.clear()
        assert store.keys() == []


class TestLocalSessionStore:
    """Tests for the current local game slot."""

    def test_create_ai_session(self, store):
        local = LocalSessionStore(store)
        session = local.create(SessionMode.AI, player_label=ALICE)

        assert session.status == GameStatus.IN_PROGRESS
        assert session.current_turn == Mark.X
        assert session.player_x == ALICE
        assert session.player_o == AGENT_LABEL
        assert session.difficulty == Difficulty.HARD
        assert local.load_current() == session

    def test_create_hotseat_session(self, store):
        session = LocalSessionStore(store).create("hotseat", difficulty="easy")

        assert (session.player_x, session.player_o) == ("Player 1", "Player 2")
        assert session.difficulty is None

    def test_remote_sessions_refused(self, store):
        with pytest.raises(ValueError):
            LocalSessionStore(store).create(SessionMode.REMOTE)

    def test_replace_board_and_turn(self, store):
        local = LocalSessionStore(store)
        session = local.create(SessionMode.HOTSEAT)

        updated = local.replace_board_and_turn(session, board("XXX.OO..."), Mark.X, GameStatus.FINISHED, Winner.X)

        stored = local.load(session.session_id)
        assert stored == updated
        assert stored.status == GameStatus.FINISHED
        assert stored.winner == Winner.X
        assert stored.created_at == session.created_at

    def test_new_game_replaces_old(self, store):
        local = LocalSessionStore(store)
        first = local.create(SessionMode.AI)
        second = local.create(SessionMode.HOTSEAT)

        assert local.load(first.session_id) is None
        assert local.load_current() == second

    def test_clear(self, store):
        local = LocalSessionStore(store)
        local.create(SessionMode.AI)
        local.clear()
        assert local.load_current() is None

    def test_corrupt_json_treated_as_absent(self, store):
        store.set(CURRENT_GAME_KEY, "{not json")
        assert LocalSessionStore(store).load_current() is None

    def test_undecodable_file_treated_as_absent(self, tmp_path):
        store = FileStore(tmp_path)
        store._get_path(CURRENT_GAME_KEY).write_bytes(b"\xff\xfe{bad")

        local = LocalSessionStore(store)
        assert local.load_current() is None
        # A fresh game replaces the unreadable file
        session = local.create(SessionMode.HOTSEAT)
        assert local.load_current() == session

    def test_unknown_schema_version_treated_as_absent(self, store):
        local = LocalSessionStore(store)
        session = local.create(SessionMode.AI)
        data = json.loads(store.get(CURRENT_GAME_KEY))
        data["schema_version"] = 2
        store.set(CURRENT_GAME_KEY, json.dumps(data))

        assert local.load(session.session_id) is None

    def test_inconsistent_record_treated_as_absent(self, store):
        local = LocalSessionStore(store)
        local.create(SessionMode.AI)
        data = json.loads(store.get(CURRENT_GAME_KEY))
        # A winner on an unfinished game cannot be rebuilt
        data["winner"] = int(Winner.X)
        store.set(CURRENT_GAME_KEY, json.dumps(data))

        assert local.load_current() is None


class TestDecodeRecord:
    def test_bad_cell_value(self):
        raw = json.dumps({
            "session_id": "ai-1", "mode": "ai", "board": [0, 0, 7, 0, 0, 0, 0, 0, 0],
            "current_turn": 1, "status": 1,
        })
        with pytest.raises(StorageCorruption) as exc_info:
            decode_record(raw, SessionRecord, CURRENT_GAME_KEY)
        assert exc_info.value.key == CURRENT_GAME_KEY

    def test_remote_mode_refused(self):
        raw = json.dumps({
            "session_id": "5", "mode": "remote", "board": [0] * 9,
            "current_turn": 1, "status": 1,
        })
        with pytest.raises(StorageCorruption):
            decode_record(raw, SessionRecord)

    def test_short_board(self):
        raw = json.dumps({
            "session_id": "ai-1", "mode": "ai", "board": [0] * 8,
            "current_turn": 1, "status": 1,
        })
        with pytest.raises(StorageCorruption):
            decode_record(raw, SessionRecord)


class TestAchievements:
    """Tests for achievement unlocking."""

    def test_unlocks_in_catalog_order(self, store):
        achievements = AchievementStore(store)

        unlocked = achievements.check_and_unlock(ALICE, wins=5, games=5)

        assert unlocked == ["first_win", "five_wins", "perfect_week"]
        assert [a.id for a in achievements.list(ALICE)] == unlocked
        assert achievements.has(ALICE, "five_wins")

    def test_unlock_is_idempotent(self, store):
        achievements = AchievementStore(store)
        achievements.check_and_unlock(ALICE, wins=1, games=3)

        assert achievements.check_and_unlock(ALICE, wins=1, games=3) == []
        assert not achievements.unlock(ALICE, "first_win", "First Blood")
        assert len(achievements.list(ALICE)) == 1

    def test_games_played(self, store):
        assert AchievementStore(store).check_and_unlock(ALICE, wins=0, games=100) == ["hundred_games"]

    def test_scoped_to_account(self, store):
        achievements = AchievementStore(store)
        achievements.check_and_unlock(ALICE, wins=1, games=1)

        assert achievements.list(BOB) == []
        assert achievements.check_and_unlock(BOB, wins=1, games=1) == ["first_win"]
        # BOB's record replaced ALICE's
        assert achievements.list(ALICE) == []

    def test_corrupt_record_starts_fresh(self, store):
        store.set(ACHIEVEMENTS_KEY, "[]")
        achievements = AchievementStore(store)

        assert achievements.list(ALICE) == []
        assert achievements.check_and_unlock(ALICE, wins=1, games=1) == ["first_win"]


class TestPreferences:
    """Tests for preferences."""

    def test_defaults(self, store):
        prefs = PreferencesStore(store).get(ALICE)

        assert prefs == PreferencesRecord(account=ALICE)
        assert prefs.theme == "dark"
        assert prefs.ai_difficulty == Difficulty.HARD
        assert prefs.default_stake == "0.0001"

    def test_update_merges(self, store):
        preferences = PreferencesStore(store)
        preferences.update(ALICE, theme="light")
        prefs = preferences.update(ALICE, sound_enabled=False)

        assert prefs.theme == "light"
        assert not prefs.sound_enabled
        assert preferences.get(ALICE) == prefs

    def test_other_account_gets_defaults(self, store):
        preferences = PreferencesStore(store)
        preferences.update(ALICE, theme="light")
        assert preferences.get(BOB).theme == "dark"

    def test_invalid_update_rejected(self, store):
        preferences = PreferencesStore(store)
        with pytest.raises(ValueError):
            preferences.update(ALICE, theme="neon")
        assert preferences.get(ALICE).theme == "dark"

    def test_corrupt_record_gives_defaults(self, store):
        store.set(PREFERENCES_KEY, '{"schema_version": 1, "theme": 42}')
        assert PreferencesStore(store).get("") == PreferencesRecord()

    def test_undecodable_file_gives_defaults(self, tmp_path):
        store = FileStore(tmp_path)
        store._get_path(PREFERENCES_KEY).write_bytes(b"\x80\x81")
        assert PreferencesStore(store).get(ALICE) == PreferencesRecord(account=ALICE)
