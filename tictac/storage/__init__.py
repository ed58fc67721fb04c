"""
Storage - Local persistence for games, achievements and preferences.

The ONLY persistence in the system. Remote games are never stored here;
the ledger owns them.
"""

from .backend import KeyValueStore, MemoryStore, FileStore
from .records import (
    SessionRecord,
    Achievement,
    AchievementsRecord,
    PreferencesRecord,
    decode_record,
    load_record,
    save_record,
)
from .local_store import LocalSessionStore, CURRENT_GAME_KEY
from .achievements import AchievementStore, ACHIEVEMENT_CATALOG
from .preferences import PreferencesStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "SessionRecord",
    "Achievement",
    "AchievementsRecord",
    "PreferencesRecord",
    "decode_record",
    "load_record",
    "save_record",
    "LocalSessionStore",
    "CURRENT_GAME_KEY",
    "AchievementStore",
    "ACHIEVEMENT_CATALOG",
    "PreferencesStore",
]
