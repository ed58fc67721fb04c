"""
Achievement Store - Unlocked achievements for the signed-in account.

One record holds the achievements of a single account. Reading it for a
different account yields nothing, and unlocking for a different account
starts a fresh record.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Callable

from .backend import KeyValueStore
from .records import Achievement, AchievementsRecord, load_record, save_record

logger = logging.getLogger(__name__)


ACHIEVEMENTS_KEY = "tictac.achievements"


@dataclass(frozen=True)
class AchievementRule:
    id: str
    name: str
    icon: str
    requirement: Callable[[int, int], bool]  # (wins, games) -> unlocked


ACHIEVEMENT_CATALOG: tuple[AchievementRule, ...] = (
    AchievementRule("first_win", "First Blood", "🥉", lambda wins, games: wins >= 1),
    AchievementRule("five_wins", "5 Wins", "🥈", lambda wins, games: wins >= 5),
    AchievementRule("ten_wins", "10 Wins", "🥇", lambda wins, games: wins >= 10),
    AchievementRule("twenty_wins", "Veteran", "👑", lambda wins, games: wins >= 20),
    AchievementRule("hundred_games", "Century Player", "💯", lambda wins, games: games >= 100),
    AchievementRule("perfect_week", "Hot Streak", "🔥", lambda wins, games: wins >= 5 and games >= 5),
)


class AchievementStore:
    """
    Usage:
        store = AchievementStore(MemoryStore())
        new_ids = store.check_and_unlock("0xabc", wins=5, games=7)
    """

    def __init__(self, backend: KeyValueStore, key: str = ACHIEVEMENTS_KEY):
        self.backend = backend
        self.key = key

    def list(self, account: str) -> list[Achievement]:
        record = self._load(account)
        return list(record.achievements) if record else []

    def has(self, account: str, achievement_id: str) -> bool:
        return any(a.id == achievement_id for a in self.list(account))

    def unlock(self, account: str, achievement_id: str, name: str, icon: str = "") -> bool:
        """Unlock one achievement. Returns False if it was already unlocked."""
        record = self._load(account) or AchievementsRecord(account=account)
        if any(a.id == achievement_id for a in record.achievements):
            return False

        record = record.model_copy(update={
            "achievements": record.achievements + [
                Achievement(id=achievement_id, name=name, icon=icon)
            ],
        })
        save_record(self.backend, self.key, record)
        logger.info("Unlocked achievement %s for %s", achievement_id, account)
        return True

    def check_and_unlock(self, account: str, wins: int, games: int) -> list[str]:
        """Unlock every catalog entry the counts satisfy; return the new ids."""
        unlocked = []
        for rule in ACHIEVEMENT_CATALOG:
            if rule.requirement(wins, games) and self.unlock(account, rule.id, rule.name, rule.icon):
                unlocked.append(rule.id)
        return unlocked

    def _load(self, account: str) -> AchievementsRecord | None:
        record = load_record(self.backend, self.key, AchievementsRecord)
        if record is None or record.account != account:
            return None
        return record
