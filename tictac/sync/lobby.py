"""
Lobby View - Read-only cache of session lists.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.state import GameStatus
from ..ledger.client import LedgerSnapshot


@dataclass(frozen=True)
class LobbyView:
    """
    Result of one lobby refresh.

    open_sessions: joinable sessions (status WAITING)
    my_sessions: sessions the local identity has played in
    Both come from the same refresh cycle.
    """
    open_sessions: tuple[LedgerSnapshot, ...] = ()
    my_sessions: tuple[LedgerSnapshot, ...] = ()
    refreshed_at: float = 0.0
    cycle: int = 0

    @property
    def joinable(self) -> list[LedgerSnapshot]:
        return [s for s in self.open_sessions if s.status == GameStatus.WAITING]

    def find(self, session_id: str) -> LedgerSnapshot | None:
        for snapshot in self.open_sessions + self.my_sessions:
            if snapshot.session_id == session_id:
                return snapshot
        return None


@dataclass
class RefreshPlan:
    """Which session details one refresh cycle will fetch, in order."""
    open_ids: list[str] = field(default_factory=list)
    my_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.open_ids) + len(self.my_ids)

    @classmethod
    def bounded(cls, open_ids: list[str], my_ids: list[str], cap: int) -> RefreshPlan:
        """Open sessions first, then the player's own, never more than cap."""
        take_open = list(open_ids[:cap])
        remaining = cap - len(take_open)
        seen = set(take_open)
        take_mine = [sid for sid in my_ids if sid not in seen][:max(remaining, 0)]
        return cls(open_ids=take_open, my_ids=take_mine)
