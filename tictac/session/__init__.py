"""
Session Module - What the presentation layer drives.

A session is one game, local or remote:
- Local (AI / hotseat): decided by the engine, persisted after every move
- Remote: decided by the ledger, mirrored through the sync controller

The manager owns the busy flag: at most one move is outstanding at a time.
"""

from .manager import SessionManager
from .game_loop import LocalGameLoop, LoopState, TurnResult

__all__ = [
    "SessionManager",
    "LocalGameLoop",
    "LoopState",
    "TurnResult",
]
