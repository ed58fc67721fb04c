"""
TicTac - Ledger-adjudicated and local tic-tac-toe engine

Three ways to play one game:
- Remote: two identities, outcome decided by an external ledger
- AI: one identity against the adversarial agent
- Hotseat: two players sharing one device

The engine provides:
- Move validation shared by local and remote play
- A status state machine that mirrors the ledger when it is authoritative
- A tiered heuristic agent with injectable randomness
- A sync controller that reconciles the displayed game with ledger events
"""

__version__ = "0.1.0"
