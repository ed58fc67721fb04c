"""
Bots module - Agent implementations for AI games.

Provides:
- BotPolicy: Interface for move selection
- EasyPolicy / MediumPolicy / HardPolicy: Difficulty tiers
- AdversarialAgent: Mark + tier, used by the local game loop
"""

from .policy import (
    BotPolicy,
    BotDecision,
    DecisionRule,
    EasyPolicy,
    MediumPolicy,
    HardPolicy,
    find_winning_move,
)
from .agent import AdversarialAgent, create_policy, select_move

__all__ = [
    "BotPolicy",
    "BotDecision",
    "DecisionRule",
    "EasyPolicy",
    "MediumPolicy",
    "HardPolicy",
    "find_winning_move",
    "AdversarialAgent",
    "create_policy",
    "select_move",
]
