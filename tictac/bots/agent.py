"""
Adversarial Agent - The opponent in AI games.

The agent pairs a mark with a difficulty tier and delegates the choice
to the tier's policy. All tiers share one random source.
"""

from __future__ import annotations
import logging
import random
from typing import Sequence

from ..engine_core.board import Mark
from ..engine_core.state import AGENT_MARK, Difficulty
from .policy import BotDecision, BotPolicy, EasyPolicy, HardPolicy, MediumPolicy

logger = logging.getLogger(__name__)


POLICIES: dict[Difficulty, type[BotPolicy]] = {
    Difficulty.EASY: EasyPolicy,
    Difficulty.MEDIUM: MediumPolicy,
    Difficulty.HARD: HardPolicy,
}


def create_policy(difficulty: Difficulty | str, rng: random.Random | None = None) -> BotPolicy:
    """Build the policy for a difficulty tier."""
    return POLICIES[Difficulty(difficulty)](rng)


class AdversarialAgent:
    """
    Selects replies for the agent's mark.

    Usage:
        agent = AdversarialAgent(Difficulty.HARD, rng=random.Random(7))
        position = agent.select_move(board)
    """

    def __init__(
        self,
        difficulty: Difficulty | str = Difficulty.HARD,
        mark: Mark = AGENT_MARK,
        rng: random.Random | None = None,
    ):
        self.difficulty = Difficulty(difficulty)
        self.mark = mark
        self.policy = create_policy(self.difficulty, rng)

    def decide(self, board: Sequence[int]) -> BotDecision:
        decision = self.policy.select_move(board, self.mark)
        logger.debug(
            "Agent %s (%s) chose %d via %s",
            self.mark.symbol, self.difficulty.value, decision.position, decision.rule.value,
        )
        return decision

    def select_move(self, board: Sequence[int]) -> int:
        return self.decide(board).position


def select_move(
    board: Sequence[int],
    agent_mark: Mark,
    difficulty: Difficulty | str,
    rng: random.Random | None = None,
) -> int:
    """One-shot move selection."""
    return create_policy(difficulty, rng).select_move(board, agent_mark).position
