"""
Bot Policy - Interface for agent move selection.

A BotPolicy takes a board and the agent's mark and returns a decision.
Decisions include:
- Which cell to play
- Which rule produced it (for logs and tests)
- A short explanation for the UI

Randomness always comes from an injected random.Random so that tests
can force determinism without touching the decision cascade.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import random
from typing import Sequence

from ..engine_core.board import (
    CENTER,
    CORNERS,
    EDGES,
    Mark,
    check_winner,
    empty_positions,
    place,
)


class DecisionRule(str, Enum):
    """Which step of a policy chose the move."""
    RANDOM = "random"
    WIN = "win"
    BLOCK = "block"
    CENTER = "center"
    CORNER = "corner"
    EDGE = "edge"
    FIRST_EMPTY = "first_empty"


@dataclass(frozen=True)
class BotDecision:
    """A move chosen by a policy."""
    position: int
    rule: DecisionRule
    explanation: str = ""


class BotPolicy(ABC):
    """
    Abstract base class for agent policies.

    Policies never mutate the board they are given.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    @abstractmethod
    def select_move(self, board: Sequence[int], mark: Mark) -> BotDecision:
        """
        Select a cell for mark.

        Raises ValueError if the board has no empty cell.
        """

    def get_name(self) -> str:
        return self.__class__.__name__

    def _empty_or_raise(self, board: Sequence[int]) -> list[int]:
        empty = empty_positions(board)
        if not empty:
            raise ValueError("No empty cells available")
        return empty


class EasyPolicy(BotPolicy):
    """Uniformly random empty cell."""

    def select_move(self, board: Sequence[int], mark: Mark) -> BotDecision:
        empty = self._empty_or_raise(board)
        return BotDecision(
            position=self.rng.choice(empty),
            rule=DecisionRule.RANDOM,
            explanation="Selected randomly",
        )


def find_winning_move(board: Sequence[int], mark: Mark) -> int | None:
    """Lowest empty cell that completes a line for mark, if any."""
    for position in empty_positions(board):
        if check_winner(place(tuple(board), position, mark)) == mark:
            return position
    return None


class HardPolicy(BotPolicy):
    """
    One-ply greedy cascade. First matching rule wins:

    1. Complete own line
    2. Block opponent's line
    3. Center
    4. Random empty corner
    5. Random empty edge
    6. Lowest empty cell

    Not a full search; a perfect opponent can beat it in some lines.
    """

    def select_move(self, board: Sequence[int], mark: Mark) -> BotDecision:
        empty = self._empty_or_raise(board)

        win = find_winning_move(board, mark)
        if win is not None:
            return BotDecision(win, DecisionRule.WIN, "Completing a line")

        block = find_winning_move(board, mark.opponent)
        if block is not None:
            return BotDecision(block, DecisionRule.BLOCK, "Blocking opponent's line")

        if board[CENTER] == Mark.EMPTY:
            return BotDecision(CENTER, DecisionRule.CENTER, "Taking the center")

        corners = [p for p in CORNERS if board[p] == Mark.EMPTY]
        if corners:
            return BotDecision(self.rng.choice(corners), DecisionRule.CORNER, "Taking a corner")

        edges = [p for p in EDGES if board[p] == Mark.EMPTY]
        if edges:
            return BotDecision(self.rng.choice(edges), DecisionRule.EDGE, "Taking an edge")

        return BotDecision(empty[0], DecisionRule.FIRST_EMPTY, "Taking the first free cell")


class MediumPolicy(BotPolicy):
    """Hard cascade half the time, a random cell otherwise."""

    def __init__(self, rng: random.Random | None = None):
        super().__init__(rng)
        self._hard = HardPolicy(self.rng)
        self._easy = EasyPolicy(self.rng)

    def select_move(self, board: Sequence[int], mark: Mark) -> BotDecision:
        self._empty_or_raise(board)
        if self.rng.random() < 0.5:
            return self._hard.select_move(board, mark)
        return self._easy.select_move(board, mark)
