"""
Board - The 3x3 grid and win detection.

Design principles:
- A board is an immutable tuple of 9 marks, row-major 0..8
- Integer mark values match the ledger's wire encoding
- Win detection is a deterministic first-match scan over fixed lines
"""

from __future__ import annotations
from enum import IntEnum
from typing import Iterable, Sequence


class Mark(IntEnum):
    """Contents of a single cell."""
    EMPTY = 0
    X = 1
    O = 2

    @property
    def opponent(self) -> Mark:
        """The other player's mark. EMPTY has no opponent."""
        if self == Mark.X:
            return Mark.O
        if self == Mark.O:
            return Mark.X
        raise ValueError("EMPTY has no opponent")

    @property
    def symbol(self) -> str:
        return {Mark.EMPTY: "", Mark.X: "X", Mark.O: "O"}[self]


class Winner(IntEnum):
    """Outcome marker. DRAW is set only on a finished game with no line."""
    NONE = 0
    X = 1
    O = 2
    DRAW = 3

    @classmethod
    def for_mark(cls, mark: Mark) -> Winner:
        return cls(int(mark))


Board = tuple  # tuple[Mark, ...] of length BOARD_SIZE

BOARD_SIZE = 9
CENTER = 4
CORNERS = (0, 2, 6, 8)
EDGES = (1, 3, 5, 7)

# Rows, then columns, then diagonals. Order matters for first-match scans.
WINNING_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def empty_board() -> Board:
    return (Mark.EMPTY,) * BOARD_SIZE


def make_board(cells: Iterable[int]) -> Board:
    """
    Build a board from any iterable of mark values.

    Raises ValueError unless there are exactly 9 valid marks.
    """
    marks = tuple(Mark(int(c)) for c in cells)
    if len(marks) != BOARD_SIZE:
        raise ValueError(f"Board must have {BOARD_SIZE} cells, got {len(marks)}")
    return marks


def place(board: Board, position: int, mark: Mark) -> Board:
    """Return a new board with mark written at position."""
    cells = list(board)
    cells[position] = mark
    return tuple(cells)


def empty_positions(board: Sequence[int]) -> list[int]:
    """Empty cell indices in ascending order."""
    return [i for i, cell in enumerate(board) if cell == Mark.EMPTY]


def check_winner(board: Sequence[int]) -> Mark | None:
    """
    Return the mark owning the first completed line, or None.

    Lines are scanned rows, columns, diagonals.
    """
    for a, b, c in WINNING_LINES:
        if board[a] != Mark.EMPTY and board[a] == board[b] == board[c]:
            return Mark(board[a])
    return None


def is_board_full(board: Sequence[int]) -> bool:
    return all(cell != Mark.EMPTY for cell in board)


def is_draw(board: Sequence[int]) -> bool:
    return is_board_full(board) and check_winner(board) is None


def outcome(board: Sequence[int]) -> Winner:
    """Winner for a board: the line owner, DRAW when full, else NONE."""
    mark = check_winner(board)
    if mark is not None:
        return Winner.for_mark(mark)
    if is_board_full(board):
        return Winner.DRAW
    return Winner.NONE


def render(board: Sequence[int]) -> str:
    """Plain-text grid, empty cells shown by their index."""
    rows = []
    for r in range(3):
        cells = [
            Mark(board[i]).symbol or str(i)
            for i in range(r * 3, r * 3 + 3)
        ]
        rows.append(" | ".join(cells))
    return "\n---------\n".join(rows)
