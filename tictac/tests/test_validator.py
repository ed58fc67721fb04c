"""
Tests for move validation and identity helpers.
"""

import pytest

from ..engine_core.board import Mark, empty_board
from ..engine_core.state import GameStatus
from ..engine_core.validator import (
    MoveValidation,
    RejectionReason,
    format_identity,
    is_turn_owner,
    normalize_identity,
    opponent_identity,
    player_symbol,
    validate_move,
)
from .conftest import ALICE, BOB, board


class TestValidateMove:
    """Tests for validate_move."""

    def test_accepts_legal_move(self):
        result = validate_move(empty_board(), 4, Mark.X, ALICE, ALICE, BOB, GameStatus.IN_PROGRESS)
        assert result.valid
        assert result.reason is None
        assert result.message == ""

    @pytest.mark.parametrize("status", [GameStatus.WAITING, GameStatus.FINISHED, GameStatus.CANCELLED])
    def test_rejects_when_not_in_progress(self, status):
        result = validate_move(empty_board(), 4, Mark.X, ALICE, ALICE, BOB, status)
        assert result.reason == RejectionReason.NOT_IN_PROGRESS
        assert result.message == "Game is not in progress"

    @pytest.mark.parametrize("position", [-1, 9, 100, True, "4", 4.0, None])
    def test_rejects_out_of_bounds(self, position):
        result = validate_move(empty_board(), position, Mark.X, ALICE, ALICE, BOB, GameStatus.IN_PROGRESS)
        assert result.reason == RejectionReason.OUT_OF_BOUNDS

    def test_rejects_occupied_cell(self):
        result = validate_move(board("....X...."), 4, Mark.O, BOB, ALICE, BOB, GameStatus.IN_PROGRESS)
        assert result.reason == RejectionReason.OCCUPIED
        assert result.message == "Position already occupied"

    def test_rejects_wrong_turn(self):
        result = validate_move(empty_board(), 4, Mark.X, BOB, ALICE, BOB, GameStatus.IN_PROGRESS)
        assert result.reason == RejectionReason.WRONG_TURN
        assert result.message == "Not your turn"

    def test_status_checked_before_position(self):
        result = validate_move(empty_board(), 42, Mark.X, BOB, ALICE, BOB, GameStatus.FINISHED)
        assert result.reason == RejectionReason.NOT_IN_PROGRESS

    def test_occupied_checked_before_turn(self):
        result = validate_move(board("X........"), 0, Mark.O, ALICE, ALICE, BOB, GameStatus.IN_PROGRESS)
        assert result.reason == RejectionReason.OCCUPIED

    def test_acceptance_matches_every_condition(self):
        """Accepted exactly when in progress, in range, empty and owner."""
        cells = board("X.O.X....")
        for status in GameStatus:
            for turn in (Mark.X, Mark.O):
                for actor in (ALICE, BOB, None):
                    for position in range(-1, 10):
                        expected = (
                            status == GameStatus.IN_PROGRESS
                            and 0 <= position <= 8
                            and cells[position] == Mark.EMPTY
                            and is_turn_owner(turn, actor, ALICE, BOB)
                        )
                        result = validate_move(cells, position, turn, actor, ALICE, BOB, status)
                        assert result.valid == expected


class TestTurnOwnership:
    """Tests for is_turn_owner."""

    def test_case_insensitive(self):
        assert is_turn_owner(Mark.X, ALICE.lower(), ALICE.upper(), BOB)
        assert is_turn_owner(Mark.O, f"  {BOB.upper()} ", ALICE, BOB)

    def test_false_without_identities(self):
        assert not is_turn_owner(Mark.X, None, ALICE, BOB)
        assert not is_turn_owner(Mark.X, "", ALICE, BOB)
        assert not is_turn_owner(Mark.X, ALICE, ALICE, None)
        assert not is_turn_owner(Mark.O, BOB, None, BOB)

    def test_false_on_empty_turn(self):
        assert not is_turn_owner(Mark.EMPTY, ALICE, ALICE, BOB)

    def test_normalize_identity(self):
        assert normalize_identity("  0xAbC ") == "0xabc"
        assert normalize_identity("   ") is None
        assert normalize_identity(None) is None


class TestIdentityHelpers:
    """Tests for display helpers."""

    def test_player_symbol(self):
        assert player_symbol(ALICE.lower(), ALICE) == "X"
        assert player_symbol(BOB, ALICE) == "O"
        assert player_symbol(None, ALICE) == ""

    def test_opponent_identity(self):
        assert opponent_identity(ALICE, ALICE, BOB) == BOB
        assert opponent_identity(BOB, ALICE, BOB) == ALICE
        assert opponent_identity(ALICE, ALICE, None) == ""

    def test_format_identity(self):
        assert format_identity(ALICE) == "0xA11C...0001"
        assert format_identity("Player 1") == "Player 1"
        assert format_identity(None) == ""

    def test_rejected_validation_carries_message(self):
        result = MoveValidation.rejected(RejectionReason.OUT_OF_BOUNDS)
        assert not result.valid
        assert result.message == "Position out of bounds"
