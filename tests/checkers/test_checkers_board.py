from __future__ import annotations

import pytest

from src.checkers.board import CheckersBoard, Side, Square
from src.engine.move import IllegalMoveError


EMPTY_ROW = "........"


def layout(**rows: str) -> list[str]:
    """Eight rows, blank unless given as ``r<index>=...``."""
    return [rows.get(f"r{i}", EMPTY_ROW) for i in range(8)]


def test_startpos() -> None:
    b = CheckersBoard.startpos()
    assert b.red_pieces_count == 12
    assert b.black_pieces_count == 12
    assert b.side_to_move is Side.RED
    assert b.to_rows()[0] == ".b.b.b.b"
    assert b.to_rows()[7] == "r.r.r.r."
    assert all((r + c) % 2 == 1 for (r, c), _ in b.pieces())


def test_opening_moves() -> None:
    b = CheckersBoard.startpos()
    assert len(b.valid_moves()) == 7
    assert len(b.valid_moves(Side.BLACK)) == 7
    assert b.jumps(Side.RED) == []


def test_men_step_forward_only() -> None:
    b = CheckersBoard.from_rows(layout(r4="...r....", r2=".b......"))
    assert b.is_valid_move((4, 3), (3, 2))
    assert b.is_valid_move((4, 3), (3, 4))
    assert not b.is_valid_move((4, 3), (5, 2))
    assert b.is_valid_move((2, 1), (3, 0))
    assert not b.is_valid_move((2, 1), (1, 0))
    # Not diagonal, too far, or occupied
    assert not b.is_valid_move((4, 3), (3, 3))
    assert not b.is_valid_move((4, 3), (1, 0))


def test_kings_move_both_ways() -> None:
    b = CheckersBoard.from_rows(layout(r3="..B.....", r5="...R...."))
    assert b.is_valid_move((3, 2), (2, 1))
    assert b.is_valid_move((3, 2), (4, 1))
    assert b.is_valid_move((5, 3), (6, 4))
    assert Square.BLACK_KING.is_king and Square.BLACK_KING.is_black
    assert Square.RED.is_red and not Square.RED.is_king
    assert Square.EMPTY.side is None


def test_jump_requires_opponent_and_empty_landing() -> None:
    b = CheckersBoard.from_rows(layout(r3="..b.....", r4=".r......"))
    assert b.is_valid_move((4, 1), (2, 3))
    assert b.jumps(Side.RED) == [((4, 1), (2, 3))]
    own = CheckersBoard.from_rows(layout(r3="..r.....", r4=".r......"))
    assert not own.is_valid_move((4, 1), (2, 3))
    blocked = CheckersBoard.from_rows(layout(r2="...b....", r3="..b.....", r4=".r......"))
    assert not blocked.is_valid_move((4, 1), (2, 3))


def test_jump_removes_piece_and_decrements_count() -> None:
    b = CheckersBoard.from_rows(layout(r0=".b......", r3="..b.....", r4=".r......"))
    assert b.black_pieces_count == 2
    captured = b.move_piece((4, 1), (2, 3))
    assert captured is Square.BLACK
    assert b.piece_at((3, 2)) is Square.EMPTY
    assert b.piece_at((2, 3)) is Square.RED
    assert b.black_pieces_count == 1
    assert b.side_to_move is Side.BLACK


def test_black_jump_decrements_red_count() -> None:
    b = CheckersBoard.from_rows(
        layout(r2=".b......", r3="..r.....", r7="r......."), red_to_move=False
    )
    assert ((2, 1), (4, 3)) in b.jumps(Side.BLACK)
    assert b.red_pieces_count == 2
    captured = b.move_piece((2, 1), (4, 3))
    assert captured is Square.RED
    assert b.piece_at((3, 2)) is Square.EMPTY
    assert b.piece_at((4, 3)) is Square.BLACK
    assert b.red_pieces_count == 1
    assert b.black_pieces_count == 1


def test_reaching_far_row_crowns() -> None:
    b = CheckersBoard.from_rows(layout(r1="..r.....", r6="...b...."))
    b.move_piece((1, 2), (0, 1))
    assert b.piece_at((0, 1)) is Square.RED_KING
    b.move_piece((6, 3), (7, 4))
    assert b.piece_at((7, 4)) is Square.BLACK_KING


def test_winner_when_a_side_is_wiped_out() -> None:
    b = CheckersBoard.from_rows(layout(r3="..b.....", r4=".r......"))
    assert b.winner() is None
    b.move_piece((4, 1), (2, 3))
    assert b.winner() is Side.RED


def test_copy_is_independent() -> None:
    b = CheckersBoard.startpos()
    c = b.copy()
    c.move_piece((5, 0), (4, 1))
    assert b.piece_at((5, 0)) is Square.RED
    assert b.side_to_move is Side.RED


def test_bad_input() -> None:
    with pytest.raises(ValueError):
        CheckersBoard.from_rows(["........"] * 7)
    with pytest.raises(ValueError):
        CheckersBoard.from_rows(layout(r0="...x...."))
    with pytest.raises(IllegalMoveError):
        CheckersBoard.startpos().move_piece((4, 1), (3, 2))
    with pytest.raises(IndexError):
        CheckersBoard.startpos().piece_at((0, 8))
