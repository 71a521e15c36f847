from __future__ import annotations

import pytest

from src.engine.board import Board, Color, PieceType, STARTPOS_FEN
from src.engine.move import parse_uci, square_to_str, str_to_square


def test_startpos_roundtrip() -> None:
    b = Board.startpos()
    assert b.to_fen() == STARTPOS_FEN
    assert b.side_to_move is Color.WHITE
    assert b.piece_at((0, 4)).type is PieceType.KING
    assert b.piece_at((7, 3)).type is PieceType.QUEEN
    assert len(list(b.pieces(Color.WHITE))) == 16
    assert len(list(b.pieces(Color.BLACK))) == 16


def test_four_field_fen_is_accepted() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/4K3 b - -")
    assert b.side_to_move is Color.BLACK
    assert b.to_fen() == "4k3/8/8/8/8/8/8/4K3 b - - 0 1"


def test_castling_rights_seed_moved_flags() -> None:
    b = Board.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w Kq - 0 1")
    assert not b.piece_at((7, 7)).has_moved
    assert b.piece_at((7, 0)).has_moved
    assert not b.piece_at((0, 0)).has_moved
    assert b.piece_at((0, 7)).has_moved
    assert b.castling_rights() == "Kq"


def test_pawn_off_start_row_has_moved() -> None:
    b = Board.from_fen("4k3/8/8/8/4P3/8/3P4/4K3 w - - 0 1")
    assert b.piece_at((4, 4)).has_moved
    assert not b.piece_at((6, 3)).has_moved


@pytest.mark.parametrize(
    "fen",
    [
        "",
        "8/8/8/8/8/8/8 w - - 0 1",
        "rnbqkbnr/pppppppp/9/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNX w KQkq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR x KQkq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQxq - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w",
    ],
)
def test_invalid_fen_raises(fen: str) -> None:
    with pytest.raises(ValueError):
        Board.from_fen(fen)


def test_square_notation() -> None:
    assert str_to_square("e2") == (6, 4)
    assert str_to_square("a8") == (0, 0)
    assert square_to_str((7, 7)) == "h1"
    with pytest.raises(ValueError):
        str_to_square("i1")
    with pytest.raises(ValueError):
        square_to_str((8, 0))


def test_parse_uci() -> None:
    m = parse_uci("e2e4")
    assert m.from_sq == (6, 4) and m.to_sq == (4, 4)
    assert m.to_uci() == "e2e4"
    assert parse_uci("b7b8q").to_sq == (0, 1)
    with pytest.raises(ValueError):
        parse_uci("b7b8n")
    with pytest.raises(ValueError):
        parse_uci("e2")


def test_move_score_is_ignored_by_equality() -> None:
    m = parse_uci("g1f3")
    assert m.with_score(42) == m
    assert m.with_score(42).score == 42
