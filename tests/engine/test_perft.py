from __future__ import annotations

import pytest

from src.engine.board import Board
from src.engine.perft import divide, perft


@pytest.mark.parametrize("depth,expected", [(0, 1), (1, 20), (2, 400), (3, 8902)])
def test_perft_startpos(depth: int, expected: int) -> None:
    b = Board.startpos()
    assert perft(b, depth) == expected
    assert b == Board.startpos()


@pytest.mark.parametrize("depth,expected", [(1, 26), (2, 568)])
def test_perft_castling_position(depth: int, expected: int) -> None:
    b = Board.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    assert perft(b, depth) == expected


def test_divide_sums_to_perft() -> None:
    b = Board.startpos()
    counts = divide(b, 2)
    assert len(counts) == 20
    assert all(n == 20 for n in counts.values())
    assert sum(counts.values()) == perft(b, 2)


def test_negative_depth_raises() -> None:
    with pytest.raises(ValueError):
        perft(Board.startpos(), -1)
    with pytest.raises(ValueError):
        divide(Board.startpos(), 0)
