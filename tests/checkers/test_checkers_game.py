from __future__ import annotations

import time

import pytest

from src.checkers.board import CheckersBoard, Side, Square
from src.checkers.game import CheckersGame
from src.engine.move import IllegalMoveError
from src.search.difficulty import CheckersDifficulty


EMPTY_ROW = "........"


def layout(**rows: str) -> list[str]:
    return [rows.get(f"r{i}", EMPTY_ROW) for i in range(8)]


def test_apply_move_validates_turn_and_rules() -> None:
    game = CheckersGame.new()
    with pytest.raises(IllegalMoveError, match="not your piece"):
        game.apply_move((2, 1), (3, 2))
    with pytest.raises(IllegalMoveError, match="illegal move"):
        game.apply_move((5, 0), (3, 2))
    game.apply_move((5, 0), (4, 1))
    assert game.board.side_to_move is Side.BLACK
    assert game.move_history == [((5, 0), (4, 1))]


def test_capturing_the_last_piece_wins() -> None:
    board = CheckersBoard.from_rows(layout(r3="..b.....", r4=".r......"))
    game = CheckersGame(board=board)
    game.apply_move((4, 1), (2, 3))
    assert game.winner is Side.RED
    assert game.is_over
    with pytest.raises(IllegalMoveError, match="game is over"):
        game.apply_move((2, 3), (1, 2))


def test_side_without_moves_loses() -> None:
    # Black's only man sits on the far row and cannot step
    board = CheckersBoard.from_rows(layout(r5="..r.....", r7="b......."))
    game = CheckersGame(board=board)
    game.apply_move((5, 2), (4, 1))
    assert game.winner is Side.RED


def test_tap_selects_and_moves() -> None:
    game = CheckersGame.new()
    game.handle_tap(2, 1)
    assert game.selected is None
    game.handle_tap(5, 2)
    assert game.selected == (5, 2)
    game.handle_tap(5, 2)
    assert game.selected is None
    game.handle_tap(5, 2)
    game.handle_tap(4, 3)
    assert game.board.piece_at((4, 3)) is Square.RED
    assert game.selected is None


def test_sync_ai_move() -> None:
    game = CheckersGame.new(CheckersDifficulty.MEDIUM)
    assert game.ai_move() is None
    game.apply_move((5, 0), (4, 1))
    move = game.ai_move()
    assert move is not None
    assert game.board.side_to_move is Side.RED


def test_ai_without_moves_concedes() -> None:
    board = CheckersBoard.from_rows(layout(r5="......r.", r7="b......."), red_to_move=False)
    game = CheckersGame(board=board, difficulty=CheckersDifficulty.MEDIUM)
    assert game.ai_move() is None
    assert game.winner is Side.RED


def test_tap_schedules_ai_reply() -> None:
    game = CheckersGame.new(CheckersDifficulty.MEDIUM)
    game.handle_tap(5, 0)
    game.handle_tap(4, 1)
    assert game.ai_thinking
    assert game.wait_for_ai(timeout=5.0)
    assert len(game.move_history) == 2
    assert game.board.side_to_move is Side.RED


def test_reset_cancels_pending_ai() -> None:
    game = CheckersGame.new(CheckersDifficulty.MEDIUM)
    game.apply_move((5, 0), (4, 1))
    assert game.request_ai_move()
    game.reset()
    time.sleep(CheckersDifficulty.MEDIUM.thinking_time + 0.3)
    assert game.board.to_rows() == CheckersBoard.startpos().to_rows()
    assert game.move_history == []
    assert not game.ai_thinking
