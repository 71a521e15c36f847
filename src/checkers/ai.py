"""Capture-first checkers opponent.

No tree search: the first matching rule wins, in generation order.
"""

from __future__ import annotations

import logging
from typing import Optional

from .board import (
    JUMP_DIRS,
    CheckersBoard,
    CheckersMove,
    Position,
    Side,
    Square,
    jumped_position,
)


logger = logging.getLogger(__name__)


def find_best_jump(board: CheckersBoard, side: Side = Side.BLACK) -> Optional[CheckersMove]:
    """A jump that takes a king if one exists, else the first jump."""
    jumps = board.jumps(side)
    for jump in jumps:
        if board.piece_at(jumped_position(*jump)).is_king:
            return jump
    return jumps[0] if jumps else None


def is_safe_move(board: CheckersBoard, from_pos: Position, to_pos: Position) -> bool:
    """Return True if no opposing piece could hop over the moved piece.

    Every opposing piece is tried in all four jump directions, men included,
    so the test is stricter than the real jump rules.
    """
    side = board.piece_at(from_pos).side
    if side is None:
        return False
    scratch = board.copy()
    scratch.move_piece(from_pos, to_pos)
    for (row, col), _ in scratch.pieces(side.opposite):
        for dr, dc in JUMP_DIRS:
            landing = (row + dr, col + dc)
            if not (0 <= landing[0] < 8 and 0 <= landing[1] < 8):
                continue
            if (
                jumped_position((row, col), landing) == to_pos
                and scratch.piece_at(landing) is Square.EMPTY
            ):
                return False
    return True


def find_safe_move(board: CheckersBoard, side: Side = Side.BLACK) -> Optional[CheckersMove]:
    """A safe step, preferring king moves and steps onto the crowning row."""
    safe = [m for m in board.steps(side) if is_safe_move(board, *m)]
    for from_pos, to_pos in safe:
        if board.piece_at(from_pos).is_king or to_pos[0] == side.crown_row:
            return from_pos, to_pos
    return safe[0] if safe else None


def find_any_move(board: CheckersBoard, side: Side = Side.BLACK) -> Optional[CheckersMove]:
    steps = board.steps(side)
    return steps[0] if steps else None


def choose_move(board: CheckersBoard, side: Side = Side.BLACK) -> Optional[CheckersMove]:
    """Medium tier: jump, else safe step, else any step. None means no move."""
    for rule in (find_best_jump, find_safe_move, find_any_move):
        move = rule(board, side)
        if move is not None:
            logger.debug("checkers ai move", extra={"rule": rule.__name__, "move": move})
            return move
    return None
