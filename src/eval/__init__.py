"""Evaluation heuristics for the chess search.

Pure and side-effect free. Scores are from black's point of
view: positive favours black, negative favours white, since the AI plays
black and maximizes.

Two material scales live here. ``PIECE_VALUES`` feeds the static board
evaluation used by minimax; ``CAPTURE_VALUES`` feeds the one-ply move
heuristic of the medium tier.
"""

from __future__ import annotations

from typing import Dict, Final

from src.engine.board import Board, Color, Piece, PieceType
from src.engine.move import Move


PIECE_VALUES: Final[Dict[PieceType, int]] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
    PieceType.KING: 100,
}

CAPTURE_VALUES: Final[Dict[PieceType, int]] = {
    PieceType.PAWN: 10,
    PieceType.KNIGHT: 30,
    PieceType.BISHOP: 30,
    PieceType.ROOK: 50,
    PieceType.QUEEN: 90,
    PieceType.KING: 900,
}

# Board evaluation weights
CHECK_BONUS: Final = 50
CHECKMATE_BONUS: Final = 10_000
PAWN_CENTER_FILE_BONUS: Final = 2
KNIGHT_CENTER_BONUS: Final = 5
BISHOP_OFF_EDGE_BONUS: Final = 3
ROOK_SECOND_RANK_BONUS: Final = 10
QUEEN_CENTER_BONUS: Final = 2
KING_CASTLED_BONUS: Final = 10

# Move heuristic weights
GIVES_CHECK_BONUS: Final = 15
SELF_CHECK_PENALTY: Final = 20
CENTER_SQUARE_BONUS: Final = 5
PAWN_ADVANCE_WEIGHT: Final = 2
CASTLING_BONUS: Final = 20


def _in_center(row: int, col: int) -> bool:
    return 2 <= row <= 5 and 2 <= col <= 5


def position_value(piece: Piece, row: int, col: int) -> int:
    """Return the positional bonus of ``piece`` on ``(row, col)``, signed for black."""
    score = 0
    black = piece.color is Color.BLACK
    ptype = piece.type
    if ptype is PieceType.PAWN:
        score += row if black else 7 - row
        if 2 <= col <= 5:
            score += PAWN_CENTER_FILE_BONUS
    elif ptype is PieceType.KNIGHT:
        if _in_center(row, col):
            score += KNIGHT_CENTER_BONUS
    elif ptype is PieceType.BISHOP:
        if 0 < col < 7:
            score += BISHOP_OFF_EDGE_BONUS
    elif ptype is PieceType.ROOK:
        # The opponent's second rank
        if row == piece.color.opposite.pawn_row:
            score += ROOK_SECOND_RANK_BONUS
    elif ptype is PieceType.QUEEN:
        if _in_center(row, col):
            score += QUEEN_CENTER_BONUS
    elif ptype is PieceType.KING:
        near_home = row <= 1 if black else row >= 6
        if near_home and (col <= 2 or col >= 6):
            score += KING_CASTLED_BONUS
    return score if black else -score


def evaluate_board(board: Board) -> int:
    """Static evaluation of ``board``.

    Material plus positional bonuses, then +/-50 for a side in check and
    +/-10000 for a side checkmated.
    """
    score = 0
    for (row, col), piece in board.pieces():
        value = PIECE_VALUES[piece.type]
        score += value if piece.color is Color.BLACK else -value
        score += position_value(piece, row, col)

    if board.in_check(Color.WHITE):
        score += CHECK_BONUS
        if board.in_checkmate(Color.WHITE):
            score += CHECKMATE_BONUS
    if board.in_check(Color.BLACK):
        score -= CHECK_BONUS
        if board.in_checkmate(Color.BLACK):
            score -= CHECKMATE_BONUS
    return score


def evaluate_move(board: Board, move: Move) -> int:
    """Score a single move for the medium tier from the mover's point of view.

    Victim value, check given or suffered after the bare relocation, centre
    destination, pawn advancement, and castling.
    """
    mover = board.piece_at(move.from_sq)
    if mover is None:
        return 0
    score = 0
    victim = board.piece_at(move.to_sq)
    if victim is not None:
        score += CAPTURE_VALUES[victim.type]

    scratch = board.copy()
    scratch.set_piece(move.to_sq, mover)
    scratch.set_piece(move.from_sq, None)
    if scratch.in_check(mover.color.opposite):
        score += GIVES_CHECK_BONUS
    if scratch.in_check(mover.color):
        score -= SELF_CHECK_PENALTY

    to_row, to_col = move.to_sq
    if 3 <= to_row <= 4 and 3 <= to_col <= 4:
        score += CENTER_SQUARE_BONUS
    if mover.type is PieceType.PAWN:
        advancement = (to_row - move.from_sq[0]) * mover.color.forward
        score += advancement * PAWN_ADVANCE_WEIGHT
    if move.is_castling:
        score += CASTLING_BONUS
    return score
