from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


Square = Tuple[int, int]

FILES = "abcdefgh"


class IllegalMoveError(ValueError):
    """Raised when a move is rejected by the rules engine."""


@dataclass(frozen=True)
class Move:
    """Engine-internal move representation.

    Attributes:
        from_sq (Square): Origin ``(row, col)``; row 0 is black's home rank.
        to_sq (Square): Destination ``(row, col)``.
        is_castling (bool): True for the compound king+rook move.
        score (int): Scratch value used by move ordering; ignored by equality.
    """

    from_sq: Square
    to_sq: Square
    is_castling: bool = False
    score: int = field(default=0, compare=False)

    def to_uci(self) -> str:
        """Serialize the move into long algebraic form.

        Returns:
            str: Move encoded like ``"e2e4"``.
        """
        return square_to_str(self.from_sq) + square_to_str(self.to_sq)

    def with_score(self, score: int) -> "Move":
        return Move(self.from_sq, self.to_sq, self.is_castling, score)


def parse_uci(uci: str) -> Move:
    """Parse a long algebraic move string.

    Args:
        uci (str): Move such as ``"e2e4"``. A trailing ``"q"`` promotion
            suffix is accepted since pawns always promote to a queen.

    Returns:
        Move: Parsed move. ``is_castling`` is left False; callers resolve it
            against the board.

    Raises:
        ValueError: If the string has an invalid length, squares, or an
            under-promotion suffix.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"invalid UCI move length: {uci!r}")
    if len(uci) == 5 and uci[4].lower() != "q":
        raise ValueError(f"unsupported promotion piece: {uci[4]!r}")
    return Move(str_to_square(uci[0:2]), str_to_square(uci[2:4]))


def str_to_square(s: str) -> Square:
    """Convert algebraic notation into a ``(row, col)`` pair.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] not in FILES or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    return 8 - int(s[1]), FILES.index(s[0])


def square_to_str(sq: Square) -> str:
    """Convert a ``(row, col)`` pair into algebraic notation.

    Raises:
        ValueError: If ``sq`` lies outside the board.
    """
    row, col = sq
    if not (0 <= row < 8 and 0 <= col < 8):
        raise ValueError(f"invalid square: {sq!r}")
    return FILES[col] + str(8 - row)
