from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from src.engine.move import IllegalMoveError


Position = Tuple[int, int]
CheckersMove = Tuple[Position, Position]

STEP_DIRS = ((1, 1), (1, -1), (-1, 1), (-1, -1))
JUMP_DIRS = ((2, 2), (2, -2), (-2, 2), (-2, -2))


class Side(Enum):
    RED = "red"
    BLACK = "black"

    @property
    def opposite(self) -> "Side":
        return Side.BLACK if self is Side.RED else Side.RED

    @property
    def forward(self) -> int:
        """Row delta of a man's step; red starts at the bottom and moves up."""
        return -1 if self is Side.RED else 1

    @property
    def crown_row(self) -> int:
        return 0 if self is Side.RED else 7


class Square(Enum):
    EMPTY = "."
    RED = "r"
    BLACK = "b"
    RED_KING = "R"
    BLACK_KING = "B"

    @property
    def is_king(self) -> bool:
        return self in (Square.RED_KING, Square.BLACK_KING)

    @property
    def is_red(self) -> bool:
        return self in (Square.RED, Square.RED_KING)

    @property
    def is_black(self) -> bool:
        return self in (Square.BLACK, Square.BLACK_KING)

    @property
    def side(self) -> Optional[Side]:
        if self.is_red:
            return Side.RED
        if self.is_black:
            return Side.BLACK
        return None

    def crowned(self) -> "Square":
        if self is Square.RED:
            return Square.RED_KING
        if self is Square.BLACK:
            return Square.BLACK_KING
        return self


def _check_position(pos: Position) -> None:
    if not (0 <= pos[0] < 8 and 0 <= pos[1] < 8):
        raise IndexError(f"square off board: {pos!r}")


@dataclass
class CheckersBoard:
    """8x8 checkers board; men occupy squares where ``(row + col)`` is odd.

    Black starts on rows 0-2, red on rows 5-7, and red moves first.
    """

    grid: List[List[Square]]
    red_to_move: bool = True
    red_pieces_count: int = 12
    black_pieces_count: int = 12

    @classmethod
    def startpos(cls) -> "CheckersBoard":
        grid = [[Square.EMPTY] * 8 for _ in range(8)]
        for row in range(8):
            for col in range(8):
                if (row + col) % 2 == 1:
                    if row < 3:
                        grid[row][col] = Square.BLACK
                    elif row > 4:
                        grid[row][col] = Square.RED
        return cls(grid=grid)

    @classmethod
    def from_rows(cls, rows: Sequence[str], red_to_move: bool = True) -> "CheckersBoard":
        """Build a board from eight 8-character rows of ``. r b R B``.

        Raises:
            ValueError: If the layout is not 8x8 or holds unknown characters.
        """
        if len(rows) != 8 or any(len(r) != 8 for r in rows):
            raise ValueError("checkers layout must be 8 rows of 8 squares")
        try:
            grid = [[Square(ch) for ch in r] for r in rows]
        except ValueError as e:
            raise ValueError("invalid square character in layout") from e
        board = cls(grid=grid, red_to_move=red_to_move, red_pieces_count=0, black_pieces_count=0)
        for _, sq in board.pieces():
            if sq.side is Side.RED:
                board.red_pieces_count += 1
            else:
                board.black_pieces_count += 1
        return board

    def to_rows(self) -> List[str]:
        return ["".join(sq.value for sq in row) for row in self.grid]

    def copy(self) -> "CheckersBoard":
        return CheckersBoard(
            grid=[list(row) for row in self.grid],
            red_to_move=self.red_to_move,
            red_pieces_count=self.red_pieces_count,
            black_pieces_count=self.black_pieces_count,
        )

    @property
    def side_to_move(self) -> Side:
        return Side.RED if self.red_to_move else Side.BLACK

    def piece_at(self, pos: Position) -> Square:
        _check_position(pos)
        return self.grid[pos[0]][pos[1]]

    def pieces(self, side: Optional[Side] = None) -> Iterator[Tuple[Position, Square]]:
        for row in range(8):
            for col in range(8):
                sq = self.grid[row][col]
                if sq is not Square.EMPTY and (side is None or sq.side is side):
                    yield (row, col), sq

    # --- Rules ---
    def is_valid_move(self, from_pos: Position, to_pos: Position) -> bool:
        """Return True for a diagonal step or single jump by the piece on ``from_pos``.

        Men move forward only; kings move both ways. A jump must pass over an
        opposing piece onto an empty square.
        """
        _check_position(from_pos)
        _check_position(to_pos)
        piece = self.piece_at(from_pos)
        if piece is Square.EMPTY or self.piece_at(to_pos) is not Square.EMPTY:
            return False
        dr = to_pos[0] - from_pos[0]
        dc = to_pos[1] - from_pos[1]
        if abs(dr) != abs(dc):
            return False
        side = piece.side
        assert side is not None
        if not piece.is_king and dr * side.forward <= 0:
            return False
        if abs(dr) == 1:
            return True
        if abs(dr) == 2:
            jumped = self.piece_at(jumped_position(from_pos, to_pos))
            return jumped.side is side.opposite
        return False

    def _moves(self, side: Side, dirs: Sequence[Position]) -> List[CheckersMove]:
        out: List[CheckersMove] = []
        for (row, col), _ in self.pieces(side):
            for dr, dc in dirs:
                to = (row + dr, col + dc)
                if 0 <= to[0] < 8 and 0 <= to[1] < 8 and self.is_valid_move((row, col), to):
                    out.append(((row, col), to))
        return out

    def jumps(self, side: Side) -> List[CheckersMove]:
        return self._moves(side, JUMP_DIRS)

    def steps(self, side: Side) -> List[CheckersMove]:
        return self._moves(side, STEP_DIRS)

    def valid_moves(self, side: Optional[Side] = None) -> List[CheckersMove]:
        """Every step then every jump for ``side`` (default: side to move)."""
        side = side or self.side_to_move
        return self.steps(side) + self.jumps(side)

    def has_moves(self, side: Side) -> bool:
        return bool(self.steps(side) or self.jumps(side))

    def move_piece(self, from_pos: Position, to_pos: Position) -> Optional[Square]:
        """Relocate a piece, crown it on the far row, remove a jumped piece.

        No legality check is made; the turn is toggled.

        Returns:
            Optional[Square]: The captured piece for a jump.

        Raises:
            IllegalMoveError: If ``from_pos`` is empty.
        """
        piece = self.piece_at(from_pos)
        if piece is Square.EMPTY:
            raise IllegalMoveError(f"no piece on {from_pos!r}")
        _check_position(to_pos)
        self.grid[from_pos[0]][from_pos[1]] = Square.EMPTY
        side = piece.side
        assert side is not None
        if to_pos[0] == side.crown_row:
            piece = piece.crowned()
        self.grid[to_pos[0]][to_pos[1]] = piece

        captured: Optional[Square] = None
        if abs(to_pos[0] - from_pos[0]) == 2:
            jr, jc = jumped_position(from_pos, to_pos)
            captured = self.grid[jr][jc]
            if captured.side is Side.RED:
                self.red_pieces_count -= 1
            elif captured.side is Side.BLACK:
                self.black_pieces_count -= 1
            self.grid[jr][jc] = Square.EMPTY
        self.red_to_move = not self.red_to_move
        return captured

    def winner(self) -> Optional[Side]:
        """The side whose opponent has no pieces left, if any."""
        if self.red_pieces_count == 0:
            return Side.BLACK
        if self.black_pieces_count == 0:
            return Side.RED
        return None


def jumped_position(from_pos: Position, to_pos: Position) -> Position:
    return (from_pos[0] + to_pos[0]) // 2, (from_pos[1] + to_pos[1]) // 2
