from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .move import IllegalMoveError, Move, Square


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


class Color(Enum):
    WHITE = "w"
    BLACK = "b"

    @property
    def opposite(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a pawn step (white marches toward row 0)."""
        return -1 if self is Color.WHITE else 1

    @property
    def home_row(self) -> int:
        return 7 if self is Color.WHITE else 0

    @property
    def pawn_row(self) -> int:
        return 6 if self is Color.WHITE else 1

    @property
    def promotion_row(self) -> int:
        return 0 if self is Color.WHITE else 7


class PieceType(Enum):
    PAWN = "p"
    KNIGHT = "n"
    BISHOP = "b"
    ROOK = "r"
    QUEEN = "q"
    KING = "k"


CHAR_TO_TYPE = {t.value: t for t in PieceType}


@dataclass(frozen=True)
class Piece:
    type: PieceType
    color: Color
    has_moved: bool = False

    def moved(self) -> "Piece":
        return self if self.has_moved else replace(self, has_moved=True)

    @property
    def symbol(self) -> str:
        """FEN character: uppercase for white, lowercase for black."""
        ch = self.type.value
        return ch.upper() if self.color is Color.WHITE else ch


# Direction tables as (row delta, col delta)
KNIGHT_JUMPS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
KING_STEPS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
ROOK_DIRS = ((-1, 0), (1, 0), (0, -1), (0, 1))
BISHOP_DIRS = ((-1, -1), (-1, 1), (1, -1), (1, 1))
QUEEN_DIRS = ROOK_DIRS + BISHOP_DIRS

SLIDER_DIRS = {
    PieceType.ROOK: ROOK_DIRS,
    PieceType.BISHOP: BISHOP_DIRS,
    PieceType.QUEEN: QUEEN_DIRS,
}


def on_board(row: int, col: int) -> bool:
    return 0 <= row < 8 and 0 <= col < 8


def _check_square(sq: Square) -> None:
    # Off-board squares are caller bugs
    if not on_board(sq[0], sq[1]):
        raise IndexError(f"square off board: {sq!r}")


# (square, piece previously on it) pairs plus the side to move before the change
_Undo = Tuple[List[Tuple[Square, Optional[Piece]]], bool]


@dataclass
class Board:
    """8x8 board of optional pieces plus the side to move.

    Notes:
    - Squares are ``(row, col)``; row 0 is black's home rank, row 7 white's.
    - Pieces are immutable values, so copying the grid rows is a deep copy.
    - ``make_move``/``unmake_move`` keep a private undo stack; lookahead
      should run on a ``copy()`` so the live board is never visible mid-search.
    """

    grid: List[List[Optional[Piece]]]
    white_to_move: bool = True
    _history: List[_Undo] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def empty(cls) -> "Board":
        return cls(grid=[[None] * 8 for _ in range(8)])

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board with the standard initial placement, white to move."""
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a FEN string.

        Only placement, side to move, and castling rights are meaningful. A king
        or rook standing on its home square without the matching castling right
        is loaded as already moved; the en passant and counter fields are
        accepted but ignored.

        Raises:
            ValueError: If ``fen`` is empty or malformed.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) not in (4, 6):
            raise ValueError("FEN must have 4 or 6 fields")
        placement, stm, castling = parts[0], parts[1], parts[2]

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        board = cls.empty()
        for row, rank in enumerate(ranks):
            col = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ValueError("invalid empty count in FEN rank")
                    col += n
                    continue
                ptype = CHAR_TO_TYPE.get(ch.lower())
                if ptype is None:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if col >= 8:
                    raise ValueError("too many squares in FEN rank")
                color = Color.WHITE if ch.isupper() else Color.BLACK
                board.grid[row][col] = Piece(ptype, color)
                col += 1
            if col != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")

        if stm not in ("w", "b"):
            raise ValueError("side to move must be 'w' or 'b'")
        board.white_to_move = stm == "w"

        if castling != "-" and any(ch not in "KQkq" for ch in castling):
            raise ValueError("invalid castling rights")
        board._seed_moved_flags("" if castling == "-" else castling)
        return board

    def _seed_moved_flags(self, castling: str) -> None:
        rights = {
            Color.WHITE: ("K" in castling, "Q" in castling),
            Color.BLACK: ("k" in castling, "q" in castling),
        }
        for (row, col), piece in list(self.pieces()):
            kingside, queenside = rights[piece.color]
            home = piece.color.home_row
            if piece.type is PieceType.KING:
                unmoved = (row, col) == (home, 4) and (kingside or queenside)
            elif piece.type is PieceType.ROOK:
                unmoved = (row, col) == (home, 7) and kingside or (
                    (row, col) == (home, 0) and queenside
                )
            elif piece.type is PieceType.PAWN:
                unmoved = row == piece.color.pawn_row
            else:
                unmoved = True
            if not unmoved:
                self.grid[row][col] = piece.moved()

    def to_fen(self) -> str:
        """Serialize the position; en passant is always ``-``."""
        rows: List[str] = []
        for row in range(8):
            run = 0
            out = []
            for col in range(8):
                piece = self.grid[row][col]
                if piece is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                out.append(piece.symbol)
            if run:
                out.append(str(run))
            rows.append("".join(out))
        stm = "w" if self.white_to_move else "b"
        return f"{'/'.join(rows)} {stm} {self.castling_rights() or '-'} - 0 1"

    def castling_rights(self) -> str:
        rights = ""
        for color, (k, q) in ((Color.WHITE, "KQ"), (Color.BLACK, "kq")):
            home = color.home_row
            king = self.grid[home][4]
            if king is None or king.type is not PieceType.KING or king.color is not color:
                continue
            if king.has_moved:
                continue
            for rook_col, flag in ((7, k), (0, q)):
                rook = self.grid[home][rook_col]
                if (
                    rook is not None
                    and rook.type is PieceType.ROOK
                    and rook.color is color
                    and not rook.has_moved
                ):
                    rights += flag
        return rights

    # --- Accessors ---
    @property
    def side_to_move(self) -> Color:
        return Color.WHITE if self.white_to_move else Color.BLACK

    def piece_at(self, sq: Square) -> Optional[Piece]:
        _check_square(sq)
        return self.grid[sq[0]][sq[1]]

    def set_piece(self, sq: Square, piece: Optional[Piece]) -> None:
        _check_square(sq)
        self.grid[sq[0]][sq[1]] = piece

    def pieces(self, color: Optional[Color] = None) -> Iterator[Tuple[Square, Piece]]:
        """Yield ``(square, piece)`` in row-major order, optionally by colour."""
        for row in range(8):
            for col in range(8):
                piece = self.grid[row][col]
                if piece is not None and (color is None or piece.color is color):
                    yield (row, col), piece

    def find_king(self, color: Color) -> Optional[Square]:
        for sq, piece in self.pieces(color):
            if piece.type is PieceType.KING:
                return sq
        return None

    def copy(self) -> "Board":
        """Return a detached scratch copy with an empty undo stack."""
        return Board(grid=[list(row) for row in self.grid], white_to_move=self.white_to_move)

    # --- Pseudo-legal movement rules ---
    def has_obstacles_between(self, from_sq: Square, to_sq: Square) -> bool:
        """Return True if any square strictly between the endpoints is occupied.

        The endpoints must share a row, column, or diagonal.
        """
        (fr, fc), (tr, tc) = from_sq, to_sq
        dr = (tr > fr) - (tr < fr)
        dc = (tc > fc) - (tc < fc)
        r, c = fr + dr, fc + dc
        while (r, c) != (tr, tc):
            if self.grid[r][c] is not None:
                return True
            r += dr
            c += dc
        return False

    def is_valid_move(self, from_sq: Square, to_sq: Square) -> bool:
        """Return True if the move satisfies the piece's movement geometry.

        This is the pseudo-legal test: it ignores whether the mover's own king
        is left in check. Castling is handled by ``can_castle``.
        """
        _check_square(from_sq)
        _check_square(to_sq)
        piece = self.piece_at(from_sq)
        if piece is None or from_sq == to_sq:
            return False
        target = self.piece_at(to_sq)
        if target is not None and target.color is piece.color:
            return False

        (fr, fc), (tr, tc) = from_sq, to_sq
        dr, dc = tr - fr, tc - fc
        ptype = piece.type
        if ptype is PieceType.PAWN:
            fwd = piece.color.forward
            if dc == 0 and target is None:
                if dr == fwd:
                    return True
                return (
                    fr == piece.color.pawn_row
                    and dr == 2 * fwd
                    and self.grid[fr + fwd][fc] is None
                )
            return abs(dc) == 1 and dr == fwd and target is not None
        if ptype is PieceType.KNIGHT:
            return (abs(dr), abs(dc)) in ((1, 2), (2, 1))
        if ptype is PieceType.KING:
            return abs(dr) <= 1 and abs(dc) <= 1
        straight = dr == 0 or dc == 0
        diagonal = abs(dr) == abs(dc)
        if ptype is PieceType.ROOK and not straight:
            return False
        if ptype is PieceType.BISHOP and not diagonal:
            return False
        if ptype is PieceType.QUEEN and not (straight or diagonal):
            return False
        return not self.has_obstacles_between(from_sq, to_sq)

    def _pseudo_targets(self, sq: Square, piece: Piece) -> Iterator[Square]:
        """Enumerate destinations accepted by ``is_valid_move`` for ``piece``."""
        row, col = sq
        ptype = piece.type
        if ptype is PieceType.PAWN:
            fwd = piece.color.forward
            r = row + fwd
            if not 0 <= r < 8:
                return
            if self.grid[r][col] is None:
                yield (r, col)
                r2 = r + fwd
                if row == piece.color.pawn_row and self.grid[r2][col] is None:
                    yield (r2, col)
            for c in (col - 1, col + 1):
                if 0 <= c < 8:
                    target = self.grid[r][c]
                    if target is not None and target.color is not piece.color:
                        yield (r, c)
            return
        if ptype in (PieceType.KNIGHT, PieceType.KING):
            steps = KNIGHT_JUMPS if ptype is PieceType.KNIGHT else KING_STEPS
            for dr, dc in steps:
                r, c = row + dr, col + dc
                if on_board(r, c):
                    target = self.grid[r][c]
                    if target is None or target.color is not piece.color:
                        yield (r, c)
            return
        for dr, dc in SLIDER_DIRS[ptype]:
            r, c = row + dr, col + dc
            while on_board(r, c):
                target = self.grid[r][c]
                if target is None:
                    yield (r, c)
                else:
                    if target.color is not piece.color:
                        yield (r, c)
                    break
                r += dr
                c += dc

    # --- Check oracle ---
    def is_attacked(self, sq: Square, by: Color) -> bool:
        """Return True if any piece of colour ``by`` pseudo-legally hits ``sq``."""
        row, col = sq

        # A pawn of `by` attacks one row ahead of itself, so look one row behind.
        pr = row - by.forward
        for pc in (col - 1, col + 1):
            if on_board(pr, pc):
                p = self.grid[pr][pc]
                if p is not None and p.color is by and p.type is PieceType.PAWN:
                    return True

        for steps, ptype in ((KNIGHT_JUMPS, PieceType.KNIGHT), (KING_STEPS, PieceType.KING)):
            for dr, dc in steps:
                r, c = row + dr, col + dc
                if on_board(r, c):
                    p = self.grid[r][c]
                    if p is not None and p.color is by and p.type is ptype:
                        return True

        for dirs, sliders in (
            (ROOK_DIRS, (PieceType.ROOK, PieceType.QUEEN)),
            (BISHOP_DIRS, (PieceType.BISHOP, PieceType.QUEEN)),
        ):
            for dr, dc in dirs:
                r, c = row + dr, col + dc
                while on_board(r, c):
                    p = self.grid[r][c]
                    if p is not None:
                        if p.color is by and p.type in sliders:
                            return True
                        break
                    r += dr
                    c += dc
        return False

    def in_check(self, color: Optional[Color] = None) -> bool:
        """Return True if ``color`` (default: side to move) has its king attacked."""
        color = color or self.side_to_move
        king_sq = self.find_king(color)
        if king_sq is None:
            return False
        return self.is_attacked(king_sq, color.opposite)

    def move_would_cause_check(self, from_sq: Square, to_sq: Square, color: Color) -> bool:
        """Return True if relocating the piece leaves ``color``'s king attacked.

        The relocation is made on a scratch grid sharing the untouched rows;
        the receiver is only read.
        """
        (fr, fc), (tr, tc) = from_sq, to_sq
        grid = list(self.grid)
        grid[fr] = list(grid[fr])
        if tr != fr:
            grid[tr] = list(grid[tr])
        grid[tr][tc] = grid[fr][fc]
        grid[fr][fc] = None
        return Board(grid=grid, white_to_move=self.white_to_move).in_check(color)

    def in_checkmate(self, color: Optional[Color] = None) -> bool:
        """Return True if ``color`` is in check with no legal escape."""
        color = color or self.side_to_move
        return self.in_check(color) and not self._legal_moves_for(color)

    def in_stalemate(self, color: Optional[Color] = None) -> bool:
        """Return True if ``color`` is not in check but has no legal move."""
        color = color or self.side_to_move
        return not self.in_check(color) and not self._legal_moves_for(color)

    # --- Castling ---
    def can_castle(self, king_sq: Square, rook_sq: Square) -> bool:
        """Return True if the king may castle with the rook on ``rook_sq``.

        Requires an unmoved king and rook of the same colour on one row, the
        king not in check, nothing between them, and neither the square the
        king crosses nor the square it lands on under attack.
        """
        _check_square(king_sq)
        _check_square(rook_sq)
        (kr, kc), (rr, rc) = king_sq, rook_sq
        if kr != rr or kc == rc:
            return False
        king = self.grid[kr][kc]
        rook = self.grid[rr][rc]
        if (
            king is None
            or rook is None
            or king.type is not PieceType.KING
            or rook.type is not PieceType.ROOK
            or king.color is not rook.color
            or king.has_moved
            or rook.has_moved
        ):
            return False
        if self.in_check(king.color):
            return False
        step = 1 if rc > kc else -1
        if not 0 <= kc + 2 * step < 8:
            return False
        if self.has_obstacles_between(king_sq, rook_sq):
            return False
        for dist in (1, 2):
            if self.move_would_cause_check(king_sq, (kr, kc + dist * step), king.color):
                return False
        return True

    def _castling_moves(self, king_sq: Square) -> List[Move]:
        row, col = king_sq
        moves: List[Move] = []
        if col + 3 < 8 and self.can_castle(king_sq, (row, 7)):
            moves.append(Move(king_sq, (row, col + 2), is_castling=True))
        if col - 4 >= 0 and self.can_castle(king_sq, (row, 0)):
            moves.append(Move(king_sq, (row, col - 2), is_castling=True))
        return moves

    # --- Legal move generation ---
    def _legal_moves_for(self, color: Color) -> List[Move]:
        moves: List[Move] = []
        for sq, piece in list(self.pieces(color)):
            for to_sq in self._pseudo_targets(sq, piece):
                if not self.move_would_cause_check(sq, to_sq, color):
                    moves.append(Move(sq, to_sq))
            if piece.type is PieceType.KING and not piece.has_moved:
                moves.extend(self._castling_moves(sq))
        return moves

    def generate_legal_moves(self, color: Optional[Color] = None) -> List[Move]:
        """Return every legal move for ``color`` (default: side to move).

        Returns:
            List[Move]: Moves in row-major order of the moving piece, castling
                moves last for the king. Empty when ``color`` is not on move.
        """
        color = color or self.side_to_move
        if color is not self.side_to_move:
            return []
        return self._legal_moves_for(color)

    def has_legal_moves(self, color: Optional[Color] = None) -> bool:
        return bool(self.generate_legal_moves(color))

    def valid_moves_from(self, sq: Square) -> List[Square]:
        """Return legal destinations of the piece on ``sq``, castling included."""
        piece = self.piece_at(sq)
        if piece is None:
            return []
        dests = [
            to_sq
            for to_sq in self._pseudo_targets(sq, piece)
            if not self.move_would_cause_check(sq, to_sq, piece.color)
        ]
        if piece.type is PieceType.KING and not piece.has_moved:
            dests.extend(m.to_sq for m in self._castling_moves(sq))
        return dests

    def resolve_move(self, from_sq: Square, to_sq: Square) -> Optional[Move]:
        """Return the legal move of the side to move matching the endpoints."""
        _check_square(from_sq)
        _check_square(to_sq)
        piece = self.piece_at(from_sq)
        if piece is None or piece.color is not self.side_to_move:
            return None
        for m in self._legal_moves_for(piece.color):
            if m.from_sq == from_sq and m.to_sq == to_sq:
                return m
        return None

    def is_legal_move(self, move: Move) -> bool:
        resolved = self.resolve_move(move.from_sq, move.to_sq)
        return resolved is not None and resolved.is_castling == move.is_castling

    # --- Move execution ---
    def move_piece(self, from_sq: Square, to_sq: Square) -> Optional[Piece]:
        """Relocate a piece in-place and toggle the side to move.

        Sets ``has_moved`` on the mover and promotes a pawn reaching the far
        rank to a queen of its colour. No legality check is made.

        Returns:
            Optional[Piece]: The captured piece, if any.

        Raises:
            IllegalMoveError: If ``from_sq`` is empty.
        """
        piece = self.piece_at(from_sq)
        if piece is None:
            raise IllegalMoveError(f"no piece on {from_sq!r}")
        captured = self.piece_at(to_sq)
        self._history.append(([(from_sq, piece), (to_sq, captured)], self.white_to_move))

        if piece.type is PieceType.PAWN and to_sq[0] == piece.color.promotion_row:
            placed = Piece(PieceType.QUEEN, piece.color, has_moved=True)
        else:
            placed = piece.moved()
        self.grid[to_sq[0]][to_sq[1]] = placed
        self.grid[from_sq[0]][from_sq[1]] = None
        self.white_to_move = not self.white_to_move
        return captured

    def perform_castle(self, king_sq: Square, rook_sq: Square) -> None:
        """Castle in-place: king two squares toward the rook, rook over it.

        Raises:
            IllegalMoveError: If the squares do not hold a king and rook.
        """
        king = self.piece_at(king_sq)
        rook = self.piece_at(rook_sq)
        if king is None or rook is None or king_sq[0] != rook_sq[0]:
            raise IllegalMoveError("castling needs a king and rook on one row")
        row, kc = king_sq
        step = 1 if rook_sq[1] > kc else -1
        king_to = (row, kc + 2 * step)
        rook_to = (row, kc + step)
        self._history.append(
            (
                [
                    (king_sq, king),
                    (rook_sq, rook),
                    (king_to, self.piece_at(king_to)),
                    (rook_to, self.piece_at(rook_to)),
                ],
                self.white_to_move,
            )
        )
        self.grid[row][kc] = None
        self.grid[row][rook_sq[1]] = None
        self.grid[row][king_to[1]] = king.moved()
        self.grid[row][rook_to[1]] = rook.moved()
        self.white_to_move = not self.white_to_move

    def make_move(self, move: Move) -> Optional[Piece]:
        """Apply ``move`` in-place with a reversible undo record.

        Returns:
            Optional[Piece]: The captured piece, if any.
        """
        if move.is_castling:
            row, kc = move.from_sq
            rook_col = 7 if move.to_sq[1] > kc else 0
            self.perform_castle(move.from_sq, (row, rook_col))
            return None
        return self.move_piece(move.from_sq, move.to_sq)

    def unmake_move(self) -> None:
        """Restore the position from before the most recent ``make_move``."""
        if not self._history:
            raise ValueError("no moves to unmake")
        changes, white_to_move = self._history.pop()
        for (row, col), piece in reversed(changes):
            self.grid[row][col] = piece
        self.white_to_move = white_to_move

    def apply(self, move: Move) -> "Board":
        """Return a new Board with ``move`` applied if legal.

        The receiver is left unchanged.

        Raises:
            IllegalMoveError: If ``move`` is not legal for the side to move.
        """
        resolved = self.resolve_move(move.from_sq, move.to_sq)
        if resolved is None:
            raise IllegalMoveError("illegal move")
        new_board = self.copy()
        new_board.make_move(resolved)
        return new_board


def legal_moves(board: Board, color: Optional[Color] = None) -> List[Move]:
    """Functional alias of ``Board.generate_legal_moves``."""
    return board.generate_legal_moves(color)
