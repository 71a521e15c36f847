from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from .board import Board, Color, PieceType
from .move import IllegalMoveError, Move, Square
from src.search.difficulty import Difficulty
from src.search.scheduler import AIMoveScheduler
from src.search.service import SearchService


logger = logging.getLogger(__name__)

AI_COLOR = Color.BLACK


@dataclass
class Game:
    """Chess session owning the live board.

    Responsibility: validate and apply moves, keep the check/checkmate/winner
    flags current, run the two-phase tap gesture, and play black's turn when a
    difficulty is set. Every mutation and every multi-field read happens under
    ``lock``; the AI computes on a copy and hands its move back through the
    scheduler.
    """

    board: Board
    difficulty: Difficulty = Difficulty.NONE
    winner: Optional[Color] = None
    white_in_check: bool = False
    black_in_check: bool = False
    white_in_checkmate: bool = False
    black_in_checkmate: bool = False
    draw: bool = False
    selected: Optional[Square] = None
    valid_moves: List[Square] = field(default_factory=list)
    move_stack: List[Move] = field(default_factory=list)
    ai_thinking: bool = False
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    _scheduler: AIMoveScheduler = field(
        default_factory=AIMoveScheduler, repr=False, compare=False
    )

    @classmethod
    def new(
        cls, difficulty: Difficulty = Difficulty.NONE, rng: Optional[random.Random] = None
    ) -> "Game":
        return cls(board=Board.startpos(), difficulty=difficulty, rng=rng or random.Random())

    @classmethod
    def from_fen(
        cls,
        fen: str,
        difficulty: Difficulty = Difficulty.NONE,
        rng: Optional[random.Random] = None,
    ) -> "Game":
        return cls(
            board=Board.from_fen(fen), difficulty=difficulty, rng=rng or random.Random()
        )

    def __post_init__(self) -> None:
        self.refresh_status()

    @property
    def lock(self) -> threading.RLock:
        """Session lock; hold it to read several fields as one consistent state."""
        return self._lock

    def to_fen(self) -> str:
        with self._lock:
            return self.board.to_fen()

    def board_copy(self) -> Board:
        with self._lock:
            return self.board.copy()

    # --- State flags ---
    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.draw

    @property
    def is_ai_turn(self) -> bool:
        return (
            self.difficulty is not Difficulty.NONE
            and self.board.side_to_move is AI_COLOR
            and not self.is_over
        )

    def in_check(self) -> bool:
        with self._lock:
            return self.board.in_check()

    def checkmate(self) -> bool:
        return self.white_in_checkmate or self.black_in_checkmate

    def stalemate(self) -> bool:
        return self.draw

    def refresh_status(self) -> None:
        """Recompute check and checkmate flags for both colours.

        Checkmate names the winner; a side to move with no legal move while
        not in check ends the game as a draw.
        """
        was_over = self.is_over
        board = self.board
        self.white_in_check = board.in_check(Color.WHITE)
        self.black_in_check = board.in_check(Color.BLACK)
        self.white_in_checkmate = self.white_in_check and board.in_checkmate(Color.WHITE)
        self.black_in_checkmate = self.black_in_check and board.in_checkmate(Color.BLACK)
        if self.white_in_checkmate:
            self.winner = Color.BLACK
        elif self.black_in_checkmate:
            self.winner = Color.WHITE
        self.draw = self.winner is None and board.in_stalemate(board.side_to_move)
        if self.is_over and not was_over:
            logger.info(
                "game over",
                extra={
                    "winner": self.winner.value if self.winner else None,
                    "draw": self.draw,
                    "fen": board.to_fen(),
                },
            )

    # --- Moves ---
    def legal_moves(self) -> List[Move]:
        with self._lock:
            if self.is_over:
                return []
            return self.board.generate_legal_moves()

    def apply_move(self, move: Move) -> Move:
        """Validate and play ``move`` for the side to move.

        Castling is recognised from the king's two-square step, so a parsed
        ``Move`` without ``is_castling`` is accepted.

        Returns:
            Move: The move as generated by the board.

        Raises:
            IllegalMoveError: If the game is over or the move is not legal.
        """
        with self._lock:
            if self.is_over:
                raise IllegalMoveError("game is over")
            resolved = self.board.resolve_move(move.from_sq, move.to_sq)
            if resolved is None:
                raise IllegalMoveError("illegal move")
            self._execute(resolved)
            return resolved

    def try_move(self, from_sq: Square, to_sq: Square) -> bool:
        """Play the move if legal; silently ignore it otherwise."""
        try:
            self.apply_move(Move(from_sq, to_sq))
        except IllegalMoveError:
            return False
        return True

    def _execute(self, move: Move) -> None:
        mover = self.board.side_to_move
        captured = self.board.make_move(move)
        self.move_stack.append(move)
        if captured is not None and captured.type is PieceType.KING:
            # Unreachable through legal moves
            logger.warning("king captured", extra={"move": move.to_uci()})
            self.winner = mover
        self.selected = None
        self.valid_moves = []
        self.refresh_status()

    def undo_move(self) -> None:
        """Take back the last move and reopen the game.

        Raises:
            ValueError: If no move has been played.
        """
        with self._lock:
            if not self.move_stack:
                raise ValueError("no moves to undo")
            self._scheduler.cancel()
            self.ai_thinking = False
            self.board.unmake_move()
            self.move_stack.pop()
            self.winner = None
            self.draw = False
            self.selected = None
            self.valid_moves = []
            self.refresh_status()

    def move_history_uci(self) -> List[str]:
        with self._lock:
            return [m.to_uci() for m in self.move_stack]

    # --- Tap gesture ---
    def handle_tap(self, row: int, col: int) -> None:
        """Two-phase select-then-move gesture.

        The first tap selects a piece of the side to move and highlights its
        legal destinations; a second tap on a destination plays the move, on
        the same square clears the selection. Illegal taps change nothing.
        """
        with self._lock:
            if self.is_over or self.is_ai_turn or self.ai_thinking:
                return
            sq = (row, col)
            piece = self.board.piece_at(sq)
            if self.selected is not None:
                if self.selected == sq:
                    self.selected = None
                    self.valid_moves = []
                    return
                if self.try_move(self.selected, sq):
                    if self.is_ai_turn:
                        self.request_ai_move()
                    return
            if piece is not None and piece.color is self.board.side_to_move:
                self.selected = sq
                self.valid_moves = self.board.valid_moves_from(sq)

    # --- AI ---
    def set_difficulty(self, difficulty: Difficulty) -> None:
        with self._lock:
            self.difficulty = difficulty
            if self.is_ai_turn:
                self.request_ai_move()

    def ai_move(self) -> Optional[Move]:
        """Select and play black's move synchronously.

        Returns:
            Optional[Move]: The move played, or None when it is not the AI's
                turn or no legal move exists.
        """
        with self._lock:
            if not self.is_ai_turn:
                return None
            self._scheduler.cancel()
            self.ai_thinking = False
            move = SearchService(self.rng).select_ai_move(self.board.copy(), self.difficulty)
            if move is not None:
                self._execute(move)
            return move

    def request_ai_move(self) -> bool:
        """Schedule black's move after the difficulty's thinking delay.

        Returns:
            bool: True if a move was scheduled.
        """
        with self._lock:
            if not self.is_ai_turn:
                return False
            snapshot = self.board.copy()
            difficulty = self.difficulty
            self.ai_thinking = True
            self._scheduler.schedule(
                difficulty.thinking_time,
                lambda: SearchService(self.rng).select_ai_move(snapshot, difficulty),
                self._deliver_ai_move,
            )
            return True

    def _deliver_ai_move(self, gen: int, move: Optional[Move]) -> None:
        with self._lock:
            if not self._scheduler.is_current(gen):
                return
            self.ai_thinking = False
            if move is None or not self.is_ai_turn:
                return
            if not self.board.is_legal_move(move):
                logger.warning("dropping stale ai move", extra={"move": move.to_uci()})
                return
            self._execute(move)

    def wait_for_ai(self, timeout: Optional[float] = None) -> bool:
        return self._scheduler.wait(timeout)

    def reset(self) -> None:
        """Cancel any pending AI move and restore the starting position."""
        with self._lock:
            self._scheduler.cancel()
            self.board = Board.startpos()
            self.winner = None
            self.draw = False
            self.ai_thinking = False
            self.selected = None
            self.valid_moves = []
            self.move_stack = []
            self.refresh_status()
