from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from src.engine.move import IllegalMoveError
from src.search.difficulty import CheckersDifficulty
from src.search.scheduler import AIMoveScheduler

from . import ai
from .board import CheckersBoard, CheckersMove, Position, Side


logger = logging.getLogger(__name__)

AI_SIDE = Side.BLACK


@dataclass
class CheckersGame:
    """Checkers session owning the live board; black is the AI side."""

    board: CheckersBoard = field(default_factory=CheckersBoard.startpos)
    difficulty: CheckersDifficulty = CheckersDifficulty.NONE
    winner: Optional[Side] = None
    selected: Optional[Position] = None
    ai_thinking: bool = False
    move_history: List[CheckersMove] = field(default_factory=list)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    _scheduler: AIMoveScheduler = field(
        default_factory=AIMoveScheduler, repr=False, compare=False
    )

    @classmethod
    def new(cls, difficulty: CheckersDifficulty = CheckersDifficulty.NONE) -> "CheckersGame":
        return cls(difficulty=difficulty)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def is_ai_turn(self) -> bool:
        return (
            self.difficulty is not CheckersDifficulty.NONE
            and self.board.side_to_move is AI_SIDE
            and not self.is_over
        )

    def check_for_winner(self) -> Optional[Side]:
        """Declare a winner when a side has no pieces or the side to move is stuck."""
        if self.winner is None:
            self.winner = self.board.winner()
            if self.winner is None and not self.board.has_moves(self.board.side_to_move):
                self.winner = self.board.side_to_move.opposite
            if self.winner is not None:
                logger.info("checkers game over", extra={"winner": self.winner.value})
        return self.winner

    def apply_move(self, from_pos: Position, to_pos: Position) -> None:
        """Play a move for the side to move.

        Raises:
            IllegalMoveError: If the game is over, the piece belongs to the
                other side, or the move breaks the movement rules.
        """
        with self._lock:
            if self.is_over:
                raise IllegalMoveError("game is over")
            if self.board.piece_at(from_pos).side is not self.board.side_to_move:
                raise IllegalMoveError("not your piece")
            if not self.board.is_valid_move(from_pos, to_pos):
                raise IllegalMoveError("illegal move")
            self._execute(from_pos, to_pos)

    def try_move(self, from_pos: Position, to_pos: Position) -> bool:
        try:
            self.apply_move(from_pos, to_pos)
        except IllegalMoveError:
            return False
        return True

    def _execute(self, from_pos: Position, to_pos: Position) -> None:
        self.board.move_piece(from_pos, to_pos)
        self.move_history.append((from_pos, to_pos))
        self.selected = None
        self.check_for_winner()

    def handle_tap(self, row: int, col: int) -> None:
        """Select a piece of the side to move, then tap a destination to move it."""
        with self._lock:
            if self.is_over or self.is_ai_turn or self.ai_thinking:
                return
            pos = (row, col)
            if self.selected is not None:
                if self.selected == pos:
                    self.selected = None
                    return
                if self.try_move(self.selected, pos):
                    if self.is_ai_turn:
                        self.request_ai_move()
                    return
            if self.board.piece_at(pos).side is self.board.side_to_move:
                self.selected = pos

    # --- AI ---
    def set_difficulty(self, difficulty: CheckersDifficulty) -> None:
        with self._lock:
            self.difficulty = difficulty
            if self.is_ai_turn:
                self.request_ai_move()

    def ai_move(self) -> Optional[CheckersMove]:
        """Play black's move synchronously; with no move available red wins."""
        with self._lock:
            if not self.is_ai_turn:
                return None
            self._scheduler.cancel()
            self.ai_thinking = False
            move = ai.choose_move(self.board.copy(), AI_SIDE)
            self._play_ai(move)
            return move

    def _play_ai(self, move: Optional[CheckersMove]) -> None:
        if move is None:
            self.winner = AI_SIDE.opposite
            logger.info("checkers ai has no move", extra={"winner": self.winner.value})
            return
        self._execute(*move)

    def request_ai_move(self) -> bool:
        with self._lock:
            if not self.is_ai_turn:
                return False
            snapshot = self.board.copy()
            self.ai_thinking = True
            self._scheduler.schedule(
                self.difficulty.thinking_time,
                lambda: ai.choose_move(snapshot, AI_SIDE),
                self._deliver_ai_move,
            )
            return True

    def _deliver_ai_move(self, gen: int, move: Optional[CheckersMove]) -> None:
        with self._lock:
            if not self._scheduler.is_current(gen):
                return
            self.ai_thinking = False
            if self.is_ai_turn:
                self._play_ai(move)

    def wait_for_ai(self, timeout: Optional[float] = None) -> bool:
        return self._scheduler.wait(timeout)

    def reset(self) -> None:
        with self._lock:
            self._scheduler.cancel()
            self.board = CheckersBoard.startpos()
            self.winner = None
            self.selected = None
            self.ai_thinking = False
            self.move_history = []
