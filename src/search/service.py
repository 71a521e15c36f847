from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from src.engine.board import Board, Color
from src.engine.move import Move
from src.eval import evaluate_board, evaluate_move
from src.search.difficulty import Difficulty


logger = logging.getLogger(__name__)

INF = 10_000_000
MATE_SCORE = 1_000
TOP_MOVES = 3


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: Optional[int]
    nodes: int
    depth: int
    time_ms: int


class _TimeUp(Exception):
    pass


class SearchService:
    """Move selection for the chess AI.

    Black is always the maximizing player, matching the sign of
    ``evaluate_board``. Lookahead runs make/unmake on a private copy of the
    board handed in; the caller's board is never mutated.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.nodes = 0
        self._deadline: Optional[float] = None

    # --- Tiers ---
    def random_move(self, board: Board) -> Optional[Move]:
        """Easy tier: a uniformly random legal move."""
        moves = board.generate_legal_moves()
        if not moves:
            return None
        return self.rng.choice(moves)

    def top_three_move(self, board: Board) -> Optional[Move]:
        """Medium tier: score moves with ``evaluate_move``, pick among the best three."""
        moves = board.generate_legal_moves()
        if not moves:
            return None
        scored = [m.with_score(evaluate_move(board, m)) for m in moves]
        scored.sort(key=lambda m: m.score, reverse=True)
        return self.rng.choice(scored[:TOP_MOVES])

    def find_best_move(self, board: Board, depth: int) -> Optional[Move]:
        """Hard tier: best black move by minimax to ``depth`` plies.

        Ties keep the first move in generation order, so the result is
        deterministic for a given board and depth.
        """
        self.nodes = 0
        self._deadline = None
        move, _ = self._root(board.copy(), depth)
        return move

    def select_ai_move(self, board: Board, difficulty: Difficulty) -> Optional[Move]:
        """Dispatch to the tier for ``difficulty``; ``NONE`` never moves."""
        tiers: Dict[Difficulty, Callable[[Board], Optional[Move]]] = {
            Difficulty.EASY: self.random_move,
            Difficulty.MEDIUM: self.top_three_move,
            Difficulty.HARD: lambda b: self.find_best_move(b, difficulty.search_depth),
        }
        tier = tiers.get(difficulty)
        if tier is None:
            return None
        move = tier(board)
        logger.debug(
            "ai move selected",
            extra={
                "difficulty": difficulty.value,
                "move": move.to_uci() if move else None,
            },
        )
        return move

    # --- Minimax ---
    def minimax(
        self, board: Board, depth: int, alpha: int, beta: int, maximizing_player: bool
    ) -> int:
        """Alpha-beta minimax score of ``board`` from black's point of view.

        ``maximizing_player`` selects the side to expand: True for black,
        False for white. A side without moves scores as mated (faster mates
        preferred) when in check, else as a draw. The board is restored
        before returning.
        """
        self.nodes += 1
        if self._deadline is not None and time.perf_counter() >= self._deadline:
            raise _TimeUp()
        if depth == 0 or self._king_missing(board):
            return evaluate_board(board)

        color = Color.BLACK if maximizing_player else Color.WHITE
        moves = board.generate_legal_moves(color)
        if not moves:
            if board.in_check(color):
                return -(MATE_SCORE + depth) if maximizing_player else MATE_SCORE + depth
            return 0

        if maximizing_player:
            best = -INF
            for move in moves:
                board.make_move(move)
                try:
                    score = self.minimax(board, depth - 1, alpha, beta, False)
                finally:
                    board.unmake_move()
                best = max(best, score)
                alpha = max(alpha, score)
                if beta <= alpha:
                    break
            return best

        best = INF
        for move in moves:
            board.make_move(move)
            try:
                score = self.minimax(board, depth - 1, alpha, beta, True)
            finally:
                board.unmake_move()
            best = min(best, score)
            beta = min(beta, score)
            if beta <= alpha:
                break
        return best

    def _root(self, scratch: Board, depth: int) -> Tuple[Optional[Move], int]:
        if depth < 1:
            raise ValueError("depth must be >= 1")
        moves = scratch.generate_legal_moves(Color.BLACK)
        best_move: Optional[Move] = None
        best_score = -INF
        for move in moves:
            scratch.make_move(move)
            try:
                # Only a strictly better score replaces the best move
                score = self.minimax(scratch, depth - 1, best_score, INF, False)
            finally:
                scratch.unmake_move()
            if score > best_score:
                best_score = score
                best_move = move
        return best_move, best_score

    @staticmethod
    def _king_missing(board: Board) -> bool:
        return board.find_king(Color.WHITE) is None or board.find_king(Color.BLACK) is None

    # --- Driver ---
    def search(
        self, board: Board, depth: int = 3, movetime_ms: Optional[int] = None
    ) -> SearchResult:
        """Search for black's best move.

        Without ``movetime_ms`` this is a single fixed-depth search. With it,
        depths 1..``depth`` are searched in turn and the last completed
        iteration wins once the wall clock runs out.
        """
        if depth < 1:
            raise ValueError("depth must be >= 1")
        start = time.perf_counter()
        self.nodes = 0
        self._deadline = None if movetime_ms is None else start + movetime_ms / 1000.0
        scratch = board.copy()

        best_move: Optional[Move] = None
        best_score: Optional[int] = None
        reached = 0
        depths: List[int] = [depth] if movetime_ms is None else list(range(1, depth + 1))
        try:
            for d in depths:
                try:
                    move, score = self._root(scratch, d)
                except _TimeUp:
                    # make/unmake unwound through the finally blocks
                    break
                best_move, best_score, reached = move, score, d
        finally:
            self._deadline = None

        if best_move is None and movetime_ms is not None:
            # Depth 1 did not finish in time
            moves = board.generate_legal_moves(Color.BLACK)
            best_move = moves[0] if moves else None
        if best_move is None:
            best_score = None

        time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "search finished",
            extra={
                "depth": reached,
                "nodes": self.nodes,
                "time_ms": time_ms,
                "best_move": best_move.to_uci() if best_move else None,
            },
        )
        return SearchResult(
            best_move=best_move,
            score=best_score,
            nodes=self.nodes,
            depth=reached,
            time_ms=time_ms,
        )
