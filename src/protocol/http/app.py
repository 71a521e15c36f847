from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .error import install_error_handlers
from .logging_middleware import RequestIDLoggingMiddleware, configure_logging
from .session import InMemorySessionStore
from ...checkers.game import CheckersGame
from ...engine.board import STARTPOS_FEN
from ...engine.game import Game
from ...engine.move import parse_uci, square_to_str
from ...engine.perft import perft as perft_nodes
from ...search.difficulty import CheckersDifficulty, Difficulty
from ...search.service import SearchService


logger = logging.getLogger(__name__)


class Coord(BaseModel):
    row: int = Field(..., ge=0, le=7)
    col: int = Field(..., ge=0, le=7)


class CreateGameRequest(BaseModel):
    difficulty: Difficulty = Difficulty.NONE


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str
    difficulty: Difficulty


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Long algebraic move, e.g. e2e4")


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=5)
    movetime_ms: Optional[int] = Field(default=None, ge=1)


class PerftRequest(BaseModel):
    fen: str = STARTPOS_FEN
    depth: int = Field(default=1, ge=0, le=4)


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: str
    difficulty: Difficulty
    legal_moves: List[str]
    in_check: bool
    white_in_check: bool
    black_in_check: bool
    checkmate: bool
    stalemate: bool
    winner: Optional[str]
    selected: Optional[str]
    valid_moves: List[str]
    ai_thinking: bool
    last_move: Optional[str]
    move_history: List[str]


class CreateCheckersRequest(BaseModel):
    difficulty: CheckersDifficulty = CheckersDifficulty.NONE


class CheckersMoveRequest(BaseModel):
    from_sq: Coord
    to_sq: Coord


class CheckersState(BaseModel):
    game_id: str
    board: List[str]
    side_to_move: str
    difficulty: CheckersDifficulty
    red_pieces_count: int
    black_pieces_count: int
    winner: Optional[str]
    selected: Optional[Coord]
    valid_moves: List[List[Coord]]
    ai_thinking: bool


def create_app() -> FastAPI:
    app = FastAPI(title="Board Games Engine API", version="0.1.0")

    configure_logging()

    app.add_middleware(RequestIDLoggingMiddleware)
    install_error_handlers(app)

    games: InMemorySessionStore[Game] = InMemorySessionStore(Game.new)
    checkers: InMemorySessionStore[CheckersGame] = InMemorySessionStore(CheckersGame.new)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    # --- Chess ---
    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        difficulty = req.difficulty if req else Difficulty.NONE
        game_id = games.create(Game.new(difficulty))
        game = _require(games, game_id)
        logger.info("game created", extra={"game_id": game_id, "difficulty": difficulty.value})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen(), difficulty=difficulty)

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _chess_state(game_id, _require(games, game_id))

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        old = _require(games, game_id)
        try:
            game = Game.from_fen(req.fen, old.difficulty)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        old.reset()
        games.set(game_id, game)
        return _chess_state(game_id, game)

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require(games, game_id)
        try:
            move = parse_uci(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if game.is_ai_turn:
            raise HTTPException(status_code=409, detail="it is the AI's turn")
        game.apply_move(move)
        game.request_ai_move()
        return _chess_state(game_id, game)

    @app.post("/api/games/{game_id}/tap", response_model=GameState)
    async def tap(game_id: str, req: Coord) -> GameState:
        game = _require(games, game_id)
        game.handle_tap(req.row, req.col)
        return _chess_state(game_id, game)

    @app.post("/api/games/{game_id}/ai-move", response_model=GameState)
    async def ai_move(game_id: str) -> GameState:
        game = _require(games, game_id)
        if not game.is_ai_turn:
            raise HTTPException(status_code=409, detail="it is not the AI's turn")
        game.ai_move()
        return _chess_state(game_id, game)

    @app.post("/api/games/{game_id}/search")
    async def search(game_id: str, req: SearchRequest) -> Dict[str, Any]:
        game = _require(games, game_id)
        depth = req.depth or max(game.difficulty.search_depth, 1)
        res = SearchService().search(
            game.board_copy(), depth=depth, movetime_ms=req.movetime_ms
        )
        return {
            "best_move": res.best_move.to_uci() if res.best_move else None,
            "score": res.score,
            "nodes": res.nodes,
            "depth": res.depth,
            "time_ms": res.time_ms,
        }

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require(games, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _chess_state(game_id, game)

    @app.post("/api/games/{game_id}/reset", response_model=GameState)
    async def reset(game_id: str) -> GameState:
        game = _require(games, game_id)
        game.reset()
        return _chess_state(game_id, game)

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        game = games.pop(game_id)
        if game is None:
            raise HTTPException(status_code=404, detail="game not found")
        game.reset()
        return {"status": "deleted"}

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, Any]:
        try:
            game = Game.from_fen(req.fen)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        return {"nodes": perft_nodes(game.board, req.depth), "depth": req.depth}

    # --- Checkers ---
    @app.post("/api/checkers", response_model=CheckersState)
    async def create_checkers(req: Optional[CreateCheckersRequest] = None) -> CheckersState:
        difficulty = req.difficulty if req else CheckersDifficulty.NONE
        game_id = checkers.create(CheckersGame.new(difficulty))
        return _checkers_state(game_id, _require(checkers, game_id))

    @app.get("/api/checkers/{game_id}/state", response_model=CheckersState)
    async def checkers_state(game_id: str) -> CheckersState:
        return _checkers_state(game_id, _require(checkers, game_id))

    @app.post("/api/checkers/{game_id}/move", response_model=CheckersState)
    async def checkers_move(game_id: str, req: CheckersMoveRequest) -> CheckersState:
        game = _require(checkers, game_id)
        if game.is_ai_turn:
            raise HTTPException(status_code=409, detail="it is the AI's turn")
        game.apply_move((req.from_sq.row, req.from_sq.col), (req.to_sq.row, req.to_sq.col))
        game.request_ai_move()
        return _checkers_state(game_id, game)

    @app.post("/api/checkers/{game_id}/tap", response_model=CheckersState)
    async def checkers_tap(game_id: str, req: Coord) -> CheckersState:
        game = _require(checkers, game_id)
        game.handle_tap(req.row, req.col)
        return _checkers_state(game_id, game)

    @app.post("/api/checkers/{game_id}/ai-move", response_model=CheckersState)
    async def checkers_ai_move(game_id: str) -> CheckersState:
        game = _require(checkers, game_id)
        if not game.is_ai_turn:
            raise HTTPException(status_code=409, detail="it is not the AI's turn")
        game.ai_move()
        return _checkers_state(game_id, game)

    return app


def _require(store: InMemorySessionStore[Any], game_id: str) -> Any:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _chess_state(game_id: str, game: Game) -> GameState:
    with game.lock:
        return _build_chess_state(game_id, game)


def _build_chess_state(game_id: str, game: Game) -> GameState:
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=game.board.side_to_move.value,
        difficulty=game.difficulty,
        legal_moves=[m.to_uci() for m in game.legal_moves()],
        in_check=game.in_check(),
        white_in_check=game.white_in_check,
        black_in_check=game.black_in_check,
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        winner=game.winner.value if game.winner else None,
        selected=square_to_str(game.selected) if game.selected else None,
        valid_moves=[square_to_str(sq) for sq in game.valid_moves],
        ai_thinking=game.ai_thinking,
        last_move=history[-1] if history else None,
        move_history=history,
    )


def _checkers_state(game_id: str, game: CheckersGame) -> CheckersState:
    with game.lock:
        return _build_checkers_state(game_id, game)


def _build_checkers_state(game_id: str, game: CheckersGame) -> CheckersState:
    board = game.board
    moves = [] if game.is_over else board.valid_moves()
    return CheckersState(
        game_id=game_id,
        board=board.to_rows(),
        side_to_move=board.side_to_move.value,
        difficulty=game.difficulty,
        red_pieces_count=board.red_pieces_count,
        black_pieces_count=board.black_pieces_count,
        winner=game.winner.value if game.winner else None,
        selected=Coord(row=game.selected[0], col=game.selected[1]) if game.selected else None,
        valid_moves=[[Coord(row=f[0], col=f[1]), Coord(row=t[0], col=t[1])] for f, t in moves],
        ai_thinking=game.ai_thinking,
    )


# Default app for non-factory servers
app = create_app()
