from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .error import install_error_handlers
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore
from ...config import Settings
from ...engine.game import Game
from ...engine.move import Side, parse_uci
from ...engine.perft import perft as perft_nodes
from ...engine.position import STARTPOS_FEN, Position
from ...search.analysis import analyze_game
from ...search.service import SearchService


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="Start from this FEN instead of the initial position")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Coordinate move string, e.g. e2e4 or e7e8q")


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=6)


class AnalysisRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=4)
    top_k: Optional[int] = Field(default=None, ge=1, le=64)
    max_plies: Optional[int] = Field(default=None, ge=1)
    time_budget_ms: Optional[int] = Field(default=None, ge=1)


class PerftRequest(BaseModel):
    fen: str = Field(default=STARTPOS_FEN)
    depth: int = Field(default=1, ge=0, le=4)


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: str
    legal_moves: List[str]
    in_check: bool
    checkmate: bool
    stalemate: bool
    last_move: Optional[str]
    move_history: List[str]
    captured_by_white: List[str]
    captured_by_black: List[str]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="chesscore", version="0.1.0")

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    app.add_middleware(RequestIDLoggingMiddleware)
    install_error_handlers(app)

    store = InMemorySessionStore()
    service = SearchService(settings.search_depth)
    app.state.settings = settings
    app.state.store = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        game = Game.from_fen(req.fen) if req is not None and req.fen else Game.new()
        game_id = store.create(game)
        logger.info("game created", extra={"game_id": game_id})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, bool]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"deleted": True}

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        _require_game(store, game_id)
        store.replace(game_id, Game.from_fen(req.fen))
        return _state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            move = parse_uci(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        game.apply_move(move)
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    # Search endpoints are sync so FastAPI runs them in its worker threadpool.
    @app.post("/api/games/{game_id}/search")
    def search(game_id: str, req: SearchRequest) -> Dict[str, Any]:
        game = _require_game(store, game_id)
        res = service.search(game.position, req.depth)
        score: Optional[Dict[str, int]]
        if res.mate_in is not None:
            score = {"mate": res.mate_in}
        else:
            score = {"cp": res.score_cp} if res.score_cp is not None else None
        return {
            "best_move": res.best_move.to_uci() if res.best_move else None,
            "notation": res.best_move.notation() if res.best_move else None,
            "score": score,
            "nodes": res.nodes,
            "depth": res.depth,
            "time_ms": res.time_ms,
        }

    @app.post("/api/games/{game_id}/analyze-root")
    def analyze_root(game_id: str, req: SearchRequest) -> Dict[str, Any]:
        game = _require_game(store, game_id)
        ranked = service.analyze_root(game.position, req.depth)
        return {
            "moves": [
                {"move": sm.move.to_uci(), "notation": sm.move.notation(), "score": sm.score}
                for sm in ranked
            ]
        }

    @app.post("/api/games/{game_id}/analysis")
    def analysis(game_id: str, req: AnalysisRequest) -> Dict[str, Any]:
        game = _require_game(store, game_id)
        res = analyze_game(
            game.plies,
            service,
            depth=req.depth or settings.analysis_depth,
            top_k=req.top_k or settings.analysis_top_k,
            max_plies=req.max_plies or settings.analysis_max_plies,
            time_budget_ms=req.time_budget_ms or settings.analysis_time_budget_ms,
        )
        return {
            "rows": [
                {
                    "ply": r.ply_index,
                    "move_number": r.move_number,
                    "side": r.side.value,
                    "move": r.move,
                    "best": r.best,
                    "loss_cp": r.loss_cp,
                    "eval_after_white": r.eval_after_white,
                    "label": r.label,
                }
                for r in res.rows
            ],
            "accuracy": {"w": res.accuracy_white, "b": res.accuracy_black},
            "acpl": {"w": res.acpl_white, "b": res.acpl_black},
            "truncated": res.truncated,
            "analyzed": res.analyzed,
            "total": res.total,
        }

    @app.post("/api/perft")
    def perft(req: PerftRequest) -> Dict[str, int]:
        return {"nodes": perft_nodes(Position.from_fen(req.fen), req.depth)}

    return app


def _state(game_id: str, game: Game) -> GameState:
    last = game.last_move()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=game.position.side_to_move.value,
        legal_moves=[m.to_uci() for m in game.legal_moves()],
        in_check=game.in_check(),
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        last_move=last.to_uci() if last else None,
        move_history=game.move_history(),
        captured_by_white=[k.value for k in game.captured_by(Side.WHITE)],
        captured_by_black=[k.value for k in game.captured_by(Side.BLACK)],
    )


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game
