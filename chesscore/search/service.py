from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from chesscore.engine.move import Move
from chesscore.engine.movegen import legal_moves
from chesscore.engine.position import Position
from chesscore.eval import evaluate_relative


logger = logging.getLogger(__name__)

MATE = 1_000_000  # mate scores are MATE - ply; far outside any material swing
INF = 10_000_000
MATE_THRESHOLD = MATE - 1_000


@dataclass(frozen=True)
class ScoredMove:
    move: Move
    score: int


@dataclass
class SearchStats:
    """Per-call counters; one instance per top-level search, never shared."""

    nodes: int = 0


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score_cp: Optional[int]
    mate_in: Optional[int]
    nodes: int
    depth: int
    time_ms: int


def order_moves(moves: List[Move]) -> List[Move]:
    """Captures and promotions first; stable otherwise."""
    return sorted(moves, key=lambda m: not (m.capture or m.is_promotion))


def negamax(
    pos: Position,
    depth: int,
    alpha: int,
    beta: int,
    ply: int,
    stats: Optional[SearchStats] = None,
) -> int:
    """Fail-soft negamax with alpha-beta pruning.

    Returns the score from the side to move's perspective. A mated side scores
    ``-(MATE - ply)`` so that nearer mates rank above distant ones; stalemate
    scores 0.
    """
    if stats is not None:
        stats.nodes += 1
    if depth <= 0:
        return evaluate_relative(pos)
    moves = legal_moves(pos)
    if not moves:
        if pos.is_in_check():
            return -(MATE - ply)
        return 0
    best = -INF
    for m in order_moves(moves):
        val = -negamax(pos.apply_move(m), depth - 1, -beta, -alpha, ply + 1, stats)
        if val > best:
            best = val
        if val > alpha:
            alpha = val
        if alpha >= beta:
            break
    return best


def mate_distance(score: int) -> Optional[int]:
    """Moves to mate for a mate score (negative when being mated), else None."""
    if abs(score) < MATE_THRESHOLD:
        return None
    plies = MATE - abs(score)
    moves = (plies + 1) // 2
    return moves if score > 0 else -moves


class SearchService:
    """Depth-limited negamax search over immutable positions.

    The service holds only its configured depth. Every call is independent,
    so one instance can be shared across threads.
    """

    def __init__(self, depth: int = 3) -> None:
        self._depth = max(1, int(depth))

    @property
    def depth(self) -> int:
        return self._depth

    @depth.setter
    def depth(self, value: int) -> None:
        self._depth = max(1, int(value))

    def _resolve_depth(self, depth: Optional[int]) -> int:
        return self._depth if depth is None else max(1, int(depth))

    def score_move(
        self,
        pos: Position,
        move: Move,
        depth: Optional[int] = None,
        stats: Optional[SearchStats] = None,
    ) -> int:
        """Score of playing ``move`` from the mover's perspective."""
        d = self._resolve_depth(depth)
        return -negamax(pos.apply_move(move), d - 1, -MATE, MATE, 1, stats)

    def find_best_move(self, pos: Position, depth: Optional[int] = None) -> Optional[Move]:
        """Best move for the side to move, or None when there are no legal moves.

        The caller tells checkmate from stalemate with ``pos.is_in_check()``.
        """
        return self.search(pos, depth).best_move

    def search(self, pos: Position, depth: Optional[int] = None) -> SearchResult:
        d = self._resolve_depth(depth)
        stats = SearchStats()
        start = time.perf_counter()
        moves = legal_moves(pos)
        best_move: Optional[Move] = None
        best_score = -INF
        if moves:
            for m in order_moves(moves):
                s = self.score_move(pos, m, d, stats)
                if s > best_score:
                    best_score, best_move = s, m
        elif pos.is_in_check():
            best_score = -MATE
        else:
            best_score = 0
        time_ms = int((time.perf_counter() - start) * 1000)

        mate_in = mate_distance(best_score)
        score_cp = None if mate_in is not None else best_score
        logger.debug(
            "search done",
            extra={
                "depth": d,
                "nodes": stats.nodes,
                "time_ms": time_ms,
                "best_move": best_move.to_uci() if best_move else None,
            },
        )
        return SearchResult(
            best_move=best_move,
            score_cp=score_cp,
            mate_in=mate_in,
            nodes=stats.nodes,
            depth=d,
            time_ms=time_ms,
        )

    def analyze_root(self, pos: Position, depth: Optional[int] = None) -> List[ScoredMove]:
        """Score every root move; sorted by descending score (stable for ties)."""
        d = self._resolve_depth(depth)
        scored = [ScoredMove(m, self.score_move(pos, m, d)) for m in legal_moves(pos)]
        scored.sort(key=lambda sm: sm.score, reverse=True)
        return scored

    def best_score_approx(self, pos: Position, depth: Optional[int] = None, top_k: int = 8) -> int:
        """Best score among the first ``top_k`` ordered root moves.

        Moves outside the slice are skipped entirely, so the result can miss
        the true best move; it never exceeds the full root search's score.
        Returns 0 when there are no legal moves.
        """
        d = self._resolve_depth(depth)
        moves = order_moves(legal_moves(pos))
        if not moves:
            return 0
        limit = min(max(1, top_k), len(moves))
        return max(self.score_move(pos, m, d) for m in moves[:limit])
