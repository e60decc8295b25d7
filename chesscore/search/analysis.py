from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from chesscore.engine.game import PlyRecord
from chesscore.engine.move import Side
from chesscore.search.service import MATE, SearchService


logger = logging.getLogger(__name__)

MATE_CP = 10_000

# Upper bound of centipawn loss for each label, checked in order.
CLASSIFICATION = (
    (20, "Best"),
    (60, "Excellent"),
    (100, "Good"),
    (200, "Inaccuracy"),
    (400, "Mistake"),
)
BLUNDER = "Blunder"


@dataclass(frozen=True)
class MoveAnalysis:
    ply_index: int
    move_number: int
    side: Side
    move: str
    best: str
    loss_cp: int
    eval_after_white: int
    label: str


@dataclass
class AnalysisResult:
    rows: List[MoveAnalysis] = field(default_factory=list)
    accuracy_white: float = 100.0
    accuracy_black: float = 100.0
    acpl_white: int = 0
    acpl_black: int = 0
    truncated: bool = False
    analyzed: int = 0
    total: int = 0


def to_cp(score: int) -> int:
    """Clamp mate scores to +/-MATE_CP so losses stay comparable."""
    if abs(score) >= MATE // 2:
        return MATE_CP if score > 0 else -MATE_CP
    return score


def classify(loss_cp: int) -> str:
    loss = abs(loss_cp)
    for bound, label in CLASSIFICATION:
        if loss <= bound:
            return label
    return BLUNDER


def accuracy(acpl: int) -> float:
    # Half-up rounding to one decimal.
    return math.floor(max(0.0, 100.0 - acpl / 12.0) * 10 + 0.5) / 10


def analyze_game(
    plies: Sequence[PlyRecord],
    service: Optional[SearchService] = None,
    *,
    depth: int = 3,
    top_k: int = 8,
    max_plies: int = 80,
    time_budget_ms: Optional[int] = 20_000,
    clock: Callable[[], float] = time.monotonic,
) -> AnalysisResult:
    """Quick post-game analysis of the last ``max_plies`` moves.

    For each ply the played move is scored against an approximate best score
    (top-K root moves only). The time budget is checked between plies, never
    inside a search; once exceeded the loop stops and the result is marked
    truncated.
    """
    service = service or SearchService(depth)
    total = len(plies)
    start_index = max(0, total - max(0, max_plies))
    result = AnalysisResult(total=total - start_index)
    if total == 0:
        return result

    losses: Dict[Side, List[int]] = {Side.WHITE: [], Side.BLACK: []}
    started = clock()

    for i in range(start_index, total):
        rec = plies[i]
        mover = rec.before.side_to_move
        best_score = service.best_score_approx(rec.before, depth, top_k)
        chosen_score = service.score_move(rec.before, rec.move, depth)

        loss = max(0, to_cp(best_score) - to_cp(chosen_score))
        eval_after_white = to_cp(chosen_score) if mover is Side.WHITE else -to_cp(chosen_score)

        # A one-ply ranking is enough for the suggested-move column.
        root = service.analyze_root(rec.before, 1)
        best_str = root[0].move.notation() if root else rec.move.notation()

        result.rows.append(
            MoveAnalysis(
                ply_index=i,
                move_number=rec.before.fullmove_number,
                side=mover,
                move=rec.move.notation(),
                best=best_str,
                loss_cp=loss,
                eval_after_white=eval_after_white,
                label=classify(loss),
            )
        )
        losses[mover].append(loss)
        result.analyzed += 1

        if time_budget_ms is not None and (clock() - started) * 1000 > time_budget_ms:
            result.truncated = True
            logger.info(
                "analysis truncated",
                extra={"analyzed": result.analyzed, "total": result.total},
            )
            break

    result.acpl_white = _mean(losses[Side.WHITE])
    result.acpl_black = _mean(losses[Side.BLACK])
    result.accuracy_white = accuracy(result.acpl_white)
    result.accuracy_black = accuracy(result.acpl_black)
    return result


def _mean(values: List[int]) -> int:
    if not values:
        return 0
    n = len(values)
    return (2 * sum(values) + n) // (2 * n)
