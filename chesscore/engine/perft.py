from __future__ import annotations

from typing import Dict

from .movegen import legal_moves
from .position import Position


def perft(pos: Position, depth: int) -> int:
    """Compute the perft node count for ``pos`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1
    moves = legal_moves(pos)
    if depth == 1:
        return len(moves)
    return sum(perft(pos.apply_move(m), depth - 1) for m in moves)


def divide(pos: Position, depth: int) -> Dict[str, int]:
    """Per-root-move perft counts keyed by coordinate notation."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    return {m.to_uci(): perft(pos.apply_move(m), depth - 1) for m in legal_moves(pos)}
