"""Static evaluation: material, piece-square tables and mobility.

Pure, deterministic, and side-effect free. Scores are centipawns from White's
point of view.
"""

from __future__ import annotations

from typing import Dict, Final, Tuple

from chesscore.engine.move import Piece, PieceKind, Side
from chesscore.engine.movegen import legal_moves
from chesscore.engine.position import Position


# Material values in centipawns
P_VAL: Final = 100
N_VAL: Final = 320
B_VAL: Final = 330
R_VAL: Final = 500
Q_VAL: Final = 900
K_VAL: Final = 0

MATERIAL: Final[Dict[PieceKind, int]] = {
    PieceKind.PAWN: P_VAL,
    PieceKind.KNIGHT: N_VAL,
    PieceKind.BISHOP: B_VAL,
    PieceKind.ROOK: R_VAL,
    PieceKind.QUEEN: Q_VAL,
    PieceKind.KING: K_VAL,
}

# One point of mobility per this many legal moves of the side to move.
MOBILITY_DIVISOR: Final = 3

# Piece-square tables as seen from White, laid out visually: first row is
# rank 8, last row is rank 1. Black uses the same tables mirrored vertically.
# fmt: off
PST_PAWN: Final[Tuple[int, ...]] = (
     0,  0,  0,  0,  0,  0,  0,  0,
    50, 50, 50, 50, 50, 50, 50, 50,
    10, 10, 20, 30, 30, 20, 10, 10,
     5,  5, 10, 25, 25, 10,  5,  5,
     0,  0,  0, 20, 20,  0,  0,  0,
     5, -5,-10,  0,  0,-10, -5,  5,
     5, 10, 10,-20,-20, 10, 10,  5,
     0,  0,  0,  0,  0,  0,  0,  0,
)
PST_KNIGHT: Final[Tuple[int, ...]] = (
   -50,-40,-30,-30,-30,-30,-40,-50,
   -40,-20,  0,  0,  0,  0,-20,-40,
   -30,  0, 10, 15, 15, 10,  0,-30,
   -30,  5, 15, 20, 20, 15,  5,-30,
   -30,  0, 15, 20, 20, 15,  0,-30,
   -30,  5, 10, 15, 15, 10,  5,-30,
   -40,-20,  0,  5,  5,  0,-20,-40,
   -50,-40,-30,-30,-30,-30,-40,-50,
)
PST_BISHOP: Final[Tuple[int, ...]] = (
   -20,-10,-10,-10,-10,-10,-10,-20,
   -10,  0,  0,  0,  0,  0,  0,-10,
   -10,  0,  5, 10, 10,  5,  0,-10,
   -10,  5,  5, 10, 10,  5,  5,-10,
   -10,  0, 10, 10, 10, 10,  0,-10,
   -10, 10, 10, 10, 10, 10, 10,-10,
   -10,  5,  0,  0,  0,  0,  5,-10,
   -20,-10,-10,-10,-10,-10,-10,-20,
)
PST_ROOK: Final[Tuple[int, ...]] = (
     0,  0,  0,  0,  0,  0,  0,  0,
     5, 10, 10, 10, 10, 10, 10,  5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
     0,  0,  0,  5,  5,  0,  0,  0,
)
PST_QUEEN: Final[Tuple[int, ...]] = (
   -20,-10,-10, -5, -5,-10,-10,-20,
   -10,  0,  0,  0,  0,  0,  0,-10,
   -10,  0,  5,  5,  5,  5,  0,-10,
    -5,  0,  5,  5,  5,  5,  0, -5,
     0,  0,  5,  5,  5,  5,  0, -5,
   -10,  5,  5,  5,  5,  5,  0,-10,
   -10,  0,  5,  0,  0,  0,  0,-10,
   -20,-10,-10, -5, -5,-10,-10,-20,
)
PST_KING: Final[Tuple[int, ...]] = (
   -30,-40,-40,-50,-50,-40,-40,-30,
   -30,-40,-40,-50,-50,-40,-40,-30,
   -30,-40,-40,-50,-50,-40,-40,-30,
   -30,-40,-40,-50,-50,-40,-40,-30,
   -20,-30,-30,-40,-40,-30,-30,-20,
   -10,-20,-20,-20,-20,-20,-20,-10,
    20, 20,  0,  0,  0,  0, 20, 20,
    20, 30, 10,  0,  0, 10, 30, 20,
)
# fmt: on

PST: Final[Dict[PieceKind, Tuple[int, ...]]] = {
    PieceKind.PAWN: PST_PAWN,
    PieceKind.KNIGHT: PST_KNIGHT,
    PieceKind.BISHOP: PST_BISHOP,
    PieceKind.ROOK: PST_ROOK,
    PieceKind.QUEEN: PST_QUEEN,
    PieceKind.KING: PST_KING,
}


def _mirror_sq(sq: int) -> int:
    # Flip vertically (rank mirror)
    f = sq % 8
    r = sq // 8
    return (7 - r) * 8 + f


def material_value(kind: PieceKind) -> int:
    return MATERIAL[kind]


def positional_value(piece: Piece, sq: int) -> int:
    """Piece-square bonus for ``piece`` on ``sq`` from its owner's point of view."""
    table = PST[piece.kind]
    # Tables are stored rank 8 first, so White reads them through the mirror.
    return table[_mirror_sq(sq)] if piece.side is Side.WHITE else table[sq]


def mobility(pos: Position) -> int:
    """Mobility bonus for the side to move, signed from White's view.

    Only the side to move is counted; having the move is itself treated as
    an advantage.
    """
    bonus = len(legal_moves(pos)) // MOBILITY_DIVISOR
    return bonus if pos.side_to_move is Side.WHITE else -bonus


def evaluate(pos: Position) -> int:
    """Return a static evaluation in centipawns (positive favors White)."""
    score = 0
    for sq, p in pos.pieces():
        s = MATERIAL[p.kind] + positional_value(p, sq)
        score += s if p.side is Side.WHITE else -s
    return score + mobility(pos)


def evaluate_relative(pos: Position) -> int:
    """Static evaluation from the side to move's perspective."""
    score = evaluate(pos)
    return score if pos.side_to_move is Side.WHITE else -score
