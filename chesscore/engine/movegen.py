from __future__ import annotations

from typing import List

from .move import PROMOTION_KINDS, Move, PieceKind, Side, parse_uci
from .position import (
    E1,
    E8,
    KING_OFFSETS,
    KNIGHT_OFFSETS,
    SLIDER_DIRS,
    Position,
    idx,
    on_board,
)


def pseudo_moves(pos: Position) -> List[Move]:
    """Return candidate moves for the side to move.

    Moves obey piece movement rules but may leave the mover's own king in
    check. Castling is the exception: it is only generated when the king's
    start, transit and destination squares are all safe.
    """
    moves: List[Move] = []
    me = pos.side_to_move
    opp = me.opposite()
    squares = pos.squares

    for i, p in pos.pieces(me):
        x, y = i % 8, i // 8
        kind = p.kind
        if kind is PieceKind.PAWN:
            _pawn_moves(pos, i, moves)
        elif kind is PieceKind.KNIGHT or kind is PieceKind.KING:
            offsets = KNIGHT_OFFSETS if kind is PieceKind.KNIGHT else KING_OFFSETS
            for dx, dy in offsets:
                nx, ny = x + dx, y + dy
                if not on_board(nx, ny):
                    continue
                j = idx(nx, ny)
                target = squares[j]
                if target is None:
                    moves.append(Move(i, j))
                elif target.side is opp:
                    moves.append(Move(i, j, capture=True))
            if kind is PieceKind.KING:
                _castling_moves(pos, i, moves)
        else:
            for dx, dy in SLIDER_DIRS[kind]:
                nx, ny = x + dx, y + dy
                while on_board(nx, ny):
                    j = idx(nx, ny)
                    target = squares[j]
                    if target is None:
                        moves.append(Move(i, j))
                    else:
                        if target.side is opp:
                            moves.append(Move(i, j, capture=True))
                        break
                    nx += dx
                    ny += dy
    return moves


def _pawn_moves(pos: Position, i: int, moves: List[Move]) -> None:
    me = pos.side_to_move
    squares = pos.squares
    x, y = i % 8, i // 8
    step = me.forward
    start_rank = 1 if me is Side.WHITE else 6
    promote_from = 6 if me is Side.WHITE else 1
    ny = y + step

    if on_board(x, ny) and squares[idx(x, ny)] is None:
        to = idx(x, ny)
        if y == promote_from:
            _add_promotions(moves, i, to, capture=False)
        else:
            moves.append(Move(i, to))
        if y == start_rank:
            to2 = idx(x, y + 2 * step)
            if squares[to2] is None:
                moves.append(Move(i, to2))

    for dx in (-1, 1):
        nx = x + dx
        if not on_board(nx, ny):
            continue
        j = idx(nx, ny)
        target = squares[j]
        if target is not None and target.side is not me:
            if y == promote_from:
                _add_promotions(moves, i, j, capture=True)
            else:
                moves.append(Move(i, j, capture=True))

    ep = pos.ep_square
    if ep is not None and ep // 8 == ny and abs(ep % 8 - x) == 1:
        moves.append(Move(i, ep, en_passant=True, capture=True))


def _add_promotions(moves: List[Move], frm: int, to: int, *, capture: bool) -> None:
    for kind in PROMOTION_KINDS:
        moves.append(Move(frm, to, promotion=kind, capture=capture))


def _castling_moves(pos: Position, king_sq: int, moves: List[Move]) -> None:
    me = pos.side_to_move
    home = E1 if me is Side.WHITE else E8
    if king_sq != home:
        return
    opp = me.opposite()
    squares = pos.squares

    def own_rook_on(sq: int) -> bool:
        p = squares[sq]
        return p is not None and p.kind is PieceKind.ROOK and p.side is me

    # The king's current square is part of the safety check: no castling out of check.
    if (
        pos.castling.kingside(me)
        and squares[home + 1] is None
        and squares[home + 2] is None
        and own_rook_on(home + 3)
        and not any(pos.is_square_attacked(s, opp) for s in (home, home + 1, home + 2))
    ):
        moves.append(Move(home, home + 2, castle_kingside=True))
    if (
        pos.castling.queenside(me)
        and squares[home - 1] is None
        and squares[home - 2] is None
        and squares[home - 3] is None
        and own_rook_on(home - 4)
        and not any(pos.is_square_attacked(s, opp) for s in (home, home - 1, home - 2))
    ):
        moves.append(Move(home, home - 2, castle_queenside=True))


def legal_moves(pos: Position) -> List[Move]:
    """Return the pseudo-legal moves that do not leave the mover's king in check.

    Every candidate is applied to a fresh Position and rejected when the
    mover's king is attacked afterwards. There is no pin shortcut.
    """
    me = pos.side_to_move
    return [m for m in pseudo_moves(pos) if not pos.apply_move(m).is_in_check(me)]


def resolve_uci_move(pos: Position, token: str) -> Move:
    """Map a coordinate move token (e.g. from an external engine) to a Move.

    Returns the legal move with matching origin, destination and promotion.
    When none matches, an unvalidated Move built from the token is returned.

    Raises:
        ValueError: If ``token`` is not a well-formed coordinate move.
    """
    parsed = parse_uci(token.strip())
    for m in legal_moves(pos):
        if m.from_sq == parsed.from_sq and m.to_sq == parsed.to_sq and m.promotion == parsed.promotion:
            return m
    return parsed
