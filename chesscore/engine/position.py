from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Tuple

from .errors import ParseError
from .move import Move, Piece, PieceKind, Side, parse_square, square_to_str


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

KNIGHT_OFFSETS = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
KING_OFFSETS = ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1))
BISHOP_DIRS = ((1, 1), (1, -1), (-1, 1), (-1, -1))
ROOK_DIRS = ((1, 0), (-1, 0), (0, 1), (0, -1))
QUEEN_DIRS = BISHOP_DIRS + ROOK_DIRS

SLIDER_DIRS = {
    PieceKind.BISHOP: BISHOP_DIRS,
    PieceKind.ROOK: ROOK_DIRS,
    PieceKind.QUEEN: QUEEN_DIRS,
}

# King and rook home squares.
A1, E1, H1 = 0, 4, 7
A8, E8, H8 = 56, 60, 63


def idx(file: int, rank: int) -> int:
    return rank * 8 + file


def on_board(file: int, rank: int) -> bool:
    return 0 <= file < 8 and 0 <= rank < 8


@dataclass(frozen=True)
class CastlingRights:
    white_king: bool = True
    white_queen: bool = True
    black_king: bool = True
    black_queen: bool = True

    @classmethod
    def from_fen(cls, field: str) -> "CastlingRights":
        # Read by containment: unknown letters are ignored.
        return cls("K" in field, "Q" in field, "k" in field, "q" in field)

    def to_fen(self) -> str:
        s = (
            ("K" if self.white_king else "")
            + ("Q" if self.white_queen else "")
            + ("k" if self.black_king else "")
            + ("q" if self.black_queen else "")
        )
        return s or "-"

    def kingside(self, side: Side) -> bool:
        return self.white_king if side is Side.WHITE else self.black_king

    def queenside(self, side: Side) -> bool:
        return self.white_queen if side is Side.WHITE else self.black_queen


_ROOK_HOME_RIGHT = {
    A1: "white_queen",
    H1: "white_king",
    A8: "black_queen",
    H8: "black_king",
}


@dataclass(frozen=True)
class Position:
    """Immutable board state for a single ply.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63), index = rank*8 + file.
    - Every move yields a new Position via ``apply_move``; nothing mutates
      in place, so hypothetical moves never disturb the real game state.
    """

    squares: Tuple[Optional[Piece], ...]
    side_to_move: Side = Side.WHITE
    castling: CastlingRights = CastlingRights()
    ep_square: Optional[int] = None
    halfmove_clock: int = 0
    fullmove_number: int = 1

    @classmethod
    def initial(cls) -> "Position":
        """Standard starting layout, White to move, all castling rights."""
        back = (
            PieceKind.ROOK,
            PieceKind.KNIGHT,
            PieceKind.BISHOP,
            PieceKind.QUEEN,
            PieceKind.KING,
            PieceKind.BISHOP,
            PieceKind.KNIGHT,
            PieceKind.ROOK,
        )
        sq: List[Optional[Piece]] = [None] * 64
        for f, kind in enumerate(back):
            sq[idx(f, 0)] = Piece(kind, Side.WHITE)
            sq[idx(f, 1)] = Piece(PieceKind.PAWN, Side.WHITE)
            sq[idx(f, 6)] = Piece(PieceKind.PAWN, Side.BLACK)
            sq[idx(f, 7)] = Piece(kind, Side.BLACK)
        return cls(squares=tuple(sq))

    @classmethod
    def from_fen(cls, fen: str) -> "Position":
        """Create a position from a Forsyth–Edwards Notation record.

        Args:
            fen (str): FEN text; at least placement, side, castling and
                en-passant fields.

        Returns:
            Position: Parsed position.

        Raises:
            ParseError: If there are fewer than 4 fields, not exactly 8 ranks,
                a rank that does not cover 8 squares, an unknown piece letter,
                or a side-to-move other than ``w``/``b``.

        Notes:
            Castling letters are read by containment and an unreadable
            en-passant square counts as absent. Halfmove/fullmove counters are
            optional and fall back to 0/1 when they are not integers.
        """
        if not isinstance(fen, str):
            raise ParseError("FEN must be a string")
        parts = fen.strip().split()
        if len(parts) < 4:
            raise ParseError(f"FEN needs at least 4 fields: {fen!r}")

        ranks = parts[0].split("/")
        if len(ranks) != 8:
            raise ParseError(f"FEN board must have 8 ranks: {fen!r}")
        sq: List[Optional[Piece]] = [None] * 64
        for rank_idx, row in enumerate(reversed(ranks)):
            file_idx = 0
            for ch in row:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ParseError(f"invalid empty count {ch!r} in FEN rank {rank_idx + 1}")
                    file_idx += n
                    continue
                try:
                    piece = Piece.from_symbol(ch)
                except ValueError:
                    raise ParseError(f"bad piece char in FEN: {ch!r}") from None
                if file_idx >= 8:
                    raise ParseError(f"too many squares in FEN rank {rank_idx + 1}")
                sq[idx(file_idx, rank_idx)] = piece
                file_idx += 1
            if file_idx != 8:
                raise ParseError(f"FEN rank {rank_idx + 1} does not sum to 8 squares")

        stm = parts[1]
        if stm not in ("w", "b"):
            raise ParseError(f"side to move must be 'w' or 'b', got {stm!r}")

        ep = parse_square(parts[3]) if parts[3] != "-" else -1

        halfmove_clock = _int_or(parts[4], 0) if len(parts) >= 5 else 0
        fullmove_number = _int_or(parts[5], 1) if len(parts) >= 6 else 1

        return cls(
            squares=tuple(sq),
            side_to_move=Side(stm),
            castling=CastlingRights.from_fen(parts[2]),
            ep_square=ep if ep >= 0 else None,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
        )

    def to_fen(self) -> str:
        """Serialize the position into a 6-field FEN string."""
        rows: List[str] = []
        for rank_idx in range(7, -1, -1):
            run = 0
            row = []
            for file_idx in range(8):
                p = self.squares[idx(file_idx, rank_idx)]
                if p is None:
                    run += 1
                    continue
                if run:
                    row.append(str(run))
                    run = 0
                row.append(p.symbol)
            if run:
                row.append(str(run))
            rows.append("".join(row))
        ep = square_to_str(self.ep_square) if self.ep_square is not None else "-"
        return (
            f"{'/'.join(rows)} {self.side_to_move.value} {self.castling.to_fen()} {ep} "
            f"{self.halfmove_clock} {self.fullmove_number}"
        )

    # --- Queries ---
    def piece_at(self, sq: int) -> Optional[Piece]:
        if 0 <= sq < 64:
            return self.squares[sq]
        return None

    def pieces(self, side: Optional[Side] = None) -> Iterator[Tuple[int, Piece]]:
        """Yield ``(square, piece)`` for occupied squares, optionally for one side."""
        for sq, p in enumerate(self.squares):
            if p is not None and (side is None or p.side is side):
                yield sq, p

    def king_square(self, side: Side) -> int:
        """Square of ``side``'s king, or -1 when there is none."""
        for sq, p in enumerate(self.squares):
            if p is not None and p.kind is PieceKind.KING and p.side is side:
                return sq
        return -1

    def is_in_check(self, side: Optional[Side] = None) -> bool:
        """Return True if ``side`` (default: side to move) has its king attacked."""
        s = self.side_to_move if side is None else side
        k = self.king_square(s)
        if k < 0:
            return False
        return self.is_square_attacked(k, s.opposite())

    def is_square_attacked(self, target: int, by: Side) -> bool:
        """Return True if any piece of ``by`` attacks ``target``.

        Pawns attack diagonally forward, knights and the king by fixed
        offsets, sliders along their rays up to the first occupied square.
        """
        tx, ty = target % 8, target // 8
        for sq, p in self.pieces(by):
            x, y = sq % 8, sq // 8
            kind = p.kind
            if kind is PieceKind.PAWN:
                if y + by.forward == ty and abs(x - tx) == 1:
                    return True
            elif kind is PieceKind.KNIGHT:
                for dx, dy in KNIGHT_OFFSETS:
                    if x + dx == tx and y + dy == ty:
                        return True
            elif kind is PieceKind.KING:
                if sq != target and abs(x - tx) <= 1 and abs(y - ty) <= 1:
                    return True
            else:
                for dx, dy in SLIDER_DIRS[kind]:
                    fx, fy = x + dx, y + dy
                    while on_board(fx, fy):
                        j = idx(fx, fy)
                        if j == target:
                            return True
                        if self.squares[j] is not None:
                            break
                        fx += dx
                        fy += dy
        return False

    # --- Transitions ---
    def apply_move(self, move: Move) -> "Position":
        """Return the position after ``move``; the receiver is left untouched.

        No legality check is made here. Callers should only apply moves taken
        from ``legal_moves``; anything else yields a rules-inconsistent
        position.
        """
        sq = list(self.squares)
        mover = sq[move.from_sq]
        if mover is None:
            raise ValueError(f"no piece on {square_to_str(move.from_sq)}")
        side = mover.side
        captured = sq[move.to_sq]
        rights = self.castling
        ep_square: Optional[int] = None

        is_pawn = mover.kind is PieceKind.PAWN
        halfmove = 0 if (is_pawn or move.capture or captured is not None) else self.halfmove_clock + 1

        if move.is_castle:
            home = E1 if side is Side.WHITE else E8
            if move.castle_kingside:
                king_to, rook_from, rook_to = home + 2, home + 3, home + 1
            else:
                king_to, rook_from, rook_to = home - 2, home - 4, home - 1
            sq[home] = None
            sq[rook_from] = None
            sq[king_to] = Piece(PieceKind.KING, side)
            sq[rook_to] = Piece(PieceKind.ROOK, side)
        elif move.en_passant:
            sq[move.from_sq] = None
            sq[move.to_sq] = mover
            sq[move.to_sq - 8 * side.forward] = None
        else:
            sq[move.from_sq] = None
            if move.promotion is not None:
                sq[move.to_sq] = Piece(move.promotion, side)
            else:
                sq[move.to_sq] = mover
            if is_pawn and abs(move.to_sq - move.from_sq) == 16:
                ep_square = move.from_sq + 8 * side.forward

        if mover.kind is PieceKind.KING:
            if side is Side.WHITE:
                rights = replace(rights, white_king=False, white_queen=False)
            else:
                rights = replace(rights, black_king=False, black_queen=False)
        elif mover.kind is PieceKind.ROOK and move.from_sq in _ROOK_HOME_RIGHT:
            rights = replace(rights, **{_ROOK_HOME_RIGHT[move.from_sq]: False})
        if captured is not None and captured.kind is PieceKind.ROOK and move.to_sq in _ROOK_HOME_RIGHT:
            rights = replace(rights, **{_ROOK_HOME_RIGHT[move.to_sq]: False})

        return Position(
            squares=tuple(sq),
            side_to_move=side.opposite(),
            castling=rights,
            ep_square=ep_square,
            halfmove_clock=halfmove,
            fullmove_number=self.fullmove_number + (1 if side is Side.BLACK else 0),
        )


def _int_or(text: str, default: int) -> int:
    try:
        return int(text)
    except ValueError:
        return default
