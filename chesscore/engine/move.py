from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


INVALID_SQUARE = -1


class Side(Enum):
    WHITE = "w"
    BLACK = "b"

    def opposite(self) -> "Side":
        return Side.BLACK if self is Side.WHITE else Side.WHITE

    @property
    def forward(self) -> int:
        """Rank direction pawns of this side advance in."""
        return 1 if self is Side.WHITE else -1


class PieceKind(Enum):
    KING = "k"
    QUEEN = "q"
    ROOK = "r"
    BISHOP = "b"
    KNIGHT = "n"
    PAWN = "p"


# Promotion order matters: generated promotions follow it.
PROMOTION_KINDS = (PieceKind.QUEEN, PieceKind.ROOK, PieceKind.BISHOP, PieceKind.KNIGHT)
PROMOTION_PIECES = {k.value: k for k in PROMOTION_KINDS}


@dataclass(frozen=True)
class Piece:
    kind: PieceKind
    side: Side

    @property
    def symbol(self) -> str:
        """FEN letter: uppercase for White, lowercase for Black."""
        ch = self.kind.value
        return ch.upper() if self.side is Side.WHITE else ch

    @classmethod
    def from_symbol(cls, ch: str) -> "Piece":
        kind = PieceKind(ch.lower())
        return cls(kind, Side.WHITE if ch.isupper() else Side.BLACK)


@dataclass(frozen=True)
class Move:
    """One ply transition.

    Attributes:
        from_sq (int): Origin square index (0-based, a1=0).
        to_sq (int): Destination square index.
        promotion (Optional[PieceKind]): Piece a pawn promotes to, if any.
        castle_kingside (bool): King-side castling; ``to_sq`` is the king's target.
        castle_queenside (bool): Queen-side castling.
        en_passant (bool): En-passant capture onto the recorded target square.
        capture (bool): Any capture, en passant included.
    """

    from_sq: int
    to_sq: int
    promotion: Optional[PieceKind] = None
    castle_kingside: bool = False
    castle_queenside: bool = False
    en_passant: bool = False
    capture: bool = False

    def __post_init__(self) -> None:
        if self.en_passant and not self.capture:
            object.__setattr__(self, "capture", True)

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    @property
    def is_castle(self) -> bool:
        return self.castle_kingside or self.castle_queenside

    def to_uci(self) -> str:
        """Serialize the move into coordinate form.

        Returns:
            str: Move encoded like ``"e2e4"``, ``"e1g1"`` or ``"e7e8q"``.
        """
        promo = self.promotion.value if self.promotion is not None else ""
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo

    def notation(self) -> str:
        """Human-facing rendering; castling shows as ``O-O`` / ``O-O-O``."""
        if self.castle_kingside:
            return "O-O"
        if self.castle_queenside:
            return "O-O-O"
        return self.to_uci()

    def __str__(self) -> str:
        return self.to_uci()


def parse_uci(uci: str) -> Move:
    """Parse a coordinate move string into an unflagged Move.

    Args:
        uci (str): Move encoded in coordinate notation (e.g. ``"e2e4"``).

    Returns:
        Move: Parsed move carrying only squares and promotion.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"invalid UCI move length: {uci!r}")
    from_sq = str_to_square(uci[0:2])
    to_sq = str_to_square(uci[2:4])
    promo: Optional[PieceKind] = None
    if len(uci) == 5:
        ch = uci[4].lower()
        if ch not in PROMOTION_PIECES:
            raise ValueError(f"invalid promotion piece: {ch!r}")
        promo = PROMOTION_PIECES[ch]
    return Move(from_sq, to_sq, promo)


def parse_square(s: str) -> int:
    """Lenient square parser; returns ``INVALID_SQUARE`` for malformed input."""
    try:
        return str_to_square(s)
    except ValueError:
        return INVALID_SQUARE


def str_to_square(s: str) -> int:
    """Convert algebraic notation into a 0-based square index.

    Args:
        s (str): Square name such as ``"e4"``.

    Returns:
        int: Zero-based square index.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if not isinstance(s, str) or len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    file = ord(s[0]) - ord("a")
    rank = int(s[1]) - 1
    return rank * 8 + file


def square_to_str(idx: int) -> str:
    """Convert a 0-based square index into algebraic notation.

    Raises:
        ValueError: If ``idx`` is outside the valid square range.
    """
    if idx < 0 or idx > 63:
        raise ValueError(f"invalid square index: {idx}")
    file = idx % 8
    rank = idx // 8
    return chr(ord("a") + file) + str(rank + 1)
