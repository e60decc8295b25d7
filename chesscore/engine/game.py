from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import IllegalMoveError
from .move import Move, PieceKind, Side
from .movegen import legal_moves
from .position import Position


@dataclass(frozen=True)
class PlyRecord:
    """A move as played, together with the position it was played from."""

    before: Position
    move: Move


@dataclass
class Game:
    """Game wrapper around a sequence of positions.

    Responsibility: track the current position, expose legal moves, apply and
    undo moves. Positions are immutable, so undo just restores the previous one.
    """

    position: Position
    plies: List[PlyRecord] = field(default_factory=list)
    captured: List[Optional[PieceKind]] = field(default_factory=list, repr=False)

    @classmethod
    def new(cls) -> "Game":
        return cls(position=Position.initial())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        return cls(position=Position.from_fen(fen))

    def to_fen(self) -> str:
        return self.position.to_fen()

    def legal_moves(self) -> List[Move]:
        return legal_moves(self.position)

    def apply_move(self, move: Move) -> Move:
        """Play ``move`` if legal and return the matching generated Move.

        ``move`` is matched on origin, destination and promotion, so a bare
        parsed move picks up the castling/en-passant/capture flags here.

        Raises:
            IllegalMoveError: If no legal move matches.
        """
        played = next(
            (
                m
                for m in self.legal_moves()
                if m.from_sq == move.from_sq and m.to_sq == move.to_sq and m.promotion == move.promotion
            ),
            None,
        )
        if played is None:
            raise IllegalMoveError(f"illegal move: {move.to_uci()}")
        before = self.position
        if played.en_passant:
            victim = before.piece_at(played.to_sq - 8 * before.side_to_move.forward)
        else:
            victim = before.piece_at(played.to_sq)
        self.captured.append(victim.kind if victim is not None else None)
        self.plies.append(PlyRecord(before, played))
        self.position = before.apply_move(played)
        return played

    def undo_move(self) -> Move:
        if not self.plies:
            raise ValueError("no moves to undo")
        last = self.plies.pop()
        self.captured.pop()
        self.position = last.before
        return last.move

    # --- State flags for protocol ---
    def in_check(self) -> bool:
        return self.position.is_in_check()

    def checkmate(self) -> bool:
        return not self.legal_moves() and self.in_check()

    def stalemate(self) -> bool:
        return not self.legal_moves() and not self.in_check()

    def last_move(self) -> Optional[Move]:
        return self.plies[-1].move if self.plies else None

    def move_history(self) -> List[str]:
        return [r.move.to_uci() for r in self.plies]

    def captured_by(self, side: Side) -> List[PieceKind]:
        """Kinds of the pieces ``side`` has captured, in capture order."""
        return [
            kind
            for rec, kind in zip(self.plies, self.captured)
            if kind is not None and rec.before.side_to_move is side
        ]
