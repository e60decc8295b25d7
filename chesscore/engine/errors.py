from __future__ import annotations


class ParseError(ValueError):
    """Raised when a FEN record is structurally invalid."""


class IllegalMoveError(ValueError):
    """Raised by the game layer when a move is not legal in the current position."""
