"""chesscore: chess rules, static evaluation and negamax search."""

__version__ = "0.1.0"
