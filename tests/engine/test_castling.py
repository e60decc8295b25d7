from __future__ import annotations

from chesscore.engine.move import PieceKind, Side, parse_uci, str_to_square
from chesscore.engine.movegen import legal_moves
from chesscore.engine.position import Position


def moves_set(pos: Position) -> set[str]:
    return {m.to_uci() for m in legal_moves(pos)}


def test_white_castling_available_when_clear_and_not_in_check() -> None:
    ms = moves_set(Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"))
    assert "e1g1" in ms
    assert "e1c1" in ms


def test_black_castling_available() -> None:
    ms = moves_set(Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1"))
    assert "e8g8" in ms
    assert "e8c8" in ms


def test_white_castling_blocked_when_in_check() -> None:
    # A black rook on e8 gives check on e1
    ms = moves_set(Position.from_fen("4r1k1/8/8/8/8/8/8/R3K2R w KQ - 0 1"))
    assert "e1g1" not in ms
    assert "e1c1" not in ms


def test_cannot_castle_through_attacked_square() -> None:
    ms = moves_set(Position.from_fen("2k2r2/8/8/8/8/8/8/R3K2R w KQ - 0 1"))
    assert "e1g1" not in ms
    assert "e1c1" in ms


def test_cannot_castle_into_attacked_square() -> None:
    ms = moves_set(Position.from_fen("2k3r1/8/8/8/8/8/8/R3K2R w KQ - 0 1"))
    assert "e1g1" not in ms
    assert "e1c1" in ms


def test_queenside_b_file_attack_does_not_matter() -> None:
    ms = moves_set(Position.from_fen("1r2k3/8/8/8/8/8/8/R3K2R w KQ - 0 1"))
    assert "e1c1" in ms


def test_no_castling_without_rights_or_rook_or_space() -> None:
    assert "e1g1" not in moves_set(Position.from_fen("4k3/8/8/8/8/8/8/R3K2R w Q - 0 1"))
    assert "e1g1" not in moves_set(Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w KQ - 0 1"))
    assert "e1c1" not in moves_set(Position.from_fen("4k3/8/8/8/8/8/8/RN2K2R w KQ - 0 1"))


def test_castling_moves_rook_correctly() -> None:
    pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    mv = next(m for m in legal_moves(pos) if m.to_uci() == "e1g1")
    assert mv.castle_kingside
    after = pos.apply_move(mv)

    king = after.piece_at(str_to_square("g1"))
    rook = after.piece_at(str_to_square("f1"))
    assert king is not None and king.kind is PieceKind.KING
    assert rook is not None and rook.kind is PieceKind.ROOK and rook.side is Side.WHITE
    assert after.piece_at(str_to_square("h1")) is None
    assert after.piece_at(str_to_square("e1")) is None
    assert after.castling.to_fen() == "kq"


def test_black_queenside_castle_moves_rook() -> None:
    pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1")
    mv = next(m for m in legal_moves(pos) if m.to_uci() == "e8c8")
    assert mv.castle_queenside
    after = pos.apply_move(mv)
    assert after.to_fen().split()[0] == "2kr3r/8/8/8/8/8/8/R3K2R"
    assert after.castling.to_fen() == "KQ"


def test_rights_revoked_when_rook_moves_or_is_captured() -> None:
    pos = Position.from_fen("r3k2r/8/8/8/8/8/6B1/R3K2R w KQkq - 0 1")
    after_rook = pos.apply_move(parse_uci("h1h5"))
    assert after_rook.castling.to_fen() == "Qkq"

    bishop_takes = next(m for m in legal_moves(pos) if m.to_uci() == "g2a8")
    assert bishop_takes.capture
    assert pos.apply_move(bishop_takes).castling.to_fen() == "KQk"


def test_rights_revoked_when_king_moves() -> None:
    pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    assert pos.apply_move(parse_uci("e1f1")).castling.to_fen() == "kq"
