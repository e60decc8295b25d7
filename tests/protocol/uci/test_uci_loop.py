from __future__ import annotations

import io
import threading
from typing import List

from chesscore.protocol.uci.loop import UCIEngine, run_uci


def capture_writer(buf: List[str]):
    def _w(line: str) -> None:
        buf.append(line)

    return _w


def test_basic_handshake():
    eng = UCIEngine()
    out: List[str] = []
    eng.cmd_uci(capture_writer(out))
    assert out[0] == "id name chesscore"
    assert any(line.startswith("option name Depth type spin") for line in out)
    assert out[-1] == "uciok"


def test_isready():
    eng = UCIEngine()
    out: List[str] = []
    eng.cmd_isready(capture_writer(out))
    assert out == ["readyok"]


def test_position_startpos_with_moves():
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4", "e7e5"])
    assert eng.game.move_history() == ["e2e4", "e7e5"]
    # A bad move stops the list but keeps what was applied
    eng.cmd_position(["startpos", "moves", "e2e4", "e2e4", "d7d5"])
    assert eng.game.move_history() == ["e2e4"]


def test_position_fen_and_invalid_fen():
    eng = UCIEngine()
    eng.cmd_position(["fen", "4k3/8/8/8/8/8/8/4K2R", "w", "K", "-", "0", "1", "moves", "e1g1"])
    assert eng.game.to_fen() == "4k3/8/8/8/8/8/8/5RK1 b - - 1 1"
    eng.cmd_position(["fen", "garbage"])
    assert eng.game.to_fen() == "4k3/8/8/8/8/8/8/5RK1 b - - 1 1"


def test_position_and_go_depth():
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4", "e7e5"])
    out: List[str] = []
    eng.cmd_go(["depth", "1"], capture_writer(out))
    eng.wait(10)
    assert any(line.startswith("info depth 1 ") for line in out)
    assert out[-1].startswith("bestmove ")
    assert out[-1] != "bestmove (none)"


def test_go_reports_mate():
    eng = UCIEngine()
    eng.cmd_position(["fen", "6k1/5ppp/8/8/8/8/5PPP/3R2K1", "w", "-", "-", "0", "1"])
    out: List[str] = []
    eng.cmd_go(["depth", "2", "wtime", "1000", "btime", "1000"], capture_writer(out))
    eng.wait(10)
    assert any("score mate 1" in line for line in out)
    assert out[-1] == "bestmove d1d8"


def test_go_without_moves_reports_none():
    eng = UCIEngine()
    eng.cmd_position(["fen", "7k/6Q1/6K1/8/8/8/8/8", "b", "-", "-", "0", "1"])
    out: List[str] = []
    eng.cmd_go(["depth", "2"], capture_writer(out))
    eng.wait(10)
    assert out[-1] == "bestmove (none)"


def test_setoption_depth():
    eng = UCIEngine()
    eng.cmd_setoption(["name", "Depth", "value", "5"])
    assert eng.search.depth == 5
    eng.cmd_setoption(["name", "Depth", "value", "99"])
    assert eng.search.depth == 8
    eng.cmd_setoption(["name", "Depth", "value", "x"])
    assert eng.search.depth == 8


def test_stop_without_search_is_silent():
    eng = UCIEngine()
    out: List[str] = []
    eng.cmd_stop(capture_writer(out))
    assert out == []


def test_run_uci_reads_stream_until_quit():
    out: List[str] = []
    stream = io.StringIO("uci\n\nisready\nbogus\nquit\nisready\n")
    run_uci(stream, capture_writer(out), depth=2)
    assert "uciok" in out
    assert out.count("readyok") == 1
    assert "option name Depth type spin default 2 min 1 max 8" in out


def test_ucinewgame_resets_game():
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "d2d4"])
    eng.cmd_ucinewgame()
    assert eng.game.move_history() == []


def blocking_search(eng: UCIEngine, release: threading.Event):
    real = eng.search.search

    def _search(position, depth=None):
        release.wait(10)
        return real(position, 1)

    return _search


def test_stop_during_search_reuses_finished_result(monkeypatch):
    eng = UCIEngine()
    eng.cmd_position(["fen", "6k1/5ppp/8/8/8/8/5PPP/3R2K1", "w", "-", "-", "0", "1"])
    out: List[str] = []
    eng.cmd_go(["depth", "2"], capture_writer(out))
    eng.wait(10)
    assert out[-1] == "bestmove d1d8"

    release = threading.Event()
    monkeypatch.setattr(eng.search, "search", blocking_search(eng, release))
    out.clear()
    eng.cmd_go(["depth", "4"], capture_writer(out))
    eng.cmd_stop(capture_writer(out))
    assert out == ["bestmove d1d8"]

    # The stopped worker stays silent once it finishes
    release.set()
    eng.wait(10)
    assert out == ["bestmove d1d8"]


def test_stop_after_position_change_falls_back_to_legal_move(monkeypatch):
    eng = UCIEngine()
    eng.cmd_position(["startpos"])
    out: List[str] = []
    eng.cmd_go(["depth", "1"], capture_writer(out))
    eng.wait(10)

    release = threading.Event()
    monkeypatch.setattr(eng.search, "search", blocking_search(eng, release))
    eng.cmd_position(["startpos", "moves", "e2e4"])
    out.clear()
    eng.cmd_go(["depth", "3"], capture_writer(out))
    eng.cmd_stop(capture_writer(out))
    release.set()
    eng.wait(10)
    assert len(out) == 1
    legal = {m.to_uci() for m in eng.game.legal_moves()}
    assert out[0].split()[1] in legal


def test_stale_worker_does_not_clear_running_flag(monkeypatch):
    eng = UCIEngine()
    first, second = threading.Event(), threading.Event()
    gates = {2: first, 3: second}
    real = eng.search.search

    def _search(position, depth=None):
        gates[depth].wait(10)
        return real(position, 1)

    monkeypatch.setattr(eng.search, "search", _search)
    out: List[str] = []
    eng.cmd_go(["depth", "2"], capture_writer(out))
    first_thread = eng._search_thread
    eng.cmd_go(["depth", "3"], capture_writer(out))

    first.set()
    first_thread.join(10)
    assert out == []

    eng.cmd_stop(capture_writer(out))
    assert len(out) == 1 and out[0].startswith("bestmove ")
    second.set()
    eng.wait(10)
    assert len(out) == 1
