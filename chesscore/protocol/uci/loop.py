from __future__ import annotations

import logging
import sys
import threading
from typing import Callable, List, Optional, TextIO

from ...engine.game import Game
from ...engine.move import parse_uci
from ...search.service import SearchResult, SearchService


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]

MAX_DEPTH = 8


class UCIEngine:
    """UCI protocol adapter around the core engine.

    Notes:
    - Core remains pure; I/O is isolated here.
    - Command set: uci, isready, ucinewgame, setoption, position, go, stop, quit.
    - ``go`` is depth-limited only. Clock fields are accepted and ignored,
      since the search has no internal timeout.
    """

    def __init__(self, depth: int = 3) -> None:
        self.game: Game = Game.new()
        self.search = SearchService(depth)
        self._search_thread: Optional[threading.Thread] = None
        self._result_lock = threading.Lock()
        self._last_result: Optional[SearchResult] = None
        self._last_fen: Optional[str] = None  # position the last result belongs to
        self._search_running = False
        self._gen = 0  # generation id to silence stale workers

    # ---- Command handlers ----
    def cmd_uci(self, write: Writer) -> None:
        write("id name chesscore")
        write("id author chesscore developers")
        write(f"option name Depth type spin default {self.search.depth} min 1 max {MAX_DEPTH}")
        write("uciok")

    def cmd_isready(self, write: Writer) -> None:
        write("readyok")

    def cmd_ucinewgame(self) -> None:
        self._cancel_running_search()
        self.game = Game.new()

    def cmd_position(self, args: List[str]) -> None:
        # position [startpos | fen <FEN> ] [moves m1 m2 ...]
        if not args:
            return
        i = 0
        if args[i] == "startpos":
            self.game = Game.new()
            i += 1
        elif args[i] == "fen":
            i += 1
            fen_tokens: List[str] = []
            while i < len(args) and args[i] != "moves":
                fen_tokens.append(args[i])
                i += 1
            try:
                self.game = Game.from_fen(" ".join(fen_tokens))
            except ValueError as e:
                logger.debug("ignoring invalid FEN: %s", e)
                return
        if i < len(args) and args[i] == "moves":
            for token in args[i + 1 :]:
                try:
                    self.game.apply_move(parse_uci(token))
                except ValueError as e:
                    # Stop at the first bad move, keeping what was applied.
                    logger.debug("ignoring move %s: %s", token, e)
                    break

    def cmd_setoption(self, args: List[str]) -> None:
        # setoption name <name> [value <value>]
        if "name" not in args:
            return
        i = args.index("name") + 1
        j = args.index("value") if "value" in args else len(args)
        name = " ".join(args[i:j]).strip().lower()
        value = " ".join(args[j + 1 :]).strip()
        if name == "depth":
            try:
                self.search.depth = min(MAX_DEPTH, int(value))
            except ValueError:
                logger.debug("ignoring non-integer Depth %r", value)

    def cmd_go(self, args: List[str], write: Writer) -> None:
        depth = self._parse_depth(args)
        with self._result_lock:
            self._search_running = True
            self._gen += 1
            gen = self._gen
        position = self.game.position

        def worker() -> None:
            res = self.search.search(position, depth)
            # Only the newest search may report or touch the running flag.
            with self._result_lock:
                if gen != self._gen:
                    return
                self._last_result, self._last_fen = res, position.to_fen()
                self._emit_info(res, write)
                write(f"bestmove {res.best_move.to_uci() if res.best_move else '(none)'}")
                self._search_running = False

        self._search_thread = threading.Thread(target=worker, name="uci-search", daemon=True)
        self._search_thread.start()

    def cmd_stop(self, write: Writer) -> None:
        # The search cannot be interrupted; answer now with what is known.
        with self._result_lock:
            if not self._search_running:
                return
            self._gen += 1
            self._search_running = False
            res = self._last_result if self._last_fen == self.game.to_fen() else None
        if res is not None:
            best = res.best_move.to_uci() if res.best_move else "(none)"
        else:
            legal = self.game.legal_moves()
            best = legal[0].to_uci() if legal else "(none)"
        write(f"bestmove {best}")

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the current search thread finishes."""
        if self._search_thread is not None:
            self._search_thread.join(timeout)

    # ---- Utilities ----
    def _parse_depth(self, args: List[str]) -> Optional[int]:
        if "depth" in args:
            i = args.index("depth")
            if i + 1 < len(args):
                try:
                    return max(1, min(MAX_DEPTH, int(args[i + 1])))
                except ValueError:
                    pass
        return None

    def _emit_info(self, res: SearchResult, write: Writer) -> None:
        nps = int(res.nodes * 1000 / max(1, res.time_ms))
        if res.mate_in is not None:
            score = f"mate {res.mate_in}"
        else:
            score = f"cp {res.score_cp or 0}"
        pv = res.best_move.to_uci() if res.best_move else ""
        write(f"info depth {res.depth} time {res.time_ms} nodes {res.nodes} nps {nps} score {score} pv {pv}".rstrip())

    def _cancel_running_search(self) -> None:
        with self._result_lock:
            if self._search_running:
                self._gen += 1
                self._search_running = False


def _default_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_uci(stream: Optional[TextIO] = None, write: Writer = _default_writer, depth: int = 3) -> None:
    eng = UCIEngine(depth)
    for raw in stream if stream is not None else sys.stdin:
        parts = raw.split()
        if not parts:
            continue
        cmd, args = parts[0], parts[1:]

        if cmd == "uci":
            eng.cmd_uci(write)
        elif cmd == "isready":
            eng.cmd_isready(write)
        elif cmd == "setoption":
            eng.cmd_setoption(args)
        elif cmd == "ucinewgame":
            eng.cmd_ucinewgame()
        elif cmd == "position":
            eng.cmd_position(args)
        elif cmd == "go":
            eng.cmd_go(args, write)
        elif cmd == "stop":
            eng.cmd_stop(write)
        elif cmd == "quit":
            break
        else:
            logger.debug("unknown UCI command %r", cmd)
