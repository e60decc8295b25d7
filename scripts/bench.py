#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import os
import platform
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# Ensure repo root (which contains `chesscore/`) is importable when running directly
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from chesscore import __version__
from chesscore.engine.position import STARTPOS_FEN, Position
from chesscore.search.service import SearchService


@dataclass
class BenchItem:
    id: str
    name: str
    fen: str
    depth: Optional[int] = None


BUILTIN_POSITIONS = [
    BenchItem("startpos", "Initial position", STARTPOS_FEN),
    BenchItem(
        "kiwipete",
        "Kiwipete",
        "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1",
        depth=2,
    ),
    BenchItem("endgame", "Rook endgame", "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"),
    BenchItem("mate2", "Back-rank mate", "6k1/5ppp/8/8/8/8/5PPP/3R2K1 w - - 0 1"),
]


def load_positions(path: str) -> List[BenchItem]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    items: List[BenchItem] = []
    for obj in data.get("positions", []):
        items.append(
            BenchItem(
                id=str(obj.get("id", obj.get("name", "pos"))),
                name=str(obj.get("name", "Unnamed")),
                fen=str(obj["fen"]),
                depth=(int(obj["depth"]) if obj.get("depth") is not None else None),
            )
        )
    return items


def bench_position(svc: SearchService, item: BenchItem, *, depth: int, iterations: int) -> Dict[str, Any]:
    eff_depth = item.depth if item.depth is not None else depth
    try:
        pos = Position.from_fen(item.fen)
    except ValueError as e:
        raise ValueError(f"Invalid FEN for {item.id}: {e}") from e

    total_time = 0
    total_nodes = 0
    last = None
    for _ in range(max(1, iterations)):
        res = svc.search(pos, eff_depth)
        total_time += res.time_ms
        total_nodes += res.nodes
        last = res
    assert last is not None

    avg_time = total_time // max(1, iterations)
    avg_nodes = total_nodes // max(1, iterations)
    score = {"mate": last.mate_in} if last.mate_in is not None else {"cp": last.score_cp or 0}
    return {
        "id": item.id,
        "name": item.name,
        "fen": item.fen,
        "depth": last.depth,
        "best_move": last.best_move.to_uci() if last.best_move else None,
        "score": score,
        "time_ms": avg_time,
        "nodes": avg_nodes,
        "nps": int(avg_nodes * 1000 / max(1, avg_time)),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Time fixed-depth searches over a position suite")
    parser.add_argument("--positions", default=None, help="Path to positions.json (default: built-in suite)")
    parser.add_argument("--depth", type=int, default=3, help="Depth for positions without their own")
    parser.add_argument("--iterations", type=int, default=1, help="Repeat runs per position and average")
    parser.add_argument("--out", type=str, default=None, help="Write JSON results to file path")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--progress", action="store_true", help="Print per-position progress to stderr")
    args = parser.parse_args()

    items = load_positions(args.positions) if args.positions else BUILTIN_POSITIONS
    if not items:
        raise SystemExit("No positions found in positions file")

    svc = SearchService(args.depth)
    results: List[Dict[str, Any]] = []
    t0 = time.perf_counter()
    for idx, it in enumerate(items, start=1):
        if args.progress:
            sys.stderr.write(f"[{idx}/{len(items)}] {it.id}: running...\n")
        res = bench_position(svc, it, depth=args.depth, iterations=args.iterations)
        results.append(res)
        if args.progress:
            sys.stderr.write(
                f"    depth={res['depth']} time={res['time_ms']}ms nodes={res['nodes']} best={res['best_move']}\n"
            )

    dt_ms = int((time.perf_counter() - t0) * 1000)
    total_nodes = sum(r["nodes"] for r in results)
    payload = {
        "meta": {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "engine": {"version": __version__},
            "config": {"global_depth": args.depth, "iterations": max(1, args.iterations)},
        },
        "results": results,
        "summary": {
            "positions": len(results),
            "total_time_ms": dt_ms,
            "total_nodes": total_nodes,
            "overall_nps": int(total_nodes * 1000 / max(1, dt_ms)),
        },
    }

    if args.out:
        out_dir = os.path.dirname(args.out)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2 if args.pretty else None)
        print(args.out)
    else:
        print(json.dumps(payload, indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
