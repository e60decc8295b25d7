from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from ..config import Settings
from ..protocol.http.app import create_app
from ..protocol.uci.loop import run_uci


def _parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chesscore", description="chesscore engine front ends")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API (default)")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.add_argument("--log-level", default=settings.log_level)

    uci = sub.add_parser("uci", help="Speak UCI on stdin/stdout")
    uci.add_argument("--depth", type=int, default=settings.search_depth)
    uci.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    settings = Settings.from_env()
    args = _parser(settings).parse_args(argv)

    if args.command == "uci":
        # Logs go to stderr so stdout stays a clean protocol channel.
        logging.basicConfig(level=args.log_level.upper())
        run_uci(depth=args.depth)
        return

    if args.command == "serve":
        settings.host, settings.port, settings.log_level = args.host, args.port, args.log_level
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
