"""
boardsync command line.

    python -m boardsync show  --config board.yaml
    python -m boardsync serve --config board.yaml --port 3000
"""
import argparse
import asyncio
import logging
import sys

from .board import Board
from .config import BoardConfig
from .errors import BoardError
from .remote import RestListClient


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [boardsync] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _load_config(args) -> BoardConfig:
    cfg = BoardConfig.load(args.config)
    if args.base_url:
        cfg.base_url = args.base_url
    if args.list:
        cfg.list_name = args.list
    if args.field:
        cfg.field = args.field
    return cfg.validate()


async def _show(cfg: BoardConfig) -> int:
    board = Board(cfg, RestListClient.from_config(cfg))
    try:
        await board.initialize()
    except BoardError as e:
        print(board.view.render_text(), end="")
        logging.getLogger("boardsync").error(f"Board failed to load ({e.status}): {e.message}")
        return 1
    print(board.view.render_text(), end="")
    return 0


def _serve(cfg: BoardConfig, host: str, port: int) -> int:
    from .server import BoardRunner, create_app

    board = Board(cfg, RestListClient.from_config(cfg))
    runner = BoardRunner(board)
    try:
        runner.start(refresh_interval=cfg.refresh_interval)
    except BoardError as e:
        logging.getLogger("boardsync").error(f"Board failed to load ({e.status}): {e.message}")
        runner.stop()
        return 1

    print(f"""
╔═══════════════════════════════════════╗
║  boardsync                            ║
╠═══════════════════════════════════════╣
║  URL:   http://{host}:{port:<19}║
║  List:  {cfg.list_name:<30}║
║  Field: {cfg.field:<30}║
╚═══════════════════════════════════════╝
""")
    app = create_app(runner)
    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    finally:
        runner.stop()
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="boardsync", description="Kanban board over a remote list")
    ap.add_argument("--config", default=None, help="Path to board.yaml")
    ap.add_argument("--base-url", default=None, help="List service URL (overrides config)")
    ap.add_argument("--list", default=None, help="List name (overrides config)")
    ap.add_argument("--field", default=None, help="Field to build columns from (overrides config)")
    ap.add_argument("-v", "--verbose", action="store_true")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="Print the board once and exit")
    serve = sub.add_parser("serve", help="Serve the board as a JSON API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=3000)

    args = ap.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        cfg = _load_config(args)
    except BoardError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    if args.command == "show":
        return asyncio.run(_show(cfg))
    return _serve(cfg, args.host, args.port)


if __name__ == "__main__":
    sys.exit(main())
