"""
boardsync HTTP host
-------------------
Serves one board as a JSON API so a browser front end can render it and
report drag-and-drop moves back.

API:
    GET  /api/board               → { board, columns, stats }
    GET  /api/columns             → { columns }
    PUT  /api/columns             ← { visible: [names|titles] | "all" }
    PUT  /api/height              ← { height: "300px" | null }
    POST /api/refresh             → { added, removed, moved, dropped }
    POST /api/redraw
    POST /api/cards/<id>/move     ← { state: name|title }
    GET  /api/events              → { events }  (most recent first)
    GET  /health

Write endpoints require the X-API-Key header (BOARDSYNC_API_SECRET).

The board lives on its own event loop thread; Flask handlers hand work to it
and wait for the result, so board state is only ever touched from that loop.
"""
import asyncio
import hmac
import logging
import os
import threading
from collections import deque
from datetime import datetime, timezone
from functools import partial, wraps
from typing import Any, Callable, Optional

from flask import Flask, current_app, jsonify, request

from .board import Board
from .errors import BoardError, BoardNotReady
from .events import EVENT_TYPES
from .schema import BoardEvent, MovePhase

logger = logging.getLogger(__name__)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BoardRunner: owns the board's event loop
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardRunner:
    """Runs a Board on a background event loop thread."""

    def __init__(self, board: Board, timeout: float = 60.0, event_log_size: int = 200):
        self.board = board
        self.timeout = timeout
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, name="boardsync-loop", daemon=True)
        self.events = deque(maxlen=event_log_size)
        self._refresher = None

        for event_type in EVENT_TYPES:
            board.on(event_type, partial(self._record, event_type))

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def _record(self, event_type: str, payload: Any) -> None:
        if isinstance(payload, BoardEvent):
            ids = [str(r.get(self.board.config.id_field, "")) for r in payload.items_modified]
            detail = {"item_total": payload.item_total, "items": ids}
        else:
            detail = {"columns": payload}
        self.events.appendleft({
            "event_type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **detail,
        })

    def start(self, refresh_interval: float = 0.0) -> None:
        """Start the loop, render the board, and optionally keep it refreshed."""
        self.thread.start()
        self.call(self.board.initialize())
        if refresh_interval > 0:
            self._refresher = asyncio.run_coroutine_threadsafe(
                self.board.auto_refresh(refresh_interval), self.loop
            )

    def stop(self) -> None:
        if self._refresher is not None:
            self._refresher.cancel()
        if self.thread.is_alive():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.thread.join(timeout=5)

    def call(self, coro) -> Any:
        """Run a coroutine on the board loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(self.timeout)

    def run(self, fn: Callable, *args) -> Any:
        """Run a plain function on the board loop and wait for its result."""
        async def _invoke():
            return fn(*args)
        return self.call(_invoke())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Flask app
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = current_app.config.get("API_SECRET", "")
        if not secret:
            return jsonify({"error": "API_SECRET not set"}), 503
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


def _error_response(e: BoardError):
    code = 409 if e.status == "rejected" else 502
    return jsonify({"error": e.message, "status": e.status}), code


def create_app(runner: BoardRunner, api_secret: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    app.config["API_SECRET"] = api_secret if api_secret is not None else os.environ.get("BOARDSYNC_API_SECRET", "")
    board = runner.board

    @app.errorhandler(BoardNotReady)
    def not_ready(e):
        return jsonify({"error": e.message}), 503

    @app.route("/api/board")
    def api_board():
        def _snapshot():
            snapshot = board.view.snapshot() if hasattr(board.view, "snapshot") else {}
            stats = board.get_event_object()
            return {
                "board": snapshot,
                "columns": board.get_columns(),
                "stats": {"state_totals": stats.state_totals, "item_total": stats.item_total},
            }
        return jsonify(runner.run(_snapshot))

    @app.route("/api/columns", methods=["GET"])
    def api_columns():
        return jsonify({"columns": runner.run(board.get_columns)})

    @app.route("/api/columns", methods=["PUT"])
    @require_api_key
    def api_set_columns():
        data = request.get_json(force=True, silent=True) or {}
        visible = data.get("visible")
        if not isinstance(visible, (list, str)):
            return jsonify({"error": "visible must be a list of columns or 'all'"}), 400
        applied = runner.run(board.set_visible_columns, visible)
        return jsonify({"applied": applied, "columns": runner.run(board.get_columns)})

    @app.route("/api/height", methods=["PUT"])
    @require_api_key
    def api_set_height():
        data = request.get_json(force=True, silent=True) or {}
        height = data.get("height")
        if height is not None and not isinstance(height, str):
            return jsonify({"error": "height must be a CSS length or null"}), 400
        runner.run(board.set_height, height)
        return jsonify({"height": height})

    @app.route("/api/refresh", methods=["POST"])
    @require_api_key
    def api_refresh():
        try:
            result = runner.call(board.refresh())
        except BoardNotReady:
            raise
        except BoardError as e:
            return _error_response(e)
        ids = result.classification(board.config.id_field)
        return jsonify({k: ids[k] for k in ("added", "removed", "moved", "dropped")})

    @app.route("/api/redraw", methods=["POST"])
    @require_api_key
    def api_redraw():
        runner.run(board.redraw)
        return jsonify({"status": "ok"})

    @app.route("/api/cards/<card_id>/move", methods=["POST"])
    @require_api_key
    def api_move_card(card_id):
        data = request.get_json(force=True, silent=True) or {}
        target = data.get("state")
        if target is None:
            return jsonify({"error": "state is required"}), 400

        if not board.is_ready:
            raise BoardNotReady("Cannot move: board has not been initialized")
        column = runner.run(board.columns.resolve, str(target))
        if column is None:
            return jsonify({"error": f"Invalid state: {target}"}), 400
        if not runner.run(board.has_card, card_id):
            return jsonify({"error": "Card not found"}), 404

        try:
            intent = runner.call(board.move(card_id, column.name, event={"source": "api"}))
        except BoardNotReady:
            raise
        except BoardError as e:
            return _error_response(e)

        body = {"phase": intent.phase.value, "from_state": intent.from_state, "to_state": intent.to_state}
        if intent.phase == MovePhase.COMMITTED:
            body["item"] = intent.result.result().updated_record
        return jsonify(body)

    @app.route("/api/events")
    def api_events():
        limit = request.args.get("limit", default=50, type=int)
        return jsonify({"events": list(runner.events)[:limit]})

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok" if board.is_ready else "starting",
            "list": board.config.list_name,
            "field": board.config.field,
        })

    return app
