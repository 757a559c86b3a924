"""Flask application factory for the vmsim JSON API.

Each app owns exactly one ``MemorySimulator``.  Requests are handled
one at a time against it; a lock keeps the development server's worker
threads from interleaving two operations.

``POST /api/operation`` accepts the ``operation`` envelope the front end
sends (``{"type": "operation", "data": {...}}``) or the bare operation
object, and answers with the result plus the update messages a front end
needs to re-render.
"""

from __future__ import annotations

from threading import Lock
from typing import Any

from flask import Flask, Response, jsonify, request

from vmsim.config import SimulatorConfig
from vmsim.errors import SimulationError
from vmsim.operations import operation_from_json
from vmsim.protocol import MessageType, error_message, snapshot_messages
from vmsim.simulator import MemorySimulator

_HTTP_BAD_REQUEST = 400
_MAX_TICKS_PER_REQUEST = 1000


def create_app(config: SimulatorConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Simulator configuration; defaults to the reference machine.

    Returns:
        A configured Flask application ready to serve.

    """
    simulator = MemorySimulator(config)
    lock = Lock()

    app = Flask(__name__)

    def _messages() -> list[dict[str, Any]]:
        return [m.to_json() for m in snapshot_messages(simulator.snapshot())]

    @app.route("/api/state")
    def state() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the full simulator snapshot."""
        with lock:
            return jsonify(simulator.snapshot().to_json())

    @app.route("/api/operation", methods=["POST"])
    def operation() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Perform one operation.

        Returns:
            JSON with ``result`` and ``messages`` fields, or an ``error``
            message with HTTP 400 for a malformed request.

        """
        body = request.get_json(silent=True)
        if isinstance(body, dict) and body.get("type") == MessageType.OPERATION:
            body = body.get("data")
        try:
            op = operation_from_json(body)
        except SimulationError as e:
            return jsonify(error_message(e.message).to_json()), _HTTP_BAD_REQUEST

        with lock:
            result = simulator.perform(op)
            messages = _messages()
        if not result.ok:
            messages.append(error_message(result.message).to_json())
        return jsonify({"result": result.to_json(), "messages": messages})

    @app.route("/api/tick", methods=["POST"])
    def tick() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Advance the deferred clock (``{"ticks": n}``, default 1)."""
        body = request.get_json(silent=True) or {}
        ticks = body.get("ticks", 1) if isinstance(body, dict) else None
        if isinstance(ticks, bool) or not isinstance(ticks, int) or not 1 <= ticks <= _MAX_TICKS_PER_REQUEST:
            text = f"'ticks' must be an integer between 1 and {_MAX_TICKS_PER_REQUEST}"
            return jsonify(error_message(text).to_json()), _HTTP_BAD_REQUEST
        with lock:
            results = simulator.tick(ticks)
            now = simulator.deferred.now
            messages = _messages()
        return jsonify(
            {
                "tick": now,
                "results": [r.to_json() for r in results],
                "messages": messages,
            }
        )

    @app.route("/api/log")
    def log() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the rendered event log."""
        with lock:
            return jsonify({"log": simulator.dmesg()})

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``vmsim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
