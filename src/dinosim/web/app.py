"""Flask application factory for the simulator's web API.

``create_app`` builds a simulator and returns a Flask app with four
endpoints:

- ``GET /`` — plain-text memory layout table.
- ``GET /api/memory`` — usage numbers and the layout as JSON.
- ``POST /api/processes`` — submit a process and return it as JSON.
- ``POST /api/step`` — advance one tick and return the snapshot.

Allocator failures surface as ``409 Conflict`` with the error message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import Flask, Response, jsonify, request

from dinosim.logging import Logger
from dinosim.memory.allocator import AllocationError, MemoryBlock, OwnedBlock
from dinosim.memory.report import MemoryReport, format_layout
from dinosim.process import Process
from dinosim.simulator import Dino

if TYPE_CHECKING:
    from dinosim.config import SimulatorConfig
    from dinosim.simulator import DinoState

_HTTP_BAD_REQUEST = 400
_HTTP_CONFLICT = 409


def _block_json(block: MemoryBlock) -> dict[str, Any]:
    """Serialise one layout block."""
    data: dict[str, Any] = {"start": block.start, "size": block.size, "free": True}
    if isinstance(block, OwnedBlock):
        data.update(free=False, owner_id=block.owner_id, name=block.name)
    return data


def _is_int(value: object) -> bool:
    """Return True for JSON integers (``true``/``false`` excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _state_json(state: DinoState) -> dict[str, Any]:
    """Serialise one tick's snapshot."""
    return {
        "tick": state.tick,
        "new_queue": list(state.new_queue),
        "ready_queue": list(state.ready_queue),
        "executed_by_cpu": state.executed_by_cpu,
        "free_memory": state.free_memory,
        "ext_fragmentation": state.ext_fragmentation,
        "fragmentation_process": state.fragmentation_process,
        "layout": [_block_json(b) for b in state.layout],
    }


def create_app(config: SimulatorConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Machine settings for the simulator.  Defaults apply when None.

    Returns:
        A configured Flask application ready to serve.  The simulator it drives
        is kept in ``app.extensions["dinosim"]``.

    """
    logger = Logger()
    sim = Dino(config, logger=logger)

    app = Flask(__name__)
    app.extensions["dinosim"] = sim

    @app.errorhandler(AllocationError)
    def allocation_error(e: AllocationError) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        """Report an allocator failure as a conflict with memory state."""
        return jsonify({"error": str(e), "kind": type(e).__name__}), _HTTP_CONFLICT

    @app.route("/")
    def index() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Render the memory layout as plain text."""
        return Response(format_layout(sim.memory.layout()), mimetype="text/plain")

    @app.route("/api/memory")
    def memory() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return memory usage and layout as JSON."""
        report = MemoryReport.capture(sim.memory)
        return jsonify(
            {
                "total": report.total,
                "free": report.free,
                "occupied_percent": report.occupied_percent,
                "largest_free_run": report.largest_free_run,
                "layout": [_block_json(b) for b in sim.memory.layout()],
            }
        )

    @app.route("/api/processes", methods=["POST"])
    def submit() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Submit a process.

        Expects JSON body: ``{"name": "...", "size_kb": N, "burst": M}``
        (``burst`` optional).

        """
        data = request.get_json(silent=True)
        if data is None or "name" not in data or "size_kb" not in data:
            return jsonify({"error": "Missing 'name' or 'size_kb' field"}), _HTTP_BAD_REQUEST
        size_kb = data["size_kb"]
        burst = data.get("burst", 1)
        if not _is_int(size_kb) or not _is_int(burst):
            return jsonify({"error": "'size_kb' and 'burst' must be integers"}), _HTTP_BAD_REQUEST
        try:
            process = Process(str(data["name"]), size_kb, burst=burst)
            sim.submit(process)
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        return jsonify(
            {"pid": process.pid, "name": process.name, "size_kb": process.size_kb, "burst": burst}
        )

    @app.route("/api/step", methods=["POST"])
    def step() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Advance one tick and return the snapshot."""
        return jsonify(_state_json(sim.step()))

    return app


def main() -> None:
    """Run the web development server.

    This is the ``dinosim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
