"""
Program Management Assistant
Health Blueprint — liveness and storage readiness.

Endpoints:
    GET /api/v1/health   — {"status": "ok", "storage": ..., "programs": n}
"""

from flask import Blueprint, jsonify

from pmassist.services.workspace import get_workspace

health_bp = Blueprint("health", __name__, url_prefix="/api/v1")


@health_bp.route("/health", methods=["GET"])
def health():
    workspace = get_workspace()
    return jsonify({
        "status": "ok",
        "storage": type(workspace.state.adapter.store).__name__,
        "programs": len(workspace.state.programs),
    }), 200
