"""
Program Management Assistant
Board Blueprint — task board, blocker register and risk register.

Endpoints:
    Board:
        GET    /api/v1/programs/<pid>/board                        — Buckets + counts

    Tasks:
        GET    /api/v1/programs/<pid>/tasks                        — List (flattened)
        POST   /api/v1/programs/<pid>/tasks                        — Create (204 if no title)
        PUT    /api/v1/programs/<pid>/tasks/<tid>                  — Edit
        PATCH  /api/v1/programs/<pid>/tasks/<tid>/status           — Move column
        DELETE /api/v1/programs/<pid>/tasks/<tid>                  — Delete

    Blockers:
        GET    /api/v1/programs/<pid>/blockers                     — List
        POST   /api/v1/programs/<pid>/blockers                     — Create
        PATCH  /api/v1/programs/<pid>/blockers/<bid>/status        — Change status
        PATCH  /api/v1/programs/<pid>/blockers/<bid>/hold          — Toggle project hold
        PATCH  /api/v1/programs/<pid>/blockers/<bid>/resolution    — Resolve
        DELETE /api/v1/programs/<pid>/blockers/<bid>               — Delete

    Risks:
        GET    /api/v1/programs/<pid>/risks                        — List
        POST   /api/v1/programs/<pid>/risks                        — Create
        PATCH  /api/v1/programs/<pid>/risks/<rid>/status           — Change status
        DELETE /api/v1/programs/<pid>/risks/<rid>                  — Delete
"""

import logging

from flask import Blueprint, jsonify

from pmassist.blueprints import json_body
from pmassist.services.workspace import get_workspace
from pmassist.utils.errors import E, api_error

logger = logging.getLogger(__name__)

board_bp = Blueprint("board", __name__, url_prefix="/api/v1/programs/<program_id>")


def _required_status(data):
    status = data.get("status")
    if not status:
        return None, api_error(E.VALIDATION_REQUIRED, "status is required")
    return status, None


# ═════════════════════════════════════════════════════════════════════════════
# BOARD
# ═════════════════════════════════════════════════════════════════════════════

@board_bp.route("/board", methods=["GET"])
def get_board(program_id):
    """Return the program's partition: buckets plus per-bucket counts."""
    partition = get_workspace().partitions.ensure_initialized(program_id)
    result = partition.to_dict()
    result["counts"] = partition.counts()
    return jsonify(result), 200


# ═════════════════════════════════════════════════════════════════════════════
# TASKS
# ═════════════════════════════════════════════════════════════════════════════

@board_bp.route("/tasks", methods=["GET"])
def list_tasks(program_id):
    tasks = get_workspace().board.list_tasks(program_id)
    return jsonify([t.to_dict() for t in tasks]), 200


@board_bp.route("/tasks", methods=["POST"])
def create_task(program_id):
    data = json_body()
    task = get_workspace().board.add_task(program_id, data)
    if task is None:
        return "", 204
    return jsonify(task.to_dict()), 201


@board_bp.route("/tasks/<task_id>", methods=["PUT"])
def update_task(program_id, task_id):
    data = json_body()
    task = get_workspace().board.update_task(program_id, task_id, data)
    if task is None:
        return "", 204
    return jsonify(task.to_dict()), 200


@board_bp.route("/tasks/<task_id>/status", methods=["PATCH"])
def move_task(program_id, task_id):
    status, err = _required_status(json_body())
    if err:
        return err
    task = get_workspace().board.move_task(program_id, task_id, status)
    return jsonify(task.to_dict()), 200


@board_bp.route("/tasks/<task_id>", methods=["DELETE"])
def delete_task(program_id, task_id):
    get_workspace().board.delete_task(program_id, task_id)
    return jsonify({"message": "Task deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════════
# BLOCKERS
# ═════════════════════════════════════════════════════════════════════════════

@board_bp.route("/blockers", methods=["GET"])
def list_blockers(program_id):
    blockers = get_workspace().board.list_blockers(program_id)
    return jsonify([b.to_dict() for b in blockers]), 200


@board_bp.route("/blockers", methods=["POST"])
def create_blocker(program_id):
    """Create a blocker. Title and startDate are required (204 otherwise)."""
    data = json_body()
    blocker = get_workspace().board.add_blocker(program_id, data)
    if blocker is None:
        return "", 204
    return jsonify(blocker.to_dict()), 201


@board_bp.route("/blockers/<blocker_id>/status", methods=["PATCH"])
def update_blocker_status(program_id, blocker_id):
    status, err = _required_status(json_body())
    if err:
        return err
    blocker = get_workspace().board.set_blocker_status(program_id, blocker_id, status)
    return jsonify(blocker.to_dict()), 200


@board_bp.route("/blockers/<blocker_id>/hold", methods=["PATCH"])
def toggle_project_hold(program_id, blocker_id):
    """Body: ``{"isProjectOnHold": bool, "projectHoldDate": "YYYY-MM-DD"?}``."""
    data = json_body()
    if "isProjectOnHold" not in data:
        return api_error(E.VALIDATION_REQUIRED, "isProjectOnHold is required")
    blocker = get_workspace().board.set_project_hold(
        program_id, blocker_id, data["isProjectOnHold"], data.get("projectHoldDate"),
    )
    return jsonify(blocker.to_dict()), 200


@board_bp.route("/blockers/<blocker_id>/resolution", methods=["PATCH"])
def resolve_blocker(program_id, blocker_id):
    data = json_body()
    blocker = get_workspace().board.resolve_blocker(program_id, blocker_id, data.get("resolution", ""))
    return jsonify(blocker.to_dict()), 200


@board_bp.route("/blockers/<blocker_id>", methods=["DELETE"])
def delete_blocker(program_id, blocker_id):
    get_workspace().board.delete_blocker(program_id, blocker_id)
    return jsonify({"message": "Blocker deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════════
# RISKS
# ═════════════════════════════════════════════════════════════════════════════

@board_bp.route("/risks", methods=["GET"])
def list_risks(program_id):
    risks = get_workspace().board.list_risks(program_id)
    return jsonify([r.to_dict() for r in risks]), 200


@board_bp.route("/risks", methods=["POST"])
def create_risk(program_id):
    data = json_body()
    risk = get_workspace().board.add_risk(program_id, data)
    if risk is None:
        return "", 204
    return jsonify(risk.to_dict()), 201


@board_bp.route("/risks/<risk_id>/status", methods=["PATCH"])
def update_risk_status(program_id, risk_id):
    status, err = _required_status(json_body())
    if err:
        return err
    risk = get_workspace().board.set_risk_status(program_id, risk_id, status)
    return jsonify(risk.to_dict()), 200


@board_bp.route("/risks/<risk_id>", methods=["DELETE"])
def delete_risk(program_id, risk_id):
    get_workspace().board.delete_risk(program_id, risk_id)
    return jsonify({"message": "Risk deleted"}), 200
