"""
Program Management Assistant
Program Blueprint — program CRUD and active-program selection.

Endpoints:
    GET    /api/v1/programs                    — List all (insertion order)
    POST   /api/v1/programs                    — Create (204 if no name)
    GET    /api/v1/programs/<id>               — Detail (+ board counts)
    PUT    /api/v1/programs/<id>               — Update (non-empty fields)
    DELETE /api/v1/programs/<id>?confirm=true  — Delete program + partition

    GET    /api/v1/programs/active             — Active program or null
    PUT    /api/v1/programs/active             — Select {"programId": id|null}
"""

import logging

from flask import Blueprint, jsonify, request

from pmassist.blueprints import json_body
from pmassist.core.exceptions import ConfirmationRequiredError
from pmassist.services.workspace import get_workspace

logger = logging.getLogger(__name__)

program_bp = Blueprint("program", __name__, url_prefix="/api/v1")

_TRUTHY = {"1", "true", "yes", "on"}


def _confirmed() -> bool:
    return (request.args.get("confirm") or "").strip().lower() in _TRUTHY


# ═════════════════════════════════════════════════════════════════════════════
# PROGRAMS
# ═════════════════════════════════════════════════════════════════════════════

@program_bp.route("/programs", methods=["GET"])
def list_programs():
    """Return all programs, optionally filtered by status."""
    status = request.args.get("status")
    programs = get_workspace().programs.list()
    if status:
        programs = [p for p in programs if p.status == status]
    return jsonify([p.to_dict() for p in programs]), 200


@program_bp.route("/programs", methods=["POST"])
def create_program():
    """Create a new program from a draft."""
    data = json_body()
    program = get_workspace().programs.create(data)
    if program is None:
        return "", 204
    return jsonify(program.to_dict()), 201


@program_bp.route("/programs/active", methods=["GET"])
def get_active_program():
    program = get_workspace().programs.active
    return jsonify({"activeProgram": program.to_dict() if program else None}), 200


@program_bp.route("/programs/active", methods=["PUT"])
def select_program():
    """Select the active program; ``{"programId": null}`` clears it."""
    data = json_body()
    program = get_workspace().programs.select(data.get("programId"))
    return jsonify({"activeProgram": program.to_dict() if program else None}), 200


@program_bp.route("/programs/<program_id>", methods=["GET"])
def get_program(program_id):
    """Return a program with its partition bucket counts."""
    workspace = get_workspace()
    program = workspace.programs.get(program_id)
    partition = workspace.partitions.ensure_initialized(program.id)
    result = program.to_dict()
    result["counts"] = partition.counts()
    return jsonify(result), 200


@program_bp.route("/programs/<program_id>", methods=["PUT"])
def update_program(program_id):
    data = json_body()
    program = get_workspace().programs.update(program_id, data)
    return jsonify(program.to_dict()), 200


@program_bp.route("/programs/<program_id>", methods=["DELETE"])
def delete_program(program_id):
    """Delete a program. Requires ``?confirm=true``."""
    workspace = get_workspace()
    deleted = workspace.programs.delete(program_id, confirm=lambda _program: _confirmed())
    if not deleted:
        raise ConfirmationRequiredError("delete", "Program", str(program_id))
    workspace.forget_assistant(program_id)
    return jsonify({"message": "Program deleted"}), 200
