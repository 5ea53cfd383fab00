"""
Program Management Assistant
AI Blueprint — program insights from the external AI endpoint.

Endpoints:
    POST /api/v1/programs/<pid>/ai/status     — Status report
    POST /api/v1/programs/<pid>/ai/risks      — Risk analysis
    POST /api/v1/programs/<pid>/ai/timeline   — Timeline analysis
    POST /api/v1/programs/<pid>/ai/custom     — Free-form {"prompt": "..."}

Response body is always ``{"response": str, "error": str | null}``.
    200  answered
    409  the program's assistant already has a request in flight
    502  the AI endpoint failed (error carries the reason)
"""

import logging

from flask import Blueprint, current_app, jsonify

from pmassist.ai.assistant import BUSY_ERROR
from pmassist.blueprints import json_body
from pmassist.models.entities import text_value
from pmassist.services.workspace import get_workspace

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/programs/<program_id>/ai")

# ── Rate limiting ─────────────────────────────────────────────────────────
from pmassist import limiter  # noqa: E402

_ai_generate_limit = limiter.shared_limit(
    lambda: current_app.config.get("AI_RATE_LIMIT", "30/minute"), scope="ai_generate",
)


@ai_bp.route("/<kind>", methods=["POST"])
@_ai_generate_limit
def ask_assistant(program_id, kind):
    data = json_body()
    assistant = get_workspace().assistant_for(program_id)
    prompt = text_value(data.get("prompt"), "prompt")
    result = assistant.ask(kind, custom_prompt=prompt)

    if result.ok:
        status = 200
    elif result.error == BUSY_ERROR:
        status = 409
    else:
        status = 502
    return jsonify(result.to_dict()), status
