"""JSON error bodies for the API.

Every error response has the shape ``{"error": str, "code": str, "details"?: dict}``.

Views return them directly:

    return api_error(E.VALIDATION_REQUIRED, "status is required")

Domain exceptions raised by services are turned into the same shape by
``error_response(exc)``, which the app factory registers as the handler for
each type in ``EXCEPTION_CODES``.
"""

from __future__ import annotations

from flask import jsonify

from pmassist.core.exceptions import ConfirmationRequiredError, NotFoundError, ValidationError


class E:
    """Error codes (``ERR_`` prefix)."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"      # missing request field
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"        # value outside a closed set
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFIRMATION_REQUIRED = "ERR_CONFIRMATION_REQUIRED"  # destructive call without confirm
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    INTERNAL = "ERR_INTERNAL"


HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.NOT_FOUND: 404,
    E.CONFIRMATION_REQUIRED: 428,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

EXCEPTION_CODES: dict[type[Exception], str] = {
    NotFoundError: E.NOT_FOUND,
    ValidationError: E.VALIDATION_INVALID,
    ConfirmationRequiredError: E.CONFIRMATION_REQUIRED,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(jsonify(body), status)`` for ``code``; status defaults per code, else 400."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or HTTP_STATUS.get(code, 400)


def error_response(exc: Exception):
    """Render a domain exception. NotFoundError hides the looked-up id."""
    code = next(
        (c for exc_type, c in EXCEPTION_CODES.items() if isinstance(exc, exc_type)),
        E.INTERNAL,
    )
    if isinstance(exc, NotFoundError):
        return api_error(code, f"{exc.resource} not found")
    return api_error(code, str(exc), details=getattr(exc, "details", None))
