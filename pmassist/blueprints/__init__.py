"""
Program Management Assistant
Blueprint registry and shared request helpers.
"""

from flask import request

from pmassist.core.exceptions import ValidationError


def json_body() -> dict:
    """The request's JSON object; an absent or unparseable body is ``{}``.

    Any other JSON value (array, string, number) is rejected with 422.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(
            "Request body must be a JSON object", details={"body": type(data).__name__},
        )
    return data
