from __future__ import annotations

import logging
from functools import wraps
from typing import Any

from flask import Flask, jsonify, request, session

from ..core.exceptions import DomainError, ValidationError
from ..core.enums import ErrorReason

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "STORAGE_ERROR": 500,
}


def login_required(view):
    """The session is populated by the external login layer."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": {"code": "UNAUTHENTICATED", "message": "Login required"}}), 401
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", reason=ErrorReason.INVALID_FIELD)
    return body


def pick(body: dict[str, Any], *names: str) -> dict[str, Any]:
    """Only the keys the client actually sent."""
    return {n: body[n] for n in names if n in body}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = STATUS_BY_KIND.get(e.kind, 400)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
        return jsonify({"error": e.to_dict()}), status
