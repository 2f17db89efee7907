"""Pydantic validation decorator for Flask route handlers."""
from __future__ import annotations

import functools
import logging
from typing import Type

from flask import jsonify, request
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


def _field_errors(exc: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def validate_json(model: Type[BaseModel]):
    """Decorator that parses and validates the JSON request body.

    Usage::

        @bp.post("/control/service")
        @validate_json(ServiceControlRequest)
        def control_service(body: ServiceControlRequest, caller: int):
            ...

    On failure returns 400 with ``error_key`` ``invalid_request`` and, for
    schema violations, per-field details.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            raw = request.get_json(silent=True)
            if raw is None:
                return jsonify({
                    "ok": False,
                    "error": "invalid_json",
                    "error_key": "invalid_request",
                    "detail": "Request body must be valid JSON",
                }), 400

            if not isinstance(raw, dict):
                return jsonify({
                    "ok": False,
                    "error": "invalid_json",
                    "error_key": "invalid_request",
                    "detail": "Request body must be a JSON object",
                }), 400

            try:
                body = model.model_validate(raw)
            except ValidationError as exc:
                errors = _field_errors(exc)
                logger.debug("Rejected %s body: %s", model.__name__, errors)
                return jsonify({
                    "ok": False,
                    "error": "validation_error",
                    "error_key": "invalid_request",
                    "detail": errors,
                }), 400

            return fn(body, *args, **kwargs)

        return wrapper

    return decorator
