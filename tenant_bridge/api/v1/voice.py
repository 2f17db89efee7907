"""Voice assistant fulfillment endpoints.

POST /api/v1/voice/alexa   Alexa Smart Home directive -> Alexa event
POST /api/v1/voice/google  Google Smart Home intent   -> Google response

A well-formed envelope is always answered with 200; protocol level errors
are reported inside the response body. A malformed envelope gets 400.
"""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from ...errors import InvalidRequest
from ..responses import error_response, get_service, service_unavailable
from ..security import require_token

_LOGGER = logging.getLogger(__name__)

bp = Blueprint("voice", __name__, url_prefix="/voice")


def _fulfill(adapter_name: str, label: str):
    adapter = get_service(adapter_name)
    if adapter is None:
        return service_unavailable(label)

    try:
        envelope = adapter.parse(request.get_json(silent=True))
    except InvalidRequest as exc:
        _LOGGER.warning("Rejected %s request: %s", label, exc)
        return error_response(exc)

    return jsonify(adapter.handle(envelope))


@bp.post("/alexa")
@require_token
def alexa_fulfillment():
    return _fulfill("alexa", "Alexa Smart Home")


@bp.post("/google")
@require_token
def google_fulfillment():
    return _fulfill("google", "Google Smart Home")
