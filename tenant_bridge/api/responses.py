"""Shared JSON response helpers for the v1 blueprints."""
from __future__ import annotations

import logging

from flask import current_app, jsonify

from ..errors import (
    BridgeError,
    Forbidden,
    HubError,
    HubNotConfigured,
    InvalidRequest,
    NotFound,
)

_LOGGER = logging.getLogger(__name__)


def http_status_for(exc: BridgeError) -> int:
    if isinstance(exc, InvalidRequest):
        return 400
    if isinstance(exc, Forbidden):
        return 403
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, HubNotConfigured):
        return 503
    if isinstance(exc, HubError):
        return 502
    return 500


def error_response(exc: BridgeError):
    """``{ok: false, error, error_key}`` with the mapped HTTP status."""
    status = http_status_for(exc)
    if status >= 500:
        _LOGGER.error("Request failed (%s): %s", exc.kind, exc.message)
    body = {"ok": False, "error": exc.message, "error_key": exc.kind}
    return jsonify(body), status


def get_service(name: str):
    """Return a service from ``app.config['BRIDGE_SERVICES']`` or None."""
    services = current_app.config.get("BRIDGE_SERVICES") or {}
    return services.get(name)


def service_unavailable(name: str):
    return jsonify({
        "ok": False,
        "error": f"{name} not initialized",
        "error_key": "service_unavailable",
    }), 503
