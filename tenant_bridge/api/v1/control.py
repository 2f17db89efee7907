"""Direct control API.

POST /api/v1/control/service
  Body: {householdId, entity_id, service, domain?, data?}
  Returns: {ok, status, entity_id, domain, service, error?}

POST /api/v1/control/toggle
  Body: {householdId, entity_id, domain?}
  Returns: {ok, status, entity_id, domain, service, previous_state,
            new_state, warning?}

The caller is identified by the ``X-User-Id`` header.
"""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from ...errors import BridgeError
from ..responses import error_response, get_service, service_unavailable
from ..schemas import ServiceControlRequest, ToggleRequest
from ..security import require_caller, require_token
from ..validation import validate_json

_LOGGER = logging.getLogger(__name__)

bp = Blueprint("control", __name__, url_prefix="/control")


@bp.post("/service")
@require_token
@require_caller
@validate_json(ServiceControlRequest)
def control_service(body: ServiceControlRequest, caller: int):
    bridge = get_service("command_bridge")
    if bridge is None:
        return service_unavailable("CommandBridge")

    try:
        result = bridge.execute_control(
            body.householdId,
            caller,
            body.entity_id,
            body.domain,
            body.service,
            body.data,
        )
    except BridgeError as exc:
        return error_response(exc)

    if not result.ok:
        _LOGGER.warning("Service %s.%s failed for %s: %s", result.domain, body.service, body.entity_id, result.status)
        return jsonify(result.to_dict()), 502
    return jsonify(result.to_dict())


@bp.post("/toggle")
@require_token
@require_caller
@validate_json(ToggleRequest)
def control_toggle(body: ToggleRequest, caller: int):
    bridge = get_service("command_bridge")
    if bridge is None:
        return service_unavailable("CommandBridge")

    try:
        result = bridge.toggle(body.householdId, caller, body.entity_id, body.domain)
    except BridgeError as exc:
        return error_response(exc)

    if not result.control.ok:
        _LOGGER.warning("Toggle failed for %s: %s", body.entity_id, result.control.status)
        return jsonify(result.to_dict()), 502
    return jsonify(result.to_dict())
