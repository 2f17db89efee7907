"""Household device listing and hub connection test.

GET /api/v1/households/<id>/devices
  Returns: {ok, household: {id, name}, grant, count, labels, metadata_degraded, devices}

GET /api/v1/households/<id>/hub/ping
  Owner only. Returns: {ok, message} or {ok: false, error, error_key}
"""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from ...errors import BridgeError, Forbidden, HubError
from ...households.models import Role
from ..responses import error_response, get_service, service_unavailable
from ..security import require_caller, require_token

_LOGGER = logging.getLogger(__name__)

bp = Blueprint("households", __name__, url_prefix="/households")


@bp.get("/<int:household_id>/devices")
@require_token
@require_caller
def household_devices(household_id: int, caller: int):
    """Devices the caller may see, with the grant that filtered them."""
    bridge = get_service("command_bridge")
    if bridge is None:
        return service_unavailable("CommandBridge")

    try:
        household = bridge.household(household_id)
        grant = bridge.grant_for(household_id, caller)
        if grant.role is Role.NONE:
            raise Forbidden("You are not a member of this household.")
        devices, degraded = bridge.device_listing(household_id, grant)
    except BridgeError as exc:
        return error_response(exc)

    labels = sorted({label for device in devices for label in device.labels})
    return jsonify({
        "ok": True,
        "household": {"id": household.id, "name": household.name},
        "grant": grant.to_dict(),
        "count": len(devices),
        "labels": labels,
        "metadata_degraded": degraded,
        "devices": [device.to_dict() for device in devices],
    })


@bp.get("/<int:household_id>/hub/ping")
@require_token
@require_caller
def household_hub_ping(household_id: int, caller: int):
    """Connection test against the household's hub.

    Hub failures are reported in the body with status 200 so the caller
    can show the result of the test.
    """
    bridge = get_service("command_bridge")
    if bridge is None:
        return service_unavailable("CommandBridge")

    try:
        grant = bridge.grant_for(household_id, caller)
        if grant.role is not Role.OWNER:
            raise Forbidden("Only the household owner can test the hub connection.")
        message = bridge.hub(household_id).ping()
    except HubError as exc:
        _LOGGER.warning("Hub ping for household %s failed: %s", household_id, exc)
        body = {"ok": False, **exc.to_dict()}
        return jsonify(body)
    except BridgeError as exc:
        return error_response(exc)

    return jsonify({"ok": True, "message": message})
