"""Alexa Smart Home skill adapter (payload version 3).

Handles ``Alexa.Discovery#Discover`` and ``Alexa.PowerController#TurnOn`` /
``TurnOff``. Recoverable failures are answered with an ``ErrorResponse``
event; the HTTP layer always returns 200 for a well-formed envelope.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..devices.categories import alexa_display_category
from ..devices.models import Device
from ..errors import (
    BridgeError,
    Forbidden,
    HubNotConfigured,
    HubUnreachable,
    InvalidRequest,
    NotFound,
)
from .control import CommandBridge, VoiceIdentity
from .envelopes import (
    AlexaDiscover,
    AlexaPower,
    AlexaRequest,
    alexa_command,
    parse_model,
)

_LOGGER = logging.getLogger(__name__)

PAYLOAD_VERSION = "3"

_ERROR_TYPES: dict[type, str] = {
    Forbidden: "NO_SUCH_ENDPOINT",
    NotFound: "NO_SUCH_ENDPOINT",
    HubUnreachable: "BRIDGE_UNREACHABLE",
    HubNotConfigured: "BRIDGE_UNREACHABLE",
    InvalidRequest: "INVALID_DIRECTIVE",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def error_type_for(exc: Exception) -> str:
    for cls in type(exc).__mro__:
        if cls in _ERROR_TYPES:
            return _ERROR_TYPES[cls]
    return "INTERNAL_ERROR"


def error_response(
    message_id: str,
    error_type: str,
    message: str,
    *,
    correlation_token: str | None = None,
    endpoint_id: str | None = None,
) -> dict[str, Any]:
    header: dict[str, Any] = {
        "namespace": "Alexa",
        "name": "ErrorResponse",
        "messageId": message_id,
        "payloadVersion": PAYLOAD_VERSION,
    }
    if correlation_token:
        header["correlationToken"] = correlation_token
    event: dict[str, Any] = {
        "header": header,
        "payload": {"type": error_type, "message": message},
    }
    if endpoint_id:
        event["endpoint"] = {"endpointId": endpoint_id}
    return {"event": event}


class AlexaSmartHome:
    def __init__(
        self,
        bridge: CommandBridge,
        identity: VoiceIdentity,
        manufacturer_name: str = "Tenant Bridge",
    ):
        self._bridge = bridge
        self._identity = identity
        self._manufacturer = manufacturer_name

    def parse(self, body: Any) -> AlexaRequest:
        """Validate the envelope; raises :class:`InvalidRequest`."""
        return parse_model(AlexaRequest, body, "Alexa directive")

    def handle(self, request: AlexaRequest) -> dict[str, Any]:
        command = alexa_command(request)
        try:
            if isinstance(command, AlexaDiscover):
                return self._discover(command)
            if isinstance(command, AlexaPower):
                return self._power(command)
        except BridgeError as exc:
            _LOGGER.warning("Alexa directive %s failed: %s", type(command).__name__, exc)
            return error_response(
                command.message_id,
                error_type_for(exc),
                exc.message,
                correlation_token=getattr(command, "correlation_token", None),
                endpoint_id=getattr(command, "endpoint_id", None),
            )
        except Exception as exc:
            _LOGGER.exception("Error handling Alexa directive")
            return error_response(
                command.message_id,
                "INTERNAL_ERROR",
                str(exc) or "Internal error",
                correlation_token=getattr(command, "correlation_token", None),
            )

        _LOGGER.warning("Unhandled Alexa directive: %s.%s", command.namespace, command.name)
        return error_response(
            command.message_id,
            "INVALID_DIRECTIVE",
            command.reason or f"Unsupported directive: {command.namespace}.{command.name}",
            correlation_token=command.correlation_token,
        )

    # ------------------------------------------------------------------

    def _endpoint(self, device: Device) -> dict[str, Any]:
        return {
            "endpointId": device.entity_id,
            "manufacturerName": self._manufacturer,
            "friendlyName": device.friendly_name,
            "description": f"{device.domain} via {self._manufacturer}",
            "displayCategories": [alexa_display_category(device.label_category)],
            "cookie": {
                "domain": device.domain,
                "areaName": device.area_name or "",
                "labels": ",".join(device.labels),
            },
            "capabilities": [
                {"type": "AlexaInterface", "interface": "Alexa", "version": "3"},
                {
                    "type": "AlexaInterface",
                    "interface": "Alexa.PowerController",
                    "version": "3",
                    "properties": {
                        "supported": [{"name": "powerState"}],
                        "proactivelyReported": False,
                        "retrievable": False,
                    },
                },
            ],
        }

    def _discover(self, command: AlexaDiscover) -> dict[str, Any]:
        grant = self._bridge.voice_grant(self._identity)
        devices = self._bridge.visible_devices(self._identity.household_id, grant)
        _LOGGER.info("Alexa discovery: %d endpoints", len(devices))
        return {
            "event": {
                "header": {
                    "namespace": "Alexa.Discovery",
                    "name": "Discover.Response",
                    "messageId": command.message_id,
                    "payloadVersion": PAYLOAD_VERSION,
                },
                "payload": {"endpoints": [self._endpoint(d) for d in devices]},
            }
        }

    def _power(self, command: AlexaPower) -> dict[str, Any]:
        grant = self._bridge.voice_grant(self._identity)
        result = self._bridge.execute_with_grant(
            self._identity.household_id,
            grant,
            command.endpoint_id,
            command.domain,
            "turn_on" if command.turn_on else "turn_off",
        )
        if not result.ok:
            return error_response(
                command.message_id,
                "ENDPOINT_UNREACHABLE",
                f"Hub service call failed with status {result.status}",
                correlation_token=command.correlation_token,
                endpoint_id=command.endpoint_id,
            )

        header: dict[str, Any] = {
            "namespace": "Alexa",
            "name": "Response",
            "messageId": command.message_id,
            "payloadVersion": PAYLOAD_VERSION,
        }
        if command.correlation_token:
            header["correlationToken"] = command.correlation_token
        return {
            "context": {
                "properties": [
                    {
                        "namespace": "Alexa.PowerController",
                        "name": "powerState",
                        "value": "ON" if command.turn_on else "OFF",
                        "timeOfSample": _now_iso(),
                        "uncertaintyInMilliseconds": 500,
                    }
                ]
            },
            "event": {
                "header": header,
                "endpoint": {"endpointId": command.endpoint_id},
                "payload": {},
            },
        }
