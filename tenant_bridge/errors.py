"""Error taxonomy shared by the hub client, the access layer and the adapters.

Every error carries a stable ``kind`` string so protocol adapters can map it
into their own vocabulary without matching on class names.
"""
from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""

    kind = "internal"

    def __init__(self, message: str = "", *, status: int | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.status = status

    def to_dict(self) -> dict:
        data = {"error": self.message, "error_key": self.kind}
        if self.status is not None:
            data["status"] = self.status
        return data


class HubError(BridgeError):
    """Raised for any failure talking to the smart-home hub."""

    kind = "hub_error"


class HubNotConfigured(HubError):
    kind = "hub_not_configured"


class HubUnreachable(HubError):
    """Connection error or timeout."""

    kind = "hub_unreachable"


class HubUnauthorized(HubError):
    kind = "hub_unauthorized"


class HubProtocolError(HubError):
    """Unexpected status code or malformed body."""

    kind = "hub_protocol_error"


class HubTemplateError(HubError):
    """The metadata template could not be rendered into JSON."""

    kind = "hub_template_error"


class Forbidden(BridgeError):
    kind = "forbidden"


class NotFound(BridgeError):
    kind = "not_found"


class InvalidRequest(BridgeError):
    kind = "invalid_request"


__all__ = [
    "BridgeError",
    "HubError",
    "HubNotConfigured",
    "HubUnreachable",
    "HubUnauthorized",
    "HubProtocolError",
    "HubTemplateError",
    "Forbidden",
    "NotFound",
    "InvalidRequest",
]
