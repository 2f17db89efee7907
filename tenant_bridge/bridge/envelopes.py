"""Pydantic v2 models for voice assistant envelopes.

Only the fields the bridge reads are declared; everything else in the
protocol envelopes is ignored. ``parse_*`` helpers turn a raw body into a
model or raise :class:`InvalidRequest`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidRequest


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── Alexa Smart Home (payload version 3) ─────────────────────────────

class AlexaHeader(_Envelope):
    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    messageId: str = "message-id"
    correlationToken: str | None = None


class AlexaEndpoint(_Envelope):
    endpointId: str | None = None
    cookie: dict[str, Any] = Field(default_factory=dict)


class AlexaDirective(_Envelope):
    header: AlexaHeader
    endpoint: AlexaEndpoint | None = None


class AlexaRequest(_Envelope):
    directive: AlexaDirective


@dataclass(frozen=True)
class AlexaDiscover:
    message_id: str


@dataclass(frozen=True)
class AlexaPower:
    message_id: str
    correlation_token: str | None
    endpoint_id: str
    domain: str
    turn_on: bool


@dataclass(frozen=True)
class AlexaUnsupported:
    message_id: str
    correlation_token: str | None
    namespace: str
    name: str
    reason: str = ""


AlexaCommand = Union[AlexaDiscover, AlexaPower, AlexaUnsupported]


def alexa_command(request: AlexaRequest, default_domain: str = "light") -> AlexaCommand:
    """Classify a parsed directive into one of the supported variants."""
    header = request.directive.header
    key = (header.namespace, header.name)

    if key == ("Alexa.Discovery", "Discover"):
        return AlexaDiscover(message_id=header.messageId)

    if key in (("Alexa.PowerController", "TurnOn"), ("Alexa.PowerController", "TurnOff")):
        endpoint = request.directive.endpoint
        if endpoint is None or not endpoint.endpointId:
            return AlexaUnsupported(
                message_id=header.messageId,
                correlation_token=header.correlationToken,
                namespace=header.namespace,
                name=header.name,
                reason="Missing endpointId",
            )
        domain = endpoint.cookie.get("domain")
        return AlexaPower(
            message_id=header.messageId,
            correlation_token=header.correlationToken,
            endpoint_id=endpoint.endpointId,
            domain=domain if isinstance(domain, str) and domain else default_domain,
            turn_on=header.name == "TurnOn",
        )

    return AlexaUnsupported(
        message_id=header.messageId,
        correlation_token=header.correlationToken,
        namespace=header.namespace,
        name=header.name,
    )


# ── Google Smart Home ────────────────────────────────────────────────

class GoogleInput(_Envelope):
    intent: str = Field(..., min_length=1)
    payload: dict[str, Any] | None = None


class GoogleRequest(_Envelope):
    requestId: str = Field(..., min_length=1)
    inputs: list[GoogleInput] = Field(..., min_length=1)


class GoogleDevice(_Envelope):
    id: str = Field(..., min_length=1)
    customData: dict[str, Any] | None = None


class GoogleExecution(_Envelope):
    command: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class GoogleCommand(_Envelope):
    devices: list[GoogleDevice] = Field(default_factory=list)
    execution: list[GoogleExecution] = Field(default_factory=list)


class GoogleExecutePayload(_Envelope):
    commands: list[GoogleCommand] = Field(default_factory=list)


# ── Parsing helpers ──────────────────────────────────────────────────

def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "body"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def parse_model(model: type[BaseModel], raw: Any, what: str):
    if not isinstance(raw, dict):
        raise InvalidRequest(f"Invalid {what} payload: body must be a JSON object")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise InvalidRequest(f"Invalid {what} payload: {_describe(exc)}") from exc
