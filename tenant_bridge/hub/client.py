"""Authenticated REST client for a household's Home Assistant hub.

Wraps the handful of hub endpoints the bridge needs:

    GET  /api/                          connectivity check
    GET  /api/states                    all entity states
    GET  /api/states/<entity_id>        one entity state
    POST /api/template                  Jinja render (area/label metadata)
    POST /api/services/<domain>/<svc>   service call

Calls are single attempts with a bounded timeout; nothing is retried here.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import requests as http_requests

from ..errors import (
    HubNotConfigured,
    HubProtocolError,
    HubTemplateError,
    HubUnauthorized,
    HubUnreachable,
    NotFound,
)
from ..households.models import HubConnection

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Renders [{entity_id, area_name, labels[]}] for every entity. Labels are
# resolved to names and include entity, device and area level labels.
METADATA_TEMPLATE = """
{% set ns = namespace(result=[]) %}
{% for s in states %}
  {% set item = {
    "entity_id": s.entity_id,
    "area_name": area_name(s.entity_id),
    "labels": (labels(s.entity_id) | map('label_name') | list)
  } %}
  {% set ns.result = ns.result + [item] %}
{% endfor %}
{{ ns.result | tojson }}
""".strip()


@dataclass(frozen=True)
class HubState:
    entity_id: str
    state: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceCallResult:
    """Outcome of one service call; ``error`` keeps the hub's raw text."""

    ok: bool
    status: int
    error: str | None = None
    data: Any = None


def _snippet(text: str, limit: int = 200) -> str:
    return text[:limit] + ("…" if len(text) > limit else "")


class HubClient:
    """Client bound to one household's hub connection.

    A client without a connection raises :class:`HubNotConfigured` from
    every operation before touching the network.
    """

    def __init__(self, connection: HubConnection | None, timeout: float = DEFAULT_TIMEOUT):
        self.connection = connection
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return self.connection is not None

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _require_connection(self) -> HubConnection:
        if self.connection is None:
            raise HubNotConfigured("No Home Assistant instance configured for this household.")
        return self.connection

    def _headers(self, connection: HubConnection) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {connection.access_token}",
            "Content-Type": "application/json",
        }

    def _url(self, connection: HubConnection, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{connection.api_root}{path}"

    def _get(self, path: str):
        connection = self._require_connection()
        url = self._url(connection, path)
        try:
            return http_requests.get(url, headers=self._headers(connection), timeout=self.timeout)
        except http_requests.RequestException as exc:
            raise HubUnreachable(f"GET {path} failed: {exc}") from exc

    def _post(self, path: str, payload: dict):
        connection = self._require_connection()
        url = self._url(connection, path)
        try:
            return http_requests.post(
                url, json=payload, headers=self._headers(connection), timeout=self.timeout
            )
        except http_requests.RequestException as exc:
            raise HubUnreachable(f"POST {path} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(resp, what: str) -> None:
        if resp.status_code in (401, 403):
            raise HubUnauthorized(
                f"{what}: hub rejected the access token", status=resp.status_code
            )
        if not resp.ok:
            text = resp.text or f"Request failed with status {resp.status_code}"
            raise HubProtocolError(f"{what}: {_snippet(text)}", status=resp.status_code)

    @staticmethod
    def _json(resp, what: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise HubProtocolError(
                f"{what}: response is not valid JSON", status=resp.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def ping(self) -> str:
        """Return the hub's API greeting, raising on any failure."""
        resp = self._get("/api/")
        self._raise_for_status(resp, "ping")
        body = self._json(resp, "ping")
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return "Connection successful"

    def read_all_states(self) -> list[HubState]:
        resp = self._get("/api/states")
        self._raise_for_status(resp, "read states")
        body = self._json(resp, "read states")
        if not isinstance(body, list):
            raise HubProtocolError("read states: expected a JSON array", status=resp.status_code)

        states: list[HubState] = []
        for raw in body:
            if not isinstance(raw, dict) or not raw.get("entity_id"):
                raise HubProtocolError("read states: malformed state object", status=resp.status_code)
            attributes = raw.get("attributes")
            states.append(
                HubState(
                    entity_id=str(raw["entity_id"]),
                    state=str(raw.get("state", "")),
                    attributes=attributes if isinstance(attributes, dict) else {},
                )
            )
        return states

    def get_state(self, entity_id: str) -> HubState:
        resp = self._get(f"/api/states/{entity_id}")
        if resp.status_code == 404:
            raise NotFound(f"Entity {entity_id} not found on hub", status=404)
        self._raise_for_status(resp, f"read state {entity_id}")
        body = self._json(resp, f"read state {entity_id}")
        if not isinstance(body, dict):
            raise HubProtocolError(f"read state {entity_id}: expected a JSON object")
        attributes = body.get("attributes")
        return HubState(
            entity_id=str(body.get("entity_id", entity_id)),
            state=str(body.get("state", "")),
            attributes=attributes if isinstance(attributes, dict) else {},
        )

    def render_metadata_query(self, template: str = METADATA_TEMPLATE) -> list[dict[str, Any]]:
        """Render the area/label template and return its JSON array.

        Every failure except a missing hub configuration surfaces as
        :class:`HubTemplateError` so callers can degrade instead of abort.
        """
        try:
            resp = self._post("/api/template", {"template": template})
        except HubUnreachable as exc:
            raise HubTemplateError(str(exc)) from exc

        text = resp.text or ""
        if not resp.ok:
            raise HubTemplateError(
                text or f"Template render failed with status {resp.status_code}",
                status=resp.status_code,
            )
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise HubTemplateError(
                "Template did not return valid JSON. Got: " + _snippet(text),
                status=resp.status_code,
            ) from exc
        if not isinstance(data, list):
            raise HubTemplateError("Template did not return a JSON array", status=resp.status_code)
        return data

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def invoke_service(self, domain: str, service: str, payload: dict[str, Any]) -> ServiceCallResult:
        """Call ``domain.service`` once.

        A non-2xx answer is returned as a failed result with the hub's
        status and text; only transport failures raise.
        """
        resp = self._post(f"/api/services/{domain}/{service}", payload)
        text = resp.text or ""
        if not resp.ok:
            _LOGGER.warning(
                "Service call %s.%s for %s failed with status %s",
                domain, service, payload.get("entity_id"), resp.status_code,
            )
            return ServiceCallResult(
                ok=False,
                status=resp.status_code,
                error=text or f"Service call failed with status {resp.status_code}",
            )

        data = None
        if text:
            try:
                data = json.loads(text)
            except ValueError:
                data = None
        return ServiceCallResult(ok=True, status=resp.status_code, data=data)


class HubClientFactory:
    """Builds a :class:`HubClient` per household from the directory lookup."""

    def __init__(self, directory, timeout: float = DEFAULT_TIMEOUT):
        self._directory = directory
        self.timeout = timeout

    def for_household(self, household_id: int) -> HubClient:
        return HubClient(self._directory.get_hub_connection(household_id), timeout=self.timeout)
