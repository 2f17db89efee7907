"""Shared test fixtures for Tenant Bridge tests.

Hub traffic never leaves the process: ``fake_hub`` patches
``requests.get``/``requests.post`` as seen by the hub client and answers
from an in-memory model of a Home Assistant instance.
"""
from __future__ import annotations

import json
from urllib.parse import urlparse

import pytest
import requests

from tenant_bridge.households import JsonHouseholdDirectory

_dumps = json.dumps

HUB_URL = "http://hub.local:8123"
HUB_TOKEN = "hub-token"

OWNER_ID = 10
KITCHEN_TENANT_ID = 20
LABEL_TENANT_ID = 21
PLAIN_TENANT_ID = 22
STRANGER_ID = 99


class _Resp:
    def __init__(self, status_code: int = 200, payload=None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


def _state(entity_id, state, friendly_name=None, **attributes):
    if friendly_name:
        attributes["friendly_name"] = friendly_name
    return {"entity_id": entity_id, "state": state, "attributes": attributes}


def default_states() -> list[dict]:
    return [
        _state("light.kitchen", "on", "Kitchen Light", icon="mdi:ceiling-light"),
        _state("light.living", "off", "Living Lamp"),
        _state("media_player.tv", "off", "Television"),
        _state("switch.boiler", "off", "Boiler"),
        _state("sensor.kitchen_temp", "21.5", "Kitchen Temperature"),
    ]


def default_metadata() -> list[dict]:
    return [
        {"entity_id": "light.kitchen", "area_name": "Kitchen", "labels": ["Light"]},
        {"entity_id": "light.living", "area_name": "Living Room", "labels": ["Lamp", "Light", "Lamp"]},
        {"entity_id": "media_player.tv", "area_name": "Living Room", "labels": ["TV"]},
        {"entity_id": "switch.boiler", "area_name": None, "labels": ["Boiler"]},
        {"entity_id": "sensor.kitchen_temp", "area_name": "Kitchen", "labels": []},
    ]


class FakeHub:
    """Minimal stand-in for the Home Assistant REST API."""

    def __init__(self) -> None:
        self.states = default_states()
        self.metadata = default_metadata()
        self.template_response: _Resp | None = None
        self.service_status: dict[str, int] = {}
        self.unreachable: set[str] = set()
        self.timed_out_entities: set[str] = set()
        self.calls: list[dict] = []

    # helpers ----------------------------------------------------------

    def service_calls(self) -> list[dict]:
        return [c for c in self.calls if c["path"].startswith("/api/services/")]

    def _find(self, entity_id):
        for state in self.states:
            if state["entity_id"] == entity_id:
                return state
        return None

    def _check(self, url, headers):
        parsed = urlparse(url)
        if parsed.netloc in self.unreachable:
            raise requests.ConnectionError(f"cannot reach {parsed.netloc}")
        assert headers["Authorization"] == f"Bearer {HUB_TOKEN}"
        return parsed.path

    # transport --------------------------------------------------------

    def get(self, url, headers=None, timeout=0):
        path = self._check(url, headers)
        self.calls.append({"method": "GET", "path": path, "timeout": timeout})
        if path == "/api/":
            return _Resp(200, {"message": "API running."})
        if path == "/api/states":
            return _Resp(200, self.states)
        if path.startswith("/api/states/"):
            state = self._find(path[len("/api/states/"):])
            if state is None:
                return _Resp(404, {"message": "Entity not found."})
            return _Resp(200, state)
        return _Resp(404, text="404: Not Found")

    def post(self, url, json=None, headers=None, timeout=0):
        path = self._check(url, headers)
        self.calls.append({"method": "POST", "path": path, "json": json, "timeout": timeout})
        if path == "/api/template":
            if self.template_response is not None:
                return self.template_response
            return _Resp(200, text=_dumps(self.metadata))
        if path.startswith("/api/services/"):
            _, _, _, domain, service = path.split("/")
            entity_id = (json or {}).get("entity_id")
            if entity_id in self.timed_out_entities:
                raise requests.Timeout(f"{domain}.{service} timed out for {entity_id}")
            status = self.service_status.get(entity_id, 200)
            if status != 200:
                return _Resp(status, text=f"Service {domain}.{service} failed")
            state = self._find(entity_id)
            if state is not None and service in ("turn_on", "turn_off"):
                state["state"] = "on" if service == "turn_on" else "off"
            return _Resp(200, [state] if state else [])
        return _Resp(404, text="404: Not Found")


@pytest.fixture
def fake_hub(monkeypatch):
    hub = FakeHub()
    monkeypatch.setattr("tenant_bridge.hub.client.http_requests.get", hub.get)
    monkeypatch.setattr("tenant_bridge.hub.client.http_requests.post", hub.post)
    return hub


def directory_payload() -> dict:
    return {
        "households": [
            {
                "id": 1,
                "name": "Flat 1",
                "owner_id": OWNER_ID,
                "hub": {"base_url": HUB_URL + "/", "access_token": HUB_TOKEN},
                "members": [
                    {"user_id": KITCHEN_TENANT_ID, "role": "TENANT", "area_filter": "Kitchen"},
                    {"user_id": LABEL_TENANT_ID, "role": "tenant", "label_filter": "Light, TV"},
                    {"user_id": PLAIN_TENANT_ID, "role": "TENANT"},
                ],
            },
            {"id": 2, "name": "Flat 2", "owner_id": 30},
        ]
    }


@pytest.fixture
def directory():
    return JsonHouseholdDirectory.from_dict(directory_payload())


@pytest.fixture(autouse=True)
def reset_auth_token_cache(monkeypatch, tmp_path):
    """Reset the auth token cache and isolate the options file per test.

    The cache is a module-level variable with a 60s TTL, so a test that sets
    it would otherwise leak into every later test that builds a client.
    """
    import tenant_bridge.api.security as sec

    monkeypatch.setenv("BRIDGE_OPTIONS_PATH", str(tmp_path / "options.json"))
    for name in ("BRIDGE_AUTH_TOKEN", "BRIDGE_AUTH_REQUIRED", "BRIDGE_VOICE_HOUSEHOLD_ID",
                 "BRIDGE_DIRECTORY_PATH"):
        monkeypatch.delenv(name, raising=False)
    sec._token_cache = ("", 0.0)
    yield
    sec._token_cache = ("", 0.0)
