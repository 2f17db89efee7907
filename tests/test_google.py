"""Tests for the Google Smart Home adapter."""
from __future__ import annotations

import pytest

from conftest import LABEL_TENANT_ID
from tenant_bridge.bridge.control import CommandBridge, VoiceIdentity
from tenant_bridge.bridge.google import GoogleSmartHome, error_code_for
from tenant_bridge.errors import (
    Forbidden,
    HubNotConfigured,
    HubProtocolError,
    HubUnauthorized,
    HubUnreachable,
    InvalidRequest,
    NotFound,
)
from tenant_bridge.hub.client import HubClientFactory


@pytest.fixture
def make_google(directory):
    def _make(household_id=1, user_id=None, max_workers=4):
        bridge = CommandBridge(directory, HubClientFactory(directory))
        return GoogleSmartHome(
            bridge,
            VoiceIdentity(household_id, user_id),
            agent_user_id="agent-1",
            manufacturer_name="Acme",
            max_workers=max_workers,
        )

    return _make


def _sync():
    return {"requestId": "req-sync", "inputs": [{"intent": "action.devices.SYNC"}]}


def _execute(*groups):
    return {
        "requestId": "req-exec",
        "inputs": [{"intent": "action.devices.EXECUTE", "payload": {"commands": list(groups)}}],
    }


def _on_off(on, *devices):
    return {
        "devices": [
            {"id": d} if isinstance(d, str) else {"id": d[0], "customData": {"domain": d[1]}}
            for d in devices
        ],
        "execution": [{"command": "action.devices.commands.OnOff", "params": {"on": on}}],
    }


def _run(google, body):
    return google.handle(google.parse(body))


# ── SYNC ─────────────────────────────────────────────────────────────

def test_sync_describes_visible_devices(make_google, fake_hub):
    response = _run(make_google(), _sync())

    assert response["requestId"] == "req-sync"
    payload = response["payload"]
    assert payload["agentUserId"] == "agent-1"
    ids = [d["id"] for d in payload["devices"]]
    assert ids == ["light.kitchen", "light.living", "media_player.tv", "switch.boiler"]

    tv = payload["devices"][2]
    assert tv["type"] == "action.devices.types.TV"
    assert tv["traits"] == ["action.devices.traits.OnOff"]
    assert tv["name"] == {"name": "Television"}
    assert tv["roomHint"] == "Living Room"
    assert tv["willReportState"] is False
    assert tv["deviceInfo"]["manufacturer"] == "Acme"
    assert tv["customData"] == {"domain": "media_player", "index": 2}
    assert payload["devices"][3]["roomHint"] == ""


def test_sync_respects_voice_user_filters(make_google, fake_hub):
    response = _run(make_google(user_id=LABEL_TENANT_ID), _sync())

    ids = [d["id"] for d in response["payload"]["devices"]]
    assert ids == ["light.kitchen", "light.living", "media_player.tv"]


def test_sync_unexpected_error_is_internal_error(make_google, monkeypatch):
    google = make_google()

    def _explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(google._bridge, "voice_grant", _explode)

    response = _run(google, _sync())

    assert response == {"requestId": "req-sync", "payload": {"errorCode": "internalError"}}


# ── EXECUTE ──────────────────────────────────────────────────────────

def test_execute_partial_failure_reports_each_device(make_google, fake_hub):
    fake_hub.service_status["media_player.tv"] = 500

    response = _run(
        make_google(),
        _execute(_on_off(True, ("light.kitchen", "light"), ("media_player.tv", "media_player"))),
    )

    assert response["requestId"] == "req-exec"
    assert response["payload"]["commands"] == [
        {"ids": ["light.kitchen"], "status": "SUCCESS", "states": {"on": True, "online": True}},
        {"ids": ["media_player.tv"], "status": "ERROR", "errorCode": "hardError"},
    ]
    paths = sorted(c["path"] for c in fake_hub.service_calls())
    assert paths == [
        "/api/services/light/turn_on",
        "/api/services/media_player/turn_on",
    ]


def test_execute_one_device_timing_out_does_not_stop_the_others(make_google, fake_hub):
    fake_hub.timed_out_entities.add("light.kitchen")

    response = _run(
        make_google(),
        _execute(_on_off(True, "light.kitchen", "light.living", "switch.boiler")),
    )

    assert response["payload"]["commands"] == [
        {"ids": ["light.kitchen"], "status": "ERROR", "errorCode": "deviceOffline"},
        {"ids": ["light.living"], "status": "SUCCESS", "states": {"on": True, "online": True}},
        {"ids": ["switch.boiler"], "status": "SUCCESS", "states": {"on": True, "online": True}},
    ]
    paths = sorted(c["path"] for c in fake_hub.service_calls())
    assert paths == [
        "/api/services/light/turn_on",
        "/api/services/light/turn_on",
        "/api/services/switch/turn_on",
    ]


def test_execute_keeps_request_order_across_groups(make_google, fake_hub):
    response = _run(
        make_google(max_workers=1),
        _execute(
            _on_off(False, "light.kitchen", "switch.boiler"),
            _on_off(True, "light.living"),
        ),
    )

    commands = response["payload"]["commands"]
    assert [c["ids"][0] for c in commands] == ["light.kitchen", "switch.boiler", "light.living"]
    assert [c["states"]["on"] for c in commands] == [False, False, True]
    paths = [c["path"] for c in fake_hub.service_calls()]
    assert "/api/services/switch/turn_off" in paths


def test_execute_invisible_device_is_device_not_found(make_google, fake_hub):
    response = _run(make_google(), _execute(_on_off(True, "sensor.kitchen_temp", "light.kitchen")))

    commands = response["payload"]["commands"]
    assert commands[0] == {
        "ids": ["sensor.kitchen_temp"], "status": "ERROR", "errorCode": "deviceNotFound",
    }
    assert commands[1]["status"] == "SUCCESS"


def test_execute_auth_failure_from_service_status(make_google, fake_hub):
    fake_hub.service_status["light.kitchen"] = 401

    response = _run(make_google(), _execute(_on_off(True, "light.kitchen")))

    assert response["payload"]["commands"][0]["errorCode"] == "authFailure"


def test_execute_unsupported_command_per_device(make_google, fake_hub):
    group = {
        "devices": [{"id": "light.kitchen"}, {"id": "light.living"}],
        "execution": [
            {"command": "action.devices.commands.BrightnessAbsolute", "params": {"brightness": 10}}
        ],
    }

    response = _run(make_google(), _execute(group))

    assert [c["errorCode"] for c in response["payload"]["commands"]] == [
        "functionNotSupported", "functionNotSupported",
    ]
    assert fake_hub.service_calls() == []


def test_execute_skips_groups_without_execution(make_google, fake_hub):
    response = _run(
        make_google(),
        _execute({"devices": [{"id": "light.kitchen"}], "execution": []}),
    )

    assert response["payload"]["commands"] == []
    assert fake_hub.calls == []


def test_execute_offline_hub_marks_every_device(make_google, fake_hub):
    fake_hub.unreachable.add("hub.local:8123")

    response = _run(make_google(), _execute(_on_off(True, "light.kitchen", "light.living")))

    assert [c["errorCode"] for c in response["payload"]["commands"]] == [
        "deviceOffline", "deviceOffline",
    ]


def test_execute_malformed_payload_is_protocol_error(make_google, fake_hub):
    body = {
        "requestId": "req-bad",
        "inputs": [{"intent": "action.devices.EXECUTE", "payload": {"commands": "nope"}}],
    }

    response = _run(make_google(), body)

    assert response == {"requestId": "req-bad", "payload": {"errorCode": "protocolError"}}


def test_unsupported_intent_is_not_supported(make_google, fake_hub):
    body = {"requestId": "req-q", "inputs": [{"intent": "action.devices.QUERY"}]}

    response = _run(make_google(), body)

    assert response == {"requestId": "req-q", "payload": {"errorCode": "notSupported"}}
    assert fake_hub.calls == []


@pytest.mark.parametrize(
    "body",
    [
        None,
        {"inputs": [{"intent": "action.devices.SYNC"}]},
        {"requestId": "r", "inputs": []},
        {"requestId": "r", "inputs": "SYNC"},
        {"requestId": "r", "inputs": [{"payload": {}}]},
    ],
)
def test_malformed_envelope_is_rejected(make_google, body):
    with pytest.raises(InvalidRequest):
        make_google().parse(body)


def test_error_code_mapping():
    assert error_code_for(Forbidden()) == "deviceNotFound"
    assert error_code_for(NotFound()) == "deviceNotFound"
    assert error_code_for(HubUnreachable()) == "deviceOffline"
    assert error_code_for(HubNotConfigured()) == "deviceOffline"
    assert error_code_for(HubUnauthorized()) == "authFailure"
    assert error_code_for(HubProtocolError()) == "hardError"
    assert error_code_for(KeyError("x")) == "hardError"
