"""Tests for the CommandBridge core: authorization, service calls, toggle."""
from __future__ import annotations

import pytest

from conftest import KITCHEN_TENANT_ID, LABEL_TENANT_ID, OWNER_ID, STRANGER_ID, _Resp
from tenant_bridge.bridge.control import CommandBridge, VoiceIdentity
from tenant_bridge.errors import Forbidden, HubNotConfigured, InvalidRequest, NotFound
from tenant_bridge.households.models import AccessGrant, Role
from tenant_bridge.hub.client import HubClientFactory


@pytest.fixture
def bridge(directory):
    return CommandBridge(directory, HubClientFactory(directory, timeout=5.0))


# ── lookup ───────────────────────────────────────────────────────────

def test_unknown_household_is_not_found(bridge):
    with pytest.raises(NotFound):
        bridge.grant_for(404, OWNER_ID)


def test_visible_devices_follow_the_grant(bridge, fake_hub):
    grant = bridge.grant_for(1, KITCHEN_TENANT_ID)

    visible = bridge.visible_devices(1, grant)

    assert [d.entity_id for d in visible] == ["light.kitchen"]


def test_no_access_reads_nothing_from_the_hub(bridge, fake_hub):
    grant = bridge.grant_for(1, STRANGER_ID)

    assert bridge.visible_devices(1, grant) == []
    assert fake_hub.calls == []


def test_voice_grant_without_user_is_unfiltered_tenant(bridge):
    assert bridge.voice_grant(VoiceIdentity(1)) == AccessGrant(Role.TENANT)
    assert bridge.voice_grant(VoiceIdentity(1, KITCHEN_TENANT_ID)).area_filter == "Kitchen"
    with pytest.raises(NotFound):
        bridge.voice_grant(VoiceIdentity(404))


# ── execute_control ──────────────────────────────────────────────────

def test_execute_control_derives_domain_and_merges_params(bridge, fake_hub):
    result = bridge.execute_control(
        1, OWNER_ID, "light.living", None, "turn_on", {"brightness_pct": 40}
    )

    assert result.ok is True
    assert result.domain == "light"
    call = fake_hub.service_calls()[0]
    assert call["path"] == "/api/services/light/turn_on"
    assert call["json"] == {"entity_id": "light.living", "brightness_pct": 40}


def test_params_cannot_override_the_authorized_entity(bridge, fake_hub):
    bridge.execute_control(
        1, KITCHEN_TENANT_ID, "light.kitchen", "light", "turn_off", {"entity_id": "light.living"}
    )

    assert fake_hub.service_calls()[0]["json"]["entity_id"] == "light.kitchen"


def test_execute_control_explicit_domain_is_used(bridge, fake_hub):
    bridge.execute_control(1, OWNER_ID, "media_player.tv", "homeassistant", "turn_on")

    assert fake_hub.service_calls()[0]["path"] == "/api/services/homeassistant/turn_on"


@pytest.mark.parametrize(
    "domain, service",
    [("homeassistant", "restart"), ("switch", "turn_on"), ("script", "turn_on")],
)
def test_explicit_domain_cannot_reach_beyond_the_entity(bridge, fake_hub, domain, service):
    with pytest.raises(InvalidRequest):
        bridge.execute_control(1, KITCHEN_TENANT_ID, "light.kitchen", domain, service)
    with pytest.raises(InvalidRequest):
        bridge.toggle(1, KITCHEN_TENANT_ID, "light.kitchen", "switch")

    assert fake_hub.calls == []


def test_device_listing_reports_degraded_metadata(bridge, fake_hub):
    fake_hub.template_response = _Resp(500, text="boom")

    devices, degraded = bridge.device_listing(1, AccessGrant(Role.OWNER))

    assert degraded is True
    assert len(devices) == 5
    assert bridge.device_listing(1, AccessGrant(Role.NONE)) == ([], False)


def test_invisible_entity_is_forbidden_and_never_called(bridge, fake_hub):
    with pytest.raises(Forbidden):
        bridge.execute_control(1, KITCHEN_TENANT_ID, "media_player.tv", None, "turn_on")
    with pytest.raises(Forbidden):
        bridge.execute_control(1, STRANGER_ID, "light.kitchen", None, "turn_on")

    assert fake_hub.service_calls() == []


def test_unlabeled_entity_is_forbidden_for_tenants(bridge, fake_hub):
    with pytest.raises(Forbidden):
        bridge.execute_control(1, LABEL_TENANT_ID, "sensor.kitchen_temp", None, "turn_on")


def test_failed_service_call_is_a_result_not_an_exception(bridge, fake_hub):
    fake_hub.service_status["light.kitchen"] = 500

    result = bridge.execute_control(1, OWNER_ID, "light.kitchen", None, "turn_off")

    assert result.ok is False
    assert result.status == 500
    assert "failed" in result.error
    assert result.to_dict()["error"] == result.error


def test_missing_entity_or_service_is_invalid(bridge):
    grant = AccessGrant(Role.OWNER)

    with pytest.raises(InvalidRequest):
        bridge.execute_with_grant(1, grant, "", None, "turn_on")
    with pytest.raises(InvalidRequest):
        bridge.execute_with_grant(1, grant, "light.kitchen", None, "")


def test_execute_with_precomputed_visible_ids_skips_hub_reads(bridge, fake_hub):
    grant = AccessGrant(Role.TENANT)

    result = bridge.execute_with_grant(
        1, grant, "light.kitchen", None, "turn_off", visible_ids={"light.kitchen"}
    )
    with pytest.raises(Forbidden):
        bridge.execute_with_grant(
            1, grant, "light.living", None, "turn_off", visible_ids={"light.kitchen"}
        )

    assert result.ok is True
    assert [c["method"] for c in fake_hub.calls] == ["POST"]


def test_household_without_hub_is_not_configured(bridge):
    with pytest.raises(HubNotConfigured):
        bridge.execute_control(2, 30, "light.kitchen", None, "turn_on")


# ── toggle ───────────────────────────────────────────────────────────

def test_toggle_turns_on_entity_off_and_reads_back(bridge, fake_hub):
    result = bridge.toggle(1, OWNER_ID, "media_player.tv")

    assert result.control.service == "turn_on"
    assert result.previous_state == "off"
    assert result.new_state == "on"
    assert result.warning is None
    assert fake_hub.service_calls()[0]["path"] == "/api/services/media_player/turn_on"


def test_toggle_turns_off_entity_that_is_on(bridge, fake_hub):
    result = bridge.toggle(1, KITCHEN_TENANT_ID, "light.kitchen")

    assert result.control.service == "turn_off"
    assert result.to_dict()["new_state"] == "off"


def test_toggle_forbidden_entity(bridge, fake_hub):
    with pytest.raises(Forbidden):
        bridge.toggle(1, KITCHEN_TENANT_ID, "media_player.tv")


def test_toggle_failed_call_has_no_new_state(bridge, fake_hub):
    fake_hub.service_status["light.kitchen"] = 502

    result = bridge.toggle(1, OWNER_ID, "light.kitchen")

    assert result.control.ok is False
    assert result.new_state is None
    assert result.previous_state == "on"


def test_toggle_readback_failure_is_a_warning(bridge, fake_hub, monkeypatch):
    original_get = fake_hub.get
    state_reads = {"count": 0}

    def _flaky_get(url, headers=None, timeout=0):
        if "/api/states/" in url:
            state_reads["count"] += 1
            if state_reads["count"] == 2:
                return _Resp(500, text="boom")
        return original_get(url, headers=headers, timeout=timeout)

    monkeypatch.setattr("tenant_bridge.hub.client.http_requests.get", _flaky_get)

    result = bridge.toggle(1, OWNER_ID, "light.living")

    assert result.control.ok is True
    assert result.new_state is None
    assert result.warning == "Service call succeeded, but failed to fetch updated state"
    assert result.to_dict()["warning"] == result.warning
