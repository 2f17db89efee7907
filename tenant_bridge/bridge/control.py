"""Command bridge core shared by the direct API and the voice adapters.

Every control request goes through the same steps: resolve the caller's
grant, check the target entity is in the caller's visible device set, derive
the domain from the entity id when not given, and make one service call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Collection

from ..devices.aggregator import DeviceAggregator
from ..devices.models import Device, domain_of
from ..errors import BridgeError, Forbidden, InvalidRequest, NotFound
from ..households.access import filter_for_grant, resolve_role
from ..households.models import AccessGrant, Household, Role
from ..hub.client import HubClient, HubClientFactory

_LOGGER = logging.getLogger(__name__)

# Services of the generic domain that act on the given entity only.
GENERIC_DOMAIN = "homeassistant"
GENERIC_ENTITY_SERVICES = frozenset({"turn_on", "turn_off", "toggle"})


def check_domain(entity_id: str, domain: str | None, service: str | None = None) -> None:
    """Reject an explicit domain that could reach beyond the target entity.

    A caller may name the entity's own domain, or the generic domain for
    one of its per-entity services. Anything else (``homeassistant.restart``
    with an allowed entity id, say) is refused before the hub is called.
    """
    if not domain or domain == domain_of(entity_id):
        return
    if domain == GENERIC_DOMAIN and (service is None or service in GENERIC_ENTITY_SERVICES):
        return
    raise InvalidRequest(f"Domain {domain} cannot be used to control {entity_id}")


@dataclass(frozen=True)
class VoiceIdentity:
    """Fixed identity used for voice assistant requests of one household.

    Without a ``user_id`` the voice identity is an unfiltered tenant, so only
    labeled devices are exposed to voice assistants.
    """

    household_id: int
    user_id: int | None = None


@dataclass(frozen=True)
class ControlResult:
    ok: bool
    status: int
    entity_id: str
    domain: str
    service: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": self.ok,
            "status": self.status,
            "entity_id": self.entity_id,
            "domain": self.domain,
            "service": self.service,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ToggleResult:
    control: ControlResult
    previous_state: str
    new_state: str | None = None
    warning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.control.to_dict()
        data["previous_state"] = self.previous_state
        data["new_state"] = self.new_state
        if self.warning:
            data["warning"] = self.warning
        return data


class CommandBridge:
    """Authorizes and executes control requests against a household hub."""

    def __init__(self, directory, hubs: HubClientFactory):
        self._directory = directory
        self._hubs = hubs

    # ------------------------------------------------------------------
    # Lookup & authorization
    # ------------------------------------------------------------------

    def household(self, household_id: int) -> Household:
        household = self._directory.get_household(household_id)
        if household is None:
            raise NotFound(f"Household {household_id} not found")
        return household

    def hub(self, household_id: int) -> HubClient:
        return self._hubs.for_household(household_id)

    def grant_for(self, household_id: int, caller_id: int | None) -> AccessGrant:
        return resolve_role(self.household(household_id), caller_id, self._directory)

    def voice_grant(self, identity: VoiceIdentity) -> AccessGrant:
        if identity.user_id is not None:
            return self.grant_for(identity.household_id, identity.user_id)
        self.household(identity.household_id)
        return AccessGrant(Role.TENANT)

    def device_listing(
        self, household_id: int, grant: AccessGrant
    ) -> tuple[list[Device], bool]:
        """Visible devices plus whether area/label enrichment was degraded."""
        if grant.role is Role.NONE:
            return [], False
        aggregator = DeviceAggregator(self.hub(household_id))
        devices = aggregator.list_devices()
        return filter_for_grant(devices, grant), aggregator.metadata_degraded

    def visible_devices(self, household_id: int, grant: AccessGrant) -> list[Device]:
        return self.device_listing(household_id, grant)[0]

    def authorize(self, household_id: int, grant: AccessGrant, entity_id: str) -> Device:
        """Return the target device or raise :class:`Forbidden`."""
        for device in self.visible_devices(household_id, grant):
            if device.entity_id == entity_id:
                return device
        raise Forbidden("You do not have access to this device.")

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def execute_control(
        self,
        household_id: int,
        caller_id: int | None,
        entity_id: str,
        domain: str | None,
        service: str,
        params: dict[str, Any] | None = None,
    ) -> ControlResult:
        check_domain(entity_id, domain, service)
        grant = self.grant_for(household_id, caller_id)
        return self.execute_with_grant(household_id, grant, entity_id, domain, service, params)

    def execute_with_grant(
        self,
        household_id: int,
        grant: AccessGrant,
        entity_id: str,
        domain: str | None,
        service: str,
        params: dict[str, Any] | None = None,
        visible_ids: Collection[str] | None = None,
    ) -> ControlResult:
        """Authorize and execute one service call.

        ``visible_ids`` lets batch callers pass a visible set computed once
        for the same grant instead of re-reading the hub per device.
        """
        if not entity_id or not service:
            raise InvalidRequest("entity_id and service are required")

        if visible_ids is None:
            self.authorize(household_id, grant, entity_id)
        elif entity_id not in visible_ids:
            raise Forbidden("You do not have access to this device.")
        domain = domain or domain_of(entity_id)
        payload = {**(params or {}), "entity_id": entity_id}

        result = self.hub(household_id).invoke_service(domain, service, payload)
        if not result.ok:
            _LOGGER.error(
                "Service call failed household=%s entity=%s %s.%s status=%s: %s",
                household_id, entity_id, domain, service, result.status, result.error,
            )
        return ControlResult(
            ok=result.ok,
            status=result.status,
            entity_id=entity_id,
            domain=domain,
            service=service,
            error=result.error,
        )

    def toggle(
        self,
        household_id: int,
        caller_id: int | None,
        entity_id: str,
        domain: str | None = None,
    ) -> ToggleResult:
        """Flip an entity between on and off.

        Reads the current state, then calls ``turn_off`` or ``turn_on``. The
        read and the write are not atomic; a concurrent change in between
        is not detected.
        """
        check_domain(entity_id, domain)
        grant = self.grant_for(household_id, caller_id)
        device = self.authorize(household_id, grant, entity_id)
        domain = domain or device.domain
        hub = self.hub(household_id)

        previous = hub.get_state(entity_id).state
        service = "turn_off" if previous == "on" else "turn_on"
        result = hub.invoke_service(domain, service, {"entity_id": entity_id})
        control = ControlResult(
            ok=result.ok,
            status=result.status,
            entity_id=entity_id,
            domain=domain,
            service=service,
            error=result.error,
        )
        if not result.ok:
            _LOGGER.error(
                "Toggle failed household=%s entity=%s %s.%s status=%s: %s",
                household_id, entity_id, domain, service, result.status, result.error,
            )
            return ToggleResult(control=control, previous_state=previous)

        try:
            new_state = hub.get_state(entity_id).state
        except BridgeError as exc:
            _LOGGER.warning("Toggle of %s succeeded but readback failed: %s", entity_id, exc)
            return ToggleResult(
                control=control,
                previous_state=previous,
                warning="Service call succeeded, but failed to fetch updated state",
            )
        return ToggleResult(control=control, previous_state=previous, new_state=new_state)
