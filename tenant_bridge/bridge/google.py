"""Google Smart Home fulfillment adapter.

Supports ``action.devices.SYNC`` and ``action.devices.EXECUTE`` with the
OnOff trait. EXECUTE runs every device of every command group on its own
worker and reports one result entry per device, so a failing device never
hides the outcome of the others.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..devices.categories import google_device_type
from ..devices.models import Device
from ..errors import (
    BridgeError,
    Forbidden,
    HubNotConfigured,
    HubUnauthorized,
    HubUnreachable,
    InvalidRequest,
    NotFound,
)
from ..households.models import AccessGrant
from .control import CommandBridge, VoiceIdentity
from .envelopes import GoogleExecutePayload, GoogleRequest, parse_model

_LOGGER = logging.getLogger(__name__)

INTENT_SYNC = "action.devices.SYNC"
INTENT_EXECUTE = "action.devices.EXECUTE"
COMMAND_ON_OFF = "action.devices.commands.OnOff"
TRAIT_ON_OFF = "action.devices.traits.OnOff"

_ERROR_CODES: dict[type, str] = {
    Forbidden: "deviceNotFound",
    NotFound: "deviceNotFound",
    HubUnreachable: "deviceOffline",
    HubNotConfigured: "deviceOffline",
    HubUnauthorized: "authFailure",
    InvalidRequest: "protocolError",
}


def error_code_for(exc: Exception) -> str:
    for cls in type(exc).__mro__:
        if cls in _ERROR_CODES:
            return _ERROR_CODES[cls]
    return "hardError"


@dataclass(frozen=True)
class _DeviceJob:
    entity_id: str
    domain: str | None
    command: str
    params: dict[str, Any]


class GoogleSmartHome:
    def __init__(
        self,
        bridge: CommandBridge,
        identity: VoiceIdentity,
        agent_user_id: str = "tenant-bridge-voice-user",
        manufacturer_name: str = "Tenant Bridge",
        max_workers: int = 8,
    ):
        self._bridge = bridge
        self._identity = identity
        self._agent_user_id = agent_user_id
        self._manufacturer = manufacturer_name
        self._max_workers = max(1, max_workers)

    def parse(self, body: Any) -> GoogleRequest:
        """Validate the envelope; raises :class:`InvalidRequest`."""
        return parse_model(GoogleRequest, body, "Google")

    def handle(self, request: GoogleRequest) -> dict[str, Any]:
        request_id = request.requestId
        first = request.inputs[0]
        try:
            if first.intent == INTENT_SYNC:
                return self._sync(request_id)
            if first.intent == INTENT_EXECUTE:
                return self._execute(request_id, first.payload)
        except InvalidRequest as exc:
            _LOGGER.warning("Malformed Google %s payload: %s", first.intent, exc)
            return {"requestId": request_id, "payload": {"errorCode": "protocolError"}}
        except Exception:
            _LOGGER.exception("Error handling Google Smart Home request")
            return {"requestId": request_id, "payload": {"errorCode": "internalError"}}

        _LOGGER.warning("Unhandled Google Smart Home intent: %s", first.intent)
        return {"requestId": request_id, "payload": {"errorCode": "notSupported"}}

    # ------------------------------------------------------------------
    # SYNC
    # ------------------------------------------------------------------

    def _descriptor(self, device: Device, index: int) -> dict[str, Any]:
        return {
            "id": device.entity_id,
            "type": google_device_type(device.label_category),
            "traits": [TRAIT_ON_OFF],
            "name": {"name": device.friendly_name},
            "roomHint": device.area_name or "",
            "willReportState": False,
            "attributes": {},
            "deviceInfo": {
                "manufacturer": self._manufacturer,
                "model": device.domain,
                "hwVersion": "1",
                "swVersion": "1",
            },
            "customData": {"domain": device.domain, "index": index},
        }

    def _sync(self, request_id: str) -> dict[str, Any]:
        grant = self._bridge.voice_grant(self._identity)
        devices = self._bridge.visible_devices(self._identity.household_id, grant)
        _LOGGER.info("Google SYNC: %d devices", len(devices))
        return {
            "requestId": request_id,
            "payload": {
                "agentUserId": self._agent_user_id,
                "devices": [self._descriptor(d, i) for i, d in enumerate(devices)],
            },
        }

    # ------------------------------------------------------------------
    # EXECUTE
    # ------------------------------------------------------------------

    def _jobs(self, payload: dict[str, Any] | None) -> list[_DeviceJob]:
        parsed = parse_model(GoogleExecutePayload, payload or {}, "Google EXECUTE")
        jobs: list[_DeviceJob] = []
        for group in parsed.commands:
            if not group.execution:
                continue
            execution = group.execution[0]
            for dev in group.devices:
                domain = (dev.customData or {}).get("domain")
                jobs.append(
                    _DeviceJob(
                        entity_id=dev.id,
                        domain=domain if isinstance(domain, str) and domain else None,
                        command=execution.command,
                        params=execution.params,
                    )
                )
        return jobs

    def _run_job(
        self, job: _DeviceJob, grant: AccessGrant, visible_ids: frozenset[str]
    ) -> dict[str, Any]:
        if job.command != COMMAND_ON_OFF:
            return {"ids": [job.entity_id], "status": "ERROR", "errorCode": "functionNotSupported"}

        on = bool(job.params.get("on"))
        try:
            result = self._bridge.execute_with_grant(
                self._identity.household_id,
                grant,
                job.entity_id,
                job.domain,
                "turn_on" if on else "turn_off",
                visible_ids=visible_ids,
            )
        except BridgeError as exc:
            _LOGGER.error("Error executing OnOff for %s: %s", job.entity_id, exc)
            return {"ids": [job.entity_id], "status": "ERROR", "errorCode": error_code_for(exc)}

        if not result.ok:
            code = "authFailure" if result.status in (401, 403) else "hardError"
            return {"ids": [job.entity_id], "status": "ERROR", "errorCode": code}
        return {"ids": [job.entity_id], "status": "SUCCESS", "states": {"on": on, "online": True}}

    def _execute(self, request_id: str, payload: dict[str, Any] | None) -> dict[str, Any]:
        jobs = self._jobs(payload)
        if not jobs:
            return {"requestId": request_id, "payload": {"commands": []}}

        grant = self._bridge.voice_grant(self._identity)
        try:
            visible_ids = frozenset(
                d.entity_id
                for d in self._bridge.visible_devices(self._identity.household_id, grant)
            )
        except BridgeError as exc:
            _LOGGER.error("Google EXECUTE could not load devices: %s", exc)
            code = error_code_for(exc)
            commands = [
                {"ids": [job.entity_id], "status": "ERROR", "errorCode": code} for job in jobs
            ]
            return {"requestId": request_id, "payload": {"commands": commands}}

        results: list[dict[str, Any]] = []
        workers = min(self._max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="google_exec_") as pool:
            futures = [pool.submit(self._run_job, job, grant, visible_ids) for job in jobs]
            for job, future in zip(jobs, futures):
                try:
                    results.append(future.result())
                except Exception:
                    _LOGGER.exception("Unexpected error executing %s", job.entity_id)
                    results.append(
                        {"ids": [job.entity_id], "status": "ERROR", "errorCode": "hardError"}
                    )

        return {"requestId": request_id, "payload": {"commands": results}}
