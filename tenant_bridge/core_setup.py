"""
Core Setup - Service initialization and blueprint registration.

Builds the household directory, the hub client factory, the command bridge
and the voice adapters from a :class:`BridgeConfig`.
"""

import logging

from flask import Flask

from tenant_bridge.api.v1.blueprint import api_v1
from tenant_bridge.bridge import AlexaSmartHome, CommandBridge, GoogleSmartHome, VoiceIdentity
from tenant_bridge.households import HouseholdDirectory, JsonHouseholdDirectory
from tenant_bridge.hub import HubClientFactory

_LOGGER = logging.getLogger(__name__)


def _load_directory(cfg, options: dict | None) -> HouseholdDirectory:
    """Directory from ``directory_path`` when set, else the inline options."""
    if cfg.directory_path:
        return JsonHouseholdDirectory.from_file(cfg.directory_path)
    return JsonHouseholdDirectory.from_dict({"households": (options or {}).get("households", [])})


def init_services(cfg, options: dict | None = None, directory: HouseholdDirectory | None = None) -> dict:
    """
    Initialize all bridge services and return them as a dict for testing/dependency injection.

    Voice adapters are only created when a voice household is configured.
    """
    services: dict = {
        "directory": None,
        "hub_factory": None,
        "command_bridge": None,
        "alexa": None,
        "google": None,
    }

    if directory is None:
        directory = _load_directory(cfg, options)
    services["directory"] = directory

    hubs = HubClientFactory(directory, timeout=cfg.hub_timeout_seconds)
    services["hub_factory"] = hubs

    bridge = CommandBridge(directory, hubs)
    services["command_bridge"] = bridge

    if cfg.voice_household_id is None:
        _LOGGER.info("No voice household configured; voice endpoints disabled")
        return services

    identity = VoiceIdentity(household_id=cfg.voice_household_id, user_id=cfg.voice_user_id)
    services["alexa"] = AlexaSmartHome(
        bridge,
        identity,
        manufacturer_name=cfg.manufacturer_name,
    )
    services["google"] = GoogleSmartHome(
        bridge,
        identity,
        agent_user_id=cfg.voice_agent_user_id,
        manufacturer_name=cfg.manufacturer_name,
        max_workers=cfg.google_max_workers,
    )
    _LOGGER.info(
        "Voice adapters enabled for household %s (user %s)",
        identity.household_id, identity.user_id if identity.user_id is not None else "-",
    )
    return services


def register_blueprints(app: Flask, services: dict | None = None) -> None:
    """
    Register all API blueprints with the Flask app.

    Args:
        app: Flask application instance
        services: services dict from init_services(), exposed to the
            blueprints as ``app.config["BRIDGE_SERVICES"]``
    """
    app.register_blueprint(api_v1)
    app.config["BRIDGE_SERVICES"] = services or {}
