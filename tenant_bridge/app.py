import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from flask import Flask, jsonify, request

from tenant_bridge import __version__
from tenant_bridge.api.security import options_path, validate_token
from tenant_bridge.core_setup import init_services, register_blueprints

_LOGGER = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class BridgeConfig:
    version: str = os.environ.get("BRIDGE_VERSION", __version__)

    # Logging
    log_level: str = "info"

    # Auth
    auth_token: str = ""

    # Household directory; empty means "read households from the options"
    directory_path: str = ""

    # Hub calls
    hub_timeout_seconds: float = 10.0

    # Voice assistants
    voice_household_id: int | None = None
    voice_user_id: int | None = None
    voice_agent_user_id: str = "tenant-bridge-voice-user"
    manufacturer_name: str = "Tenant Bridge"
    google_max_workers: int = 8


def _load_options_json(path: str | None = None) -> dict[str, Any]:
    try:
        with open(path or options_path(), "r", encoding="utf-8") as fh:
            opts = json.load(fh) or {}
    except FileNotFoundError:
        return {}
    except (OSError, ValueError):
        _LOGGER.warning("Could not read add-on options from %s", path or options_path())
        return {}
    return opts if isinstance(opts, dict) else {}


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        _LOGGER.warning("Ignoring non-integer id %r", value)
        return None


def _build_config(opts: dict[str, Any] | None = None) -> BridgeConfig:
    if opts is None:
        opts = _load_options_json()

    log_level = str(opts.get("log_level", "info") or "info").strip().lower()
    token = os.environ.get("BRIDGE_AUTH_TOKEN", "").strip()
    if not token:
        token = str(opts.get("auth_token", "")).strip()

    directory_path = os.environ.get("BRIDGE_DIRECTORY_PATH", "").strip()
    if not directory_path:
        directory_path = str(opts.get("directory_path", "") or "").strip()

    try:
        hub_timeout = float(opts.get("hub_timeout_seconds", 10.0))
    except (TypeError, ValueError):
        hub_timeout = 10.0

    voice_household = os.environ.get("BRIDGE_VOICE_HOUSEHOLD_ID", "").strip() or opts.get("voice_household_id")

    try:
        max_workers = int(opts.get("google_max_workers", 8))
    except (TypeError, ValueError):
        max_workers = 8

    return BridgeConfig(
        log_level=log_level,
        auth_token=token,
        directory_path=directory_path,
        hub_timeout_seconds=max(1.0, min(hub_timeout, 60.0)),
        voice_household_id=_optional_int(voice_household),
        voice_user_id=_optional_int(opts.get("voice_user_id")),
        voice_agent_user_id=str(opts.get("voice_agent_user_id") or "tenant-bridge-voice-user"),
        manufacturer_name=str(opts.get("manufacturer_name") or "Tenant Bridge"),
        google_max_workers=max(1, min(max_workers, 32)),
    )


def _setup_logging(level: str) -> None:
    # Keep this intentionally simple; HA add-on base already manages log routing.
    lvl = logging.INFO
    if level in ("trace", "debug"):
        lvl = logging.DEBUG
    elif level == "info":
        lvl = logging.INFO
    elif level in ("warn", "warning"):
        lvl = logging.WARNING
    elif level == "error":
        lvl = logging.ERROR

    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logging.getLogger("werkzeug").setLevel(lvl)
    logging.getLogger("waitress").setLevel(lvl)


def create_app(cfg: BridgeConfig | None = None, directory=None) -> Flask:
    """Build the Flask app.

    ``cfg`` and ``directory`` default to the add-on options; tests pass them
    explicitly.
    """
    opts = _load_options_json()
    if cfg is None:
        cfg = _build_config(opts)
    _setup_logging(cfg.log_level)

    app = Flask(__name__)

    # Attach config to app (simple, explicit)
    app.config["BRIDGE_CFG"] = cfg

    services = init_services(cfg, opts, directory=directory)
    register_blueprints(app, services)

    @app.get("/health")
    def health():
        return jsonify({"ok": True, "time": _now_iso(), "port": int(os.environ.get("PORT", "8099"))})

    @app.get("/version")
    def version():
        return jsonify({"version": cfg.version, "time": _now_iso()})

    @app.before_request
    def _auth_middleware():
        # Allowlisted paths (no auth required)
        allowlist = {"/health", "/version"}

        if request.path in allowlist:
            return None

        if not validate_token(request):
            return jsonify({
                "ok": False,
                "error": "unauthorized",
                "message": "Valid X-Auth-Token header or Bearer token required"
            }), 401

        return None

    return app
