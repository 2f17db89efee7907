"""Shared authentication helpers for API blueprints.

Two concerns live here: the shared service token that protects every
endpoint, and the caller identity forwarded by the upstream session layer
in the ``X-User-Id`` header.
"""
from __future__ import annotations

import hmac
import json
import os
import time
from functools import wraps
from typing import Any, Callable

from flask import jsonify, request as flask_request

DEFAULT_OPTIONS_PATH = "/data/options.json"
USER_ID_HEADER = "X-User-Id"

# Token cache: (token_value, timestamp)
_token_cache: tuple[str, float] = ("", 0.0)
_TOKEN_CACHE_TTL = 60.0  # seconds


def options_path() -> str:
    return os.environ.get("BRIDGE_OPTIONS_PATH", "").strip() or DEFAULT_OPTIONS_PATH


def _read_options(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            opts: Any = json.load(fh) or {}
    except (OSError, ValueError):
        return {}
    return opts if isinstance(opts, dict) else {}


def get_auth_token(path: str | None = None) -> str:
    """Return the configured shared token, if any.

    Uses a 60-second TTL cache to avoid disk reads on every request.
    """
    global _token_cache

    now = time.monotonic()
    cached_token, cached_at = _token_cache
    if cached_token and (now - cached_at) < _TOKEN_CACHE_TTL:
        return cached_token

    token = os.environ.get("BRIDGE_AUTH_TOKEN", "").strip()
    if not token:
        token = str(_read_options(path or options_path()).get("auth_token", "")).strip()

    _token_cache = (token, now)
    return token


def is_auth_required(path: str | None = None) -> bool:
    """Check if authentication is required.

    Returns True by default. Can be disabled via
    ``BRIDGE_AUTH_REQUIRED=false`` or ``auth_required: false`` in the options.
    """
    env_value = os.environ.get("BRIDGE_AUTH_REQUIRED", "").lower().strip()
    if env_value == "false":
        return False
    if env_value == "true":
        return True

    if _read_options(path or options_path()).get("auth_required") is False:
        return False
    return True


def validate_token(request) -> bool:
    """Validate the shared token against the incoming request.

    Returns True if the token is valid, authentication is disabled, or no
    token is configured yet.
    """
    if not is_auth_required():
        return True

    token = get_auth_token()
    if not token:
        return True

    header_token = (request.headers.get("X-Auth-Token") or "").strip()
    if header_token and hmac.compare_digest(header_token, token):
        return True

    auth_header = (request.headers.get("Authorization") or "").strip()
    if auth_header.startswith("Bearer "):
        candidate = auth_header.split(" ", 1)[1].strip()
        if candidate and hmac.compare_digest(candidate, token):
            return True

    return False


def require_token(f: Callable) -> Callable:
    """Decorator to require valid token for an endpoint."""
    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        if not validate_token(flask_request):
            return jsonify({
                "ok": False,
                "error": "Authentication required",
                "message": "Valid X-Auth-Token header or Bearer token required"
            }), 401
        return f(*args, **kwargs)
    return decorated_function


def caller_id(request) -> int | None:
    """Integer user id from ``X-User-Id``; None when absent or malformed."""
    raw = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def require_caller(f: Callable) -> Callable:
    """Decorator passing the caller's user id as ``caller`` keyword.

    Responds 401 when no caller identity was forwarded.
    """
    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        user_id = caller_id(flask_request)
        if user_id is None:
            return jsonify({
                "ok": False,
                "error": "Not logged in",
                "error_key": "unauthenticated",
            }), 401
        kwargs["caller"] = user_id
        return f(*args, **kwargs)
    return decorated_function
