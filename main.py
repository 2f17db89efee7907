"""
Tenant Bridge

Main application entry point. Configuration, services and blueprints are
set up by ``tenant_bridge.app.create_app``; this module adds response
compression, request correlation ids and timing, then serves with waitress.
"""

import logging as _logging
import os
import time
import uuid

from flask import g, request
from flask_compress import Compress
from waitress import serve

from tenant_bridge.app import create_app

_main_logger = _logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD = 2.0  # seconds

app = create_app()

# Initialize compression for API responses
Compress(app)
app.config['COMPRESS_MIMETYPES'] = ['application/json']
app.config['COMPRESS_LEVEL'] = 6
app.config['COMPRESS_MIN_SIZE'] = 500
app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024


@app.before_request
def _before_request():
    g.start_time = time.time()
    g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])


@app.after_request
def _after_request(response):
    duration = time.time() - getattr(g, "start_time", time.time())
    req_id = getattr(g, "request_id", "-")
    response.headers["X-Request-ID"] = req_id
    response.headers["X-Response-Time"] = f"{duration:.3f}s"

    if duration >= SLOW_REQUEST_THRESHOLD:
        _main_logger.warning(
            "SLOW REQUEST [%s] %s %s -> %d (%.2fs)",
            req_id, request.method, request.path, response.status_code, duration,
        )
    return response


if __name__ == "__main__":
    host = "0.0.0.0"
    port = int(os.environ.get("PORT", "8099"))
    cfg = app.config["BRIDGE_CFG"]
    _main_logger.info("Starting Tenant Bridge v%s on %s:%d", cfg.version, host, port)
    serve(app, host=host, port=port)
