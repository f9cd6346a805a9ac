"""Flask application factory."""

from __future__ import annotations

import atexit
import logging
import time
import uuid
from typing import Optional

from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS

from engine.config import RecallConfig, load_config
from engine.runtime import RecallRuntime, build_runtime

from .logging_setup import get_request_logger, setup_logging

LOGGER = logging.getLogger(__name__)

_EXTENSION_ORIGINS = [
    r"chrome-extension://.*",
    r"moz-extension://.*",
    "http://localhost:3100",
    "http://127.0.0.1:3100",
]


def create_app(
    config: Optional[RecallConfig] = None,
    runtime: Optional[RecallRuntime] = None,
) -> Flask:
    setup_logging()

    app = Flask(__name__)

    if runtime is None:
        runtime = build_runtime(config or load_config())
        atexit.register(runtime.close)
    app.config["RECALL_RUNTIME"] = runtime

    CORS(app, resources={r"/api/*": {"origins": _EXTENSION_ORIGINS}})

    request_logger = get_request_logger()

    @app.before_request
    def _assign_correlation_id() -> None:
        g.correlation_id = request.headers.get("X-Correlation-Id") or uuid.uuid4().hex
        g.request_perf_start = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        start = getattr(g, "request_perf_start", None)
        duration_ms = int((time.perf_counter() - start) * 1000) if start is not None else -1
        request_logger.info(
            "HTTP %s %s -> %s (%sms)",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            extra={"event": "http.request", "meta": {"duration_ms": duration_ms}},
        )
        correlation_id = getattr(g, "correlation_id", None)
        if correlation_id:
            response.headers["X-Correlation-Id"] = correlation_id
        return response

    @app.get("/health")
    def health() -> tuple[Response, int]:
        return jsonify({"ok": True, "capabilities": runtime.capability_status()}), 200

    from .api import messages as messages_api

    app.register_blueprint(messages_api.bp)

    LOGGER.info("Knowledge store API ready (db=%s)", runtime.store.path)
    return app


__all__ = ["create_app"]
