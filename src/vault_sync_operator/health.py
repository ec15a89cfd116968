"""Health, readiness and metrics endpoints for the operator."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.serving import make_server
from werkzeug.wrappers import Request, Response

logger = logging.getLogger(__name__)

Probe = Callable[[], bool]


def _probe_response(probe: Probe | None, ok_status: str, fail_status: str) -> Response:
    if probe is None:
        return Response(json.dumps({"status": ok_status}), mimetype="application/json", status=200)
    try:
        ok = probe()
    except Exception as e:
        logger.warning(f"Probe raised: {e}")
        ok = False
    if ok:
        return Response(json.dumps({"status": ok_status}), mimetype="application/json", status=200)
    return Response(json.dumps({"status": fail_status}), mimetype="application/json", status=503)


def create_combined_wsgi_app(
    health_probe: Probe | None = None,
    readiness_probe: Probe | None = None,
) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.
    
    Args:
        health_probe: Callable backing /healthz (Vault reachable)
        readiness_probe: Callable backing /readyz (Vault reachable, token valid)
        
    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()
    
    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        """WSGI app that routes /healthz and /readyz, delegates /metrics to prometheus."""
        path = Request(environ).path
        
        if path == "/healthz":
            response = _probe_response(health_probe, "ok", "unhealthy")
            return response(environ, start_response)
        elif path == "/readyz":
            response = _probe_response(readiness_probe, "ready", "not ready")
            return response(environ, start_response)
        else:
            # Delegate all other paths (including /metrics) to prometheus app
            return metrics_app(environ, start_response)
    
    return combined_app


def start_http_server(port: int, health_probe: Probe | None = None, readiness_probe: Probe | None = None) -> Any:
    """Serve metrics and probes from a background thread.

    Returns:
        The werkzeug server, so callers can shut it down
    """
    app = create_combined_wsgi_app(health_probe, readiness_probe)
    server = make_server("", port, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
