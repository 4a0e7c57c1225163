"""Health check endpoints for the MegaD Bridge.

``/health`` returns the full check result (200 when the broker connection
is up, 503 otherwise). ``/ready`` answers 200 once the platform reached the
``ready`` lifecycle state, degraded or not. ``/live`` always answers 200.
"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

HealthCheck = Callable[[], dict[str, Any]]


class HealthHandler(BaseHTTPRequestHandler):
    """HTTP handler for the health endpoints."""

    check_func: HealthCheck | None = None

    def do_GET(self) -> None:
        """Dispatch GET requests to the endpoint handlers."""
        routes = {
            "/health": self._handle_health,
            "/ready": self._handle_ready,
            "/live": self._handle_live,
        }
        handler = routes.get(self.path)
        if handler is None:
            self._send_json(404, {"error": f"unknown path {self.path}"})
            return
        handler()

    def _run_check(self) -> dict[str, Any]:
        if self.check_func is None:
            return {"status": "unknown", "lifecycle": "unknown"}
        return self.check_func()

    def _send_json(self, status_code: int, body: dict[str, Any]) -> None:
        data = json.dumps(body).encode()
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _handle_health(self) -> None:
        health = self._run_check()
        self._send_json(200 if health.get("status") == "healthy" else 503, health)

    def _handle_ready(self) -> None:
        lifecycle = self._run_check().get("lifecycle")
        ready = lifecycle == "ready"
        self._send_json(200 if ready else 503, {"ready": ready, "lifecycle": lifecycle})

    def _handle_live(self) -> None:
        self._send_json(200, {"alive": True})

    def log_message(self, format: str, *args: Any) -> None:
        """Suppress request logging."""
        pass


class HealthServer:
    """Background HTTP server for the health endpoints."""

    def __init__(
        self,
        port: int = 8080,
        check_func: HealthCheck | None = None,
        host: str = "0.0.0.0",
    ):
        """Initialize the health server.

        Args:
            port: Port to listen on; 0 picks a free port.
            check_func: Function that returns the health status dict.
            host: Interface to bind.
        """
        self.host = host
        self.port = port
        self._check_func = check_func
        self._server: HTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, or None when not running."""
        if self._server is None:
            return None
        return self._server.server_address[1]

    def start(self) -> None:
        """Start serving in a daemon thread."""
        check = staticmethod(self._check_func) if self._check_func is not None else None
        handler = type("BoundHealthHandler", (HealthHandler,), {"check_func": check})
        self._server = HTTPServer((self.host, self.port), handler)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="health-server", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the server. Safe to call when not running."""
        server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None


def create_health_checker(platform: Any) -> HealthCheck:
    """Create a health check function for a platform.

    Status is ``healthy`` only while the broker connection is up; degraded
    mode and broker outages both report ``degraded``.

    Args:
        platform: The MegaDPlatform to report on.
    """

    def check() -> dict[str, Any]:
        mqtt_connected = platform.context.connected
        return {
            "status": "healthy" if mqtt_connected else "degraded",
            "timestamp": int(time.time() * 1000),
            "mqtt_connected": mqtt_connected,
            "mqtt_configured": not platform.config.degraded,
            "lifecycle": platform.state.value,
            "devices": len(platform.core.records),
        }

    return check
