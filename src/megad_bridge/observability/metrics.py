"""Prometheus metrics for the MegaD Bridge."""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    generate_latest,
)


# Metric definitions
class BridgeMetrics:
    """Collection of Prometheus metrics for the bridge."""

    def __init__(self) -> None:
        """Initialize metrics."""
        # Counters
        self.messages_received_total = Counter(
            "megad_bridge_messages_received_total",
            "Total number of inbound MQTT state reports",
            ["result"],  # applied, decode_mismatch, unknown_device, capability_mismatch
        )

        self.commands_total = Counter(
            "megad_bridge_commands_total",
            "Total number of outbound device commands",
            ["result"],  # 'published' or 'dropped'
        )

        self.errors_total = Counter(
            "megad_bridge_errors_total",
            "Total number of errors",
            ["error_type"],
        )

        # Gauges
        self.mqtt_connected = Gauge(
            "megad_bridge_mqtt_connected",
            "MQTT connection status (1=connected, 0=disconnected)",
        )

        self.devices = Gauge(
            "megad_bridge_devices",
            "Number of MegaD devices materialized in the registry",
        )


# Global metrics instance
METRICS = BridgeMetrics()


class MetricsHandler(BaseHTTPRequestHandler):
    """Serves the default Prometheus registry on ``/metrics``."""

    def do_GET(self) -> None:
        """Handle GET requests."""
        if self.path != "/metrics":
            self.send_response(404)
            self.end_headers()
            return

        output = generate_latest()
        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE_LATEST)
        self.send_header("Content-Length", str(len(output)))
        self.end_headers()
        self.wfile.write(output)

    def log_message(self, format: str, *args: Any) -> None:
        """Suppress request logging."""
        pass


class MetricsServer:
    """Background HTTP server for Prometheus scrapes."""

    def __init__(self, port: int = 9090, host: str = "0.0.0.0"):
        """Initialize the metrics server.

        Args:
            port: Port to listen on; 0 picks a free port.
            host: Interface to bind.
        """
        self.host = host
        self.port = port
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
        self._server = HTTPServer((self.host, self.port), MetricsHandler)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="metrics-server", daemon=True
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
