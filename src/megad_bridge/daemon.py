"""Standalone daemon hosting the MegaD platform."""

import logging
import signal
import threading
from typing import Any

from megad_bridge.config import BridgeConfig
from megad_bridge.lifecycle import MegaDPlatform, initialize_plugin
from megad_bridge.observability.health import HealthServer, create_health_checker
from megad_bridge.observability.metrics import MetricsServer
from megad_bridge.registry.base import DeviceRegistry
from megad_bridge.registry.memory import InMemoryRegistry

logger = logging.getLogger(__name__)


class BridgeDaemon:
    """Runs the platform against a host registry with observability endpoints."""

    def __init__(
        self,
        config: BridgeConfig,
        registry: DeviceRegistry | None = None,
    ):
        """Initialize the bridge daemon.

        Args:
            config: Bridge configuration.
            registry: Host registry; an in-memory one is used when omitted.
        """
        self.config = config
        self._shutdown = threading.Event()

        self._init_logging()

        self.registry = registry if registry is not None else InMemoryRegistry()
        self.platform: MegaDPlatform = initialize_plugin(self.registry, config)

        # Observability servers
        self.metrics_server = MetricsServer(config.observability.metrics_port)
        self.health_server = HealthServer(
            config.observability.health_port,
            check_func=create_health_checker(self.platform),
        )

    def _init_logging(self) -> None:
        """Initialize logging configuration."""
        from megad_bridge.observability.logging import setup_logging

        setup_logging(
            level=self.config.observability.log_level,
            format_type=self.config.observability.log_format,
        )

    def start(self) -> None:
        """Start the observability endpoints and the platform."""
        logger.info("Starting MegaD Bridge daemon")

        self.metrics_server.start()
        self.health_server.start()

        self.platform.on_start("Daemon start")
        self.platform.on_configure()

    def request_shutdown(self) -> None:
        """Ask the main loop to exit."""
        self._shutdown.set()

    def run(self) -> None:
        """Run the main daemon loop until shutdown is requested."""
        self.start()

        try:
            while not self._shutdown.is_set():
                self._shutdown.wait(1.0)
        except KeyboardInterrupt:
            logger.info("Received interrupt signal")

        self.shutdown()

    def shutdown(self) -> None:
        """Gracefully shut down the daemon."""
        logger.info("Shutting down MegaD Bridge daemon")
        self._shutdown.set()

        self.platform.on_shutdown("Daemon shutdown")

        self.health_server.stop()
        self.metrics_server.stop()

        logger.info("Daemon shutdown complete")


def run_daemon(config: BridgeConfig) -> None:
    """Run the bridge daemon.

    Args:
        config: Bridge configuration.
    """
    daemon = BridgeDaemon(config)

    def signal_handler(signum: int, frame: Any) -> None:
        logger.info("Received signal %d", signum)
        daemon.request_shutdown()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    daemon.run()
