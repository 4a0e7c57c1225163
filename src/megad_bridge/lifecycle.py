"""Platform lifecycle: startup and shutdown ordering for the MegaD Bridge.

The host framework drives the platform through four hooks:

    on_start               CREATED -> STARTING -> READY (STOPPED on failure)
    on_configure           logs the registered devices
    on_change_logger_level adjusts the bridge log level
    on_shutdown            -> SHUTTING_DOWN -> STOPPED

Every hook may be invoked more than once. Shutdown may arrive while startup
is still materializing devices; startup then stops creating devices.
"""

import logging
import re
import threading
from enum import Enum

from megad_bridge.config import BridgeConfig, ConfigError
from megad_bridge.domain.models import BridgeContext
from megad_bridge.mapping.topics import state_topic
from megad_bridge.mqtt.client import MqttClient, MqttClientError
from megad_bridge.observability.logging import set_package_level
from megad_bridge.observability.metrics import METRICS
from megad_bridge.registry.base import DeviceRegistry
from megad_bridge.registry.facade import DeviceRegistryFacade
from megad_bridge.sync.core import SyncCore

logger = logging.getLogger(__name__)

REQUIRED_HOST_VERSION = "3.0.7"


class HostVersionError(RuntimeError):
    """Raised when the host framework is older than the bridge supports."""

    pass


class LifecycleState(Enum):
    """Lifecycle states of a platform instance."""

    CREATED = "created"
    STARTING = "starting"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


def parse_version(version: str) -> tuple[int, ...]:
    """Parse the numeric part of a dotted version string.

    Examples:
        >>> parse_version("3.0.7")
        (3, 0, 7)
        >>> parse_version("3.1.0-dev.2")
        (3, 1, 0)
    """
    numbers: list[int] = []
    for part in version.strip().split("."):
        match = re.match(r"\d+", part)
        if not match:
            break
        numbers.append(int(match.group()))
        if match.end() != len(part):
            break
    return tuple(numbers)


def check_host_version(version: str, required: str = REQUIRED_HOST_VERSION) -> bool:
    """Return True if ``version`` is at least ``required``."""
    return parse_version(version) >= parse_version(required)


class MegaDPlatform:
    """Lifecycle controller exposing MegaD lights through the host registry."""

    def __init__(self, registry: DeviceRegistry, config: BridgeConfig):
        """Initialize the platform.

        Args:
            registry: Host device registry.
            config: Validated bridge configuration.

        Raises:
            HostVersionError: If the host is older than REQUIRED_HOST_VERSION.
        """
        if not check_host_version(registry.version):
            raise HostVersionError(
                f'This plugin requires host version >= "{REQUIRED_HOST_VERSION}". '
                f"Please update the host from {registry.version} to the latest version."
            )

        self.registry = registry
        self.config = config
        self.context = BridgeContext()
        self.facade = DeviceRegistryFacade(registry)
        self.core = SyncCore(self.context, self.facade)

        self._state = LifecycleState.CREATED
        self._lock = threading.Lock()

        logger.info("Initializing MegaD Platform...")
        logger.info("MQTT Broker: %s", config.mqtt.redacted_broker or "not configured")
        logger.info("Configured devices: %d", len(config.devices))

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        return self._state

    def _is_starting(self) -> bool:
        return self._state is LifecycleState.STARTING

    def on_start(self, reason: str | None = None) -> None:
        """Start the platform.

        Steps, in order: wait for the host registry, clear stale selections,
        open the MQTT session with one subscription per device, then create
        every configured device. A failed start leaves the platform STOPPED.

        Raises:
            ConfigError: If the broker URL cannot be used.
        """
        logger.info("onStart called with reason: %s", reason or "none")

        with self._lock:
            if self._state in (LifecycleState.STARTING, LifecycleState.READY):
                logger.info("Platform already %s, ignoring start", self._state.value)
                return
            if self._state is not LifecycleState.CREATED:
                logger.warning("Platform is %s, cannot start again", self._state.value)
                return
            self._state = LifecycleState.STARTING

        try:
            self.registry.wait_ready()
            self.registry.clear_select()

            self._initialize_mqtt()
            self._create_devices()
        except Exception as e:
            logger.error("Platform startup failed: %s", e)
            self._abort_start()
            raise

        with self._lock:
            if self._state is LifecycleState.STARTING:
                self._state = LifecycleState.READY
                logger.info("MegaD Platform ready with %d devices", len(self.core.records))

    def _abort_start(self) -> None:
        """Close any half-opened session and mark the platform stopped."""
        session, self.context.mqtt = self.context.mqtt, None
        if session is not None:
            session.disconnect()
            METRICS.mqtt_connected.set(0)
        with self._lock:
            self._state = LifecycleState.STOPPED

    def _initialize_mqtt(self) -> None:
        """Open the MQTT session, unless no broker is configured."""
        if self.config.degraded:
            logger.warning(
                "MQTT broker not configured - devices will be created "
                "but MQTT functionality will be disabled"
            )
            return
        if self.context.mqtt is not None or not self._is_starting():
            return

        try:
            client = MqttClient(
                self.config.mqtt,
                on_connect=self._on_mqtt_connect,
                on_disconnect=self._on_mqtt_disconnect,
                on_error=self._on_mqtt_error,
            )
        except MqttClientError as e:
            raise ConfigError(str(e)) from e

        for device in self.config.devices:
            client.subscribe(state_topic(device.id), self.core.handle_message)

        try:
            client.connect()
        except MqttClientError as e:
            logger.error("MQTT error: %s", e)
            METRICS.errors_total.labels(error_type="mqtt").inc()
            client.disconnect()
            return

        self.context.mqtt = client
        if not self._is_starting() and self.context.mqtt is client:
            # Shutdown ran while the session was being opened
            self.context.mqtt = None
            client.disconnect()

    def _create_devices(self) -> None:
        """Create a registry device for every configured device."""
        if not self._is_starting():
            return
        self.core.materialize(self.config.devices, should_continue=self._is_starting)

    def _on_mqtt_connect(self) -> None:
        """Handle MQTT connection."""
        logger.info("Connected to MQTT broker")
        METRICS.mqtt_connected.set(1)

    def _on_mqtt_disconnect(self) -> None:
        """Handle MQTT disconnection."""
        METRICS.mqtt_connected.set(0)

    def _on_mqtt_error(self, detail: str) -> None:
        """Handle MQTT connectivity errors."""
        logger.error("MQTT error: %s", detail)
        METRICS.errors_total.labels(error_type="mqtt").inc()

    def on_configure(self) -> None:
        """Host hook called after the devices have been registered."""
        logger.info("onConfigure called")
        for handle in self.registry.devices():
            logger.info("Configuring device: %s", self.registry.unique_id(handle))

    def on_change_logger_level(self, level: str | int) -> None:
        """Host hook called when the user changes the plugin log level."""
        logger.info("onChangeLoggerLevel called with: %s", level)
        try:
            set_package_level(level)
        except ValueError as e:
            logger.warning("%s", e)

    def on_shutdown(self, reason: str | None = None) -> None:
        """Shut the platform down.

        Steps, in order: end the MQTT session if one exists, run the host
        shutdown hook, then deregister all devices if configured to.
        """
        with self._lock:
            if self._state is not LifecycleState.STOPPED:
                self._state = LifecycleState.SHUTTING_DOWN

        session = self.context.mqtt
        if session is not None:
            logger.info("Disconnecting MQTT client...")
            self.context.mqtt = None
            session.disconnect()
            METRICS.mqtt_connected.set(0)

        self.registry.shutdown(reason)

        logger.info("onShutdown called with reason: %s", reason or "none")
        if self.config.unregister_on_shutdown:
            self.facade.remove_all()
            METRICS.devices.set(0)

        with self._lock:
            self._state = LifecycleState.STOPPED


def initialize_plugin(registry: DeviceRegistry, config: BridgeConfig) -> MegaDPlatform:
    """Plugin entry point called by the host framework."""
    return MegaDPlatform(registry, config)
