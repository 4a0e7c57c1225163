"""MQTT client wrapper with auth, TLS and connection event callbacks."""

import logging
import ssl
import threading
from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion, MQTTErrorCode

from megad_bridge.config import ConfigError, MqttConfig, parse_broker_url

logger = logging.getLogger(__name__)

# Type alias for message callbacks
MessageCallback = Callable[[str, bytes], None]

ErrorCallback = Callable[[str], None]


class MqttClientError(ConnectionError):
    """Raised when MQTT operations fail."""

    pass


def _is_success(reason_code: Any) -> bool:
    """Interpret a paho reason code, which may be an int or a ReasonCode."""
    if reason_code is None:
        return False
    if hasattr(reason_code, "is_failure"):
        return not reason_code.is_failure
    if hasattr(reason_code, "value"):
        return bool(reason_code.value == 0)
    return bool(reason_code == 0)


class MqttClient:
    """MQTT session towards the MegaD broker.

    This client wraps paho-mqtt v2.0+ and provides:
    - Username/password authentication
    - TLS for ``mqtts://`` and ``ssl://`` broker URLs
    - Subscriptions that are replayed on every (re)connect
    - ``connected``, ``disconnected`` and ``error`` event callbacks

    Reconnection is left to paho's network loop. Once ``disconnect()``
    returns no further callbacks are delivered.
    """

    def __init__(
        self,
        config: MqttConfig,
        on_connect: Callable[[], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
        on_error: ErrorCallback | None = None,
    ):
        """Initialize the MQTT client.

        Args:
            config: MQTT configuration. ``config.broker`` must be set.
            on_connect: Optional callback when connected.
            on_disconnect: Optional callback when disconnected.
            on_error: Optional callback receiving a description of connection errors.

        Raises:
            MqttClientError: If the broker URL is missing or malformed.
        """
        if not config.broker:
            raise MqttClientError("No MQTT broker configured")
        try:
            self.address = parse_broker_url(config.broker)
        except ConfigError as e:
            raise MqttClientError(str(e)) from e

        self.config = config
        self._on_connect_callback = on_connect
        self._on_disconnect_callback = on_disconnect
        self._on_error_callback = on_error

        self._client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            protocol=mqtt.MQTTv311,
        )

        # Connection state
        self._connected = threading.Event()
        self._started = False
        self._closed = False
        self._subscriptions: dict[str, MessageCallback] = {}
        self._lock = threading.Lock()

        # Set up callbacks
        self._client.on_connect = self._handle_connect
        self._client.on_connect_fail = self._handle_connect_fail
        self._client.on_disconnect = self._handle_disconnect
        self._client.on_message = self._handle_message

        # Configure authentication
        if config.username:
            password = config.password.get_secret_value() if config.password else None
            self._client.username_pw_set(config.username, password)
        elif self.address.username:
            # Credentials embedded in the broker URL
            self._client.username_pw_set(self.address.username, self.address.password)

        if self.address.use_tls:
            self._client.tls_set_context(ssl.create_default_context())

        self._client.reconnect_delay_set(
            min_delay=config.reconnect_delay_min,
            max_delay=config.reconnect_delay_max,
        )

    def _emit_error(self, detail: str) -> None:
        """Forward a connection error to the error callback."""
        if self._on_error_callback:
            self._on_error_callback(detail)

    def _handle_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: mqtt.ConnectFlags,
        reason_code: Any,
        properties: Any | None,
    ) -> None:
        """Handle connection callback."""
        if self._closed:
            return

        if not _is_success(reason_code):
            logger.error("MQTT connection refused: %s", reason_code)
            self._emit_error(f"connection refused: {reason_code}")
            return

        logger.info("Connected to MQTT broker %s:%d", self.address.host, self.address.port)
        self._connected.set()

        # Replay subscriptions
        with self._lock:
            topics = list(self._subscriptions)
        for topic in topics:
            self._send_subscribe(topic)

        if self._on_connect_callback:
            self._on_connect_callback()

    def _handle_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        """Handle a failed connection attempt (broker unreachable)."""
        if self._closed:
            return
        logger.warning(
            "Could not reach MQTT broker %s:%d", self.address.host, self.address.port
        )
        self._emit_error(f"broker {self.address.host}:{self.address.port} unreachable")

    def _handle_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: mqtt.DisconnectFlags,
        reason_code: Any,
        properties: Any | None,
    ) -> None:
        """Handle disconnection callback."""
        self._connected.clear()
        if self._closed:
            return

        logger.warning("Disconnected from MQTT broker: %s", reason_code)
        if self._on_disconnect_callback:
            self._on_disconnect_callback()

    def _handle_message(
        self,
        client: mqtt.Client,
        userdata: Any,
        message: mqtt.MQTTMessage,
    ) -> None:
        """Handle incoming message callback."""
        if self._closed:
            return

        with self._lock:
            matches = [
                callback
                for pattern, callback in self._subscriptions.items()
                if mqtt.topic_matches_sub(pattern, message.topic)
            ]

        for callback in matches:
            try:
                callback(message.topic, message.payload)
            except Exception as e:
                logger.error("Error in message callback for %s: %s", message.topic, e)

    def _send_subscribe(self, topic: str) -> None:
        """Send a SUBSCRIBE for a registered topic."""
        result = self._client.subscribe(topic)
        if result[0] != MQTTErrorCode.MQTT_ERR_SUCCESS:
            logger.error("Subscribe failed for %s: %s", topic, result[0])
        else:
            logger.info("Subscribed to %s", topic)

    def connect(self) -> None:
        """Start connecting to the MQTT broker.

        The connection is established in the background by paho's network
        loop; the ``on_connect`` callback fires once the broker accepts it.
        Calling connect on a started session is a no-op.

        Raises:
            MqttClientError: If the connection attempt cannot be started.
        """
        if self._closed:
            raise MqttClientError("Session already closed")
        if self._started:
            return

        try:
            self._client.connect_async(
                self.address.host,
                self.address.port,
                keepalive=self.config.keepalive,
            )
            self._client.loop_start()
        except Exception as e:
            raise MqttClientError(f"Connection failed: {e}") from e

        self._started = True
        logger.info("Connecting to MQTT broker %s:%d", self.address.host, self.address.port)

    def disconnect(self) -> None:
        """Disconnect from the MQTT broker.

        Idempotent. After this returns no callbacks are delivered.
        """
        if self._closed:
            return
        self._closed = True

        if self._started:
            self._client.disconnect()
            self._client.loop_stop()
        self._connected.clear()

        with self._lock:
            self._subscriptions.clear()
        logger.info("Disconnected from MQTT broker")

    def is_connected(self) -> bool:
        """Check if the client is currently connected."""
        return self._connected.is_set()

    @property
    def closed(self) -> bool:
        """True once disconnect() has been called."""
        return self._closed

    @property
    def subscribed_topics(self) -> frozenset[str]:
        """Topics registered on this session."""
        with self._lock:
            return frozenset(self._subscriptions)

    def publish(
        self,
        topic: str,
        payload: bytes | str,
        qos: int = 0,
        retain: bool = False,
    ) -> None:
        """Publish a message to a topic.

        Args:
            topic: MQTT topic to publish to.
            payload: Message payload.
            qos: Quality of Service level (0, 1, or 2).
            retain: Whether the broker should retain the message.

        Raises:
            MqttClientError: If not connected or publish fails.
        """
        if not self.is_connected():
            raise MqttClientError("Not connected to broker")

        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        result = self._client.publish(topic, payload, qos=qos, retain=retain)

        if result.rc != MQTTErrorCode.MQTT_ERR_SUCCESS:
            raise MqttClientError(f"Publish failed: {result.rc}")

        logger.debug("Published to %s (qos=%d, retain=%s)", topic, qos, retain)

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """Subscribe to a topic with a callback.

        The subscription is sent now if connected, and again after every
        reconnect.

        Args:
            topic: MQTT topic pattern to subscribe to.
            callback: Function to call when a message is received.
        """
        if self._closed:
            logger.debug("Ignoring subscribe to %s on closed session", topic)
            return

        with self._lock:
            self._subscriptions[topic] = callback

        if self.is_connected():
            self._send_subscribe(topic)
