"""Bidirectional state synchronization between MQTT and the device registry.

Inbound:  alex/<id> state report -> decode -> registry on/off write -> Synced(state)
Outbound: registry on/off command -> encode -> publish on alex/cmd -> Synced(desired)

Outbound transitions are optimistic: the record is updated as soon as the
command is handed to the broker, without waiting for the state report to
echo back. Nothing here retries or queues; failures are logged and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from functools import partial
from typing import Any, Literal

from megad_bridge.config import DeviceConfig
from megad_bridge.domain.models import BridgeContext, Command, DeviceRecord
from megad_bridge.mapping.topics import decode_inbound, encode_outbound
from megad_bridge.mqtt.client import MqttClientError
from megad_bridge.observability.logging import get_logger
from megad_bridge.observability.metrics import METRICS
from megad_bridge.registry.base import RegistryError
from megad_bridge.registry.facade import DeviceRegistryFacade

logger = logging.getLogger(__name__)

# Dedicated audit logger for state transitions
audit_logger = get_logger("megad_bridge.audit")

TransitionSource = Literal["mqtt", "command"]


class SyncCore:
    """Keeps device records, registry state and MQTT traffic in step."""

    def __init__(self, context: BridgeContext, facade: DeviceRegistryFacade):
        """Initialize the sync core.

        Args:
            context: Shared context holding the (optional) MQTT session.
            facade: Registry facade used to create and update devices.
        """
        self._context = context
        self._facade = facade

    @property
    def facade(self) -> DeviceRegistryFacade:
        """The registry facade."""
        return self._facade

    @property
    def records(self) -> dict[int, DeviceRecord]:
        """Materialized records keyed by device id."""
        return {record.device_id: record for record in self._facade.records()}

    def materialize(
        self,
        configs: Iterable[DeviceConfig],
        should_continue: Callable[[], bool] | None = None,
    ) -> list[DeviceRecord]:
        """Create a registry device and record for every configured device.

        Devices that already have a record are skipped.

        Args:
            configs: Device configurations.
            should_continue: Checked before each device; materialization
                stops early when it returns False.

        Returns:
            Records created by this call.
        """
        created: list[DeviceRecord] = []
        for config in configs:
            if should_continue is not None and not should_continue():
                logger.info("Device creation interrupted after %d devices", len(created))
                break

            if self._facade.find_by_device_id(config.id) is not None:
                logger.debug("Device %d already materialized, skipping", config.id)
                continue

            logger.info("Creating configured device: %s (ID: %d)", config.name, config.id)
            try:
                record = self._facade.create_device(
                    config,
                    on_turn_on=partial(self.handle_command, config.id, True),
                    on_turn_off=partial(self.handle_command, config.id, False),
                )
            except RegistryError as e:
                logger.error("Failed to create device %d: %s", config.id, e)
                METRICS.errors_total.labels(error_type="registry").inc()
                continue
            created.append(record)

        METRICS.devices.set(len(self._facade.records()))
        return created

    def handle_message(self, topic: str, payload: bytes | str) -> None:
        """Apply an inbound MQTT state report.

        Args:
            topic: The MQTT topic.
            payload: The message payload.
        """
        logger.debug("MQTT message received - Topic: %s, Message: %r", topic, payload)

        decoded = decode_inbound(topic, payload)
        if decoded is None:
            logger.debug("Ignoring message on unrecognized topic %s", topic)
            METRICS.messages_received_total.labels(result="decode_mismatch").inc()
            return

        device_id, state = decoded
        record = self._facade.find_by_device_id(device_id)
        if record is None:
            logger.warning("Device with ID %d not found", device_id)
            METRICS.messages_received_total.labels(result="unknown_device").inc()
            return

        logger.info("Updating device %d state to: %s", device_id, "ON" if state else "OFF")
        try:
            written = self._facade.apply_state(record, state)
        except RegistryError as e:
            logger.error("Failed to update device %d: %s", device_id, e)
            METRICS.errors_total.labels(error_type="registry").inc()
            return

        if not written:
            METRICS.messages_received_total.labels(result="capability_mismatch").inc()
            return

        self._transition(record, state, source="mqtt", topic=topic)
        METRICS.messages_received_total.labels(result="applied").inc()

    def handle_command(self, device_id: int, desired_state: bool) -> None:
        """Command handler attached to each registry device."""
        record = self._facade.find_by_device_id(device_id)
        name = record.display_name if record else "?"
        logger.info(
            "Turning %s device %d (%s)", "ON" if desired_state else "OFF", device_id, name
        )
        self.send_command(device_id, desired_state)

    def send_command(self, device_id: int, desired_state: bool) -> bool:
        """Publish a command to the MegaD controller.

        Args:
            device_id: Target device.
            desired_state: True for on, False for off.

        Returns:
            True if the command was handed to the broker, False if dropped.
        """
        command = Command(device_id=device_id, desired_state=desired_state)

        session = self._context.mqtt
        if session is None:
            logger.warning(
                "MQTT client not connected, dropping command for device %d", device_id
            )
            METRICS.commands_total.labels(result="dropped").inc()
            return False

        topic, payload = encode_outbound(command.device_id, command.desired_state)
        logger.info("Publishing to %s: %s", topic, payload)
        try:
            session.publish(topic, payload)
        except MqttClientError as e:
            logger.error("Failed to publish command for device %d: %s", device_id, e)
            METRICS.commands_total.labels(result="dropped").inc()
            return False

        METRICS.commands_total.labels(result="published").inc()

        record = self._facade.find_by_device_id(device_id)
        if record is not None:
            self._transition(record, desired_state, source="command", topic=topic)
        return True

    def _transition(
        self,
        record: DeviceRecord,
        state: bool,
        *,
        source: TransitionSource,
        topic: str,
    ) -> None:
        """Move a record to Synced(state) and write an audit entry."""
        previous = record.last_known_state
        record.last_known_state = state

        entry: dict[str, Any] = {
            "device_id": record.device_id,
            "source": source,
            "topic": topic,
            "previous_state": previous,
            "new_state": state,
        }
        audit_logger.info("state_transition", **entry)
