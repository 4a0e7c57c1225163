"""On/off view of the host device registry.

The facade is the translation boundary between the host's capability-based
device objects and the bridge's (device id, state) vocabulary. It never
interprets why a command arrived.
"""

import logging
import threading

from megad_bridge.config import DeviceConfig
from megad_bridge.domain.models import DeviceRecord
from megad_bridge.registry.base import (
    ON_OFF_ATTRIBUTE,
    ON_OFF_LIGHT,
    Capability,
    CommandHandler,
    DeviceDescriptor,
    DeviceRegistry,
)

logger = logging.getLogger(__name__)

VENDOR_NAME = "MegaD"
SOFTWARE_VERSION = "1.0.0"


def build_descriptor(config: DeviceConfig) -> DeviceDescriptor:
    """Build the registry descriptor for a MegaD light."""
    return DeviceDescriptor(
        unique_id=f"megad_{config.id}",
        name=config.name,
        serial_number=f"MEGAD{config.id}",
        vendor_name=VENDOR_NAME,
        product_name=f"MegaD Light {config.id}",
        hardware_version=config.id,
        software_version=SOFTWARE_VERSION,
        room=config.room,
    )


class DeviceRegistryFacade:
    """Creates MegaD lights in the host registry and reads/writes their state."""

    def __init__(self, registry: DeviceRegistry):
        """Initialize the facade.

        Args:
            registry: Host registry to create devices in.
        """
        self._registry = registry
        self._records: dict[int, DeviceRecord] = {}
        self._lock = threading.Lock()

    @property
    def registry(self) -> DeviceRegistry:
        """The wrapped host registry."""
        return self._registry

    def create_device(
        self,
        config: DeviceConfig,
        on_turn_on: CommandHandler,
        on_turn_off: CommandHandler,
    ) -> DeviceRecord:
        """Create and register an on/off light for a configured device.

        Args:
            config: The device configuration.
            on_turn_on: Called by the host when the user turns the light on.
            on_turn_off: Called by the host when the user turns the light off.

        Returns:
            The new device record, in the ``Unknown`` state.
        """
        descriptor = build_descriptor(config)
        handle = self._registry.create(
            ON_OFF_LIGHT,
            descriptor,
            {"on": on_turn_on, "off": on_turn_off},
        )
        self._registry.register(handle)

        record = DeviceRecord(
            device_id=config.id,
            display_name=config.name,
            registry_handle=handle,
            room=config.room,
        )
        with self._lock:
            self._records[config.id] = record

        logger.info("Registered MegaD light: %s (ID: %d)", config.name, config.id)
        return record

    def find_by_device_id(self, device_id: int) -> DeviceRecord | None:
        """Look up the record of a materialized device."""
        with self._lock:
            return self._records.get(device_id)

    def records(self) -> list[DeviceRecord]:
        """All materialized records, ordered by device id."""
        with self._lock:
            return [self._records[key] for key in sorted(self._records)]

    def apply_state(self, record: DeviceRecord, state: bool) -> bool:
        """Write the on/off attribute of a device.

        Returns:
            True if the attribute was written, False if the device has no
            on/off capability.
        """
        handle = record.registry_handle
        if not self._registry.has_capability(handle, Capability.ON_OFF):
            logger.warning(
                "Device %d (%s) has no %s capability, skipping state write",
                record.device_id,
                record.display_name,
                Capability.ON_OFF.value,
            )
            return False

        self._registry.write_attribute(handle, Capability.ON_OFF, ON_OFF_ATTRIBUTE, state)
        return True

    def read_state(self, record: DeviceRecord) -> bool | None:
        """Read the on/off attribute back from the registry.

        Returns:
            The attribute value, or None if the device has no on/off capability.
        """
        handle = record.registry_handle
        if not self._registry.has_capability(handle, Capability.ON_OFF):
            return None
        return bool(self._registry.read_attribute(handle, Capability.ON_OFF, ON_OFF_ATTRIBUTE))

    def remove_all(self) -> None:
        """Deregister every device and forget all records."""
        self._registry.deregister_all()
        with self._lock:
            count = len(self._records)
            self._records.clear()
        logger.info("Removed %d MegaD devices from the registry", count)
