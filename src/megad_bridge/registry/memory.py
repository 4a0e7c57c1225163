"""In-process host registry used when the bridge runs standalone."""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from megad_bridge.registry.base import (
    ON_OFF_ATTRIBUTE,
    Capability,
    CommandHandler,
    DeviceDescriptor,
    DeviceProfile,
    DeviceRegistry,
    RegistryError,
)

logger = logging.getLogger(__name__)

DEFAULT_HOST_VERSION = "3.0.7"

# Attribute values a device starts with, per capability
INITIAL_ATTRIBUTES: dict[Capability, dict[str, Any]] = {
    Capability.ON_OFF: {ON_OFF_ATTRIBUTE: False},
}

# Attribute writes the host performs itself before invoking a command handler
COMMAND_EFFECTS: dict[str, tuple[Capability, str, Any]] = {
    "on": (Capability.ON_OFF, ON_OFF_ATTRIBUTE, True),
    "off": (Capability.ON_OFF, ON_OFF_ATTRIBUTE, False),
}


@dataclass
class RegisteredDevice:
    """Device object held by the in-memory registry."""

    profile: DeviceProfile
    descriptor: DeviceDescriptor
    handlers: dict[str, CommandHandler]
    attributes: dict[Capability, dict[str, Any]] = field(default_factory=dict)

    @property
    def unique_id(self) -> str:
        """Storage key of the device."""
        return self.descriptor.unique_id


class InMemoryRegistry(DeviceRegistry):
    """Thread-safe registry keeping device objects in memory.

    Nothing is persisted; a restart starts from an empty registry.
    """

    def __init__(self, version: str = DEFAULT_HOST_VERSION, ready: bool = True):
        """Initialize the registry.

        Args:
            version: Host version reported to plugins.
            ready: Whether the host is ready immediately. When False,
                ``wait_ready`` blocks until ``mark_ready`` is called.
        """
        self._version = version
        self._ready = threading.Event()
        if ready:
            self._ready.set()
        self._lock = threading.Lock()
        self._devices: dict[str, RegisteredDevice] = {}
        self.selection: dict[str, Any] = {}
        self.shutdown_reasons: list[str | None] = []

    @property
    def version(self) -> str:
        return self._version

    def mark_ready(self) -> None:
        """Signal that the host has finished loading."""
        self._ready.set()

    def wait_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def clear_select(self) -> None:
        self.selection.clear()

    def create(
        self,
        profile: DeviceProfile,
        descriptor: DeviceDescriptor,
        handlers: Mapping[str, CommandHandler],
    ) -> RegisteredDevice:
        attributes = {
            capability: dict(INITIAL_ATTRIBUTES.get(capability, {}))
            for capability in profile.capabilities
        }
        return RegisteredDevice(
            profile=profile,
            descriptor=descriptor,
            handlers=dict(handlers),
            attributes=attributes,
        )

    def register(self, handle: RegisteredDevice) -> None:
        with self._lock:
            if handle.unique_id in self._devices:
                raise RegistryError(f"Device {handle.unique_id} is already registered")
            self._devices[handle.unique_id] = handle
        logger.debug("Registered device %s", handle.unique_id)

    def find(self, predicate: Callable[[Any], bool]) -> RegisteredDevice | None:
        with self._lock:
            devices = list(self._devices.values())
        return next((device for device in devices if predicate(device)), None)

    def devices(self) -> list[RegisteredDevice]:
        with self._lock:
            return list(self._devices.values())

    def unique_id(self, handle: RegisteredDevice) -> str:
        return handle.unique_id

    def has_capability(self, handle: RegisteredDevice, capability: Capability) -> bool:
        return capability in handle.profile.capabilities

    def read_attribute(
        self, handle: RegisteredDevice, capability: Capability, attribute: str
    ) -> Any:
        try:
            return handle.attributes[capability][attribute]
        except KeyError:
            raise RegistryError(
                f"Device {handle.unique_id} has no attribute {capability.value}.{attribute}"
            ) from None

    def write_attribute(
        self, handle: RegisteredDevice, capability: Capability, attribute: str, value: Any
    ) -> None:
        values = handle.attributes.get(capability)
        if values is None or attribute not in values:
            raise RegistryError(
                f"Device {handle.unique_id} has no attribute {capability.value}.{attribute}"
            )
        values[attribute] = value

    def deregister_all(self) -> None:
        with self._lock:
            count = len(self._devices)
            self._devices.clear()
        logger.info("Deregistered %d devices", count)

    def shutdown(self, reason: str | None = None) -> None:
        self.shutdown_reasons.append(reason)

    def execute_command(self, handle: RegisteredDevice, command: str) -> None:
        """Simulate a user or automation issuing a command to a device.

        The host applies the command's attribute effect, then calls the
        handler the plugin attached for it.

        Raises:
            RegistryError: If the device has no handler for the command.
        """
        handler = handle.handlers.get(command)
        if handler is None:
            raise RegistryError(f"Device {handle.unique_id} has no '{command}' handler")

        effect = COMMAND_EFFECTS.get(command)
        if effect is not None and self.has_capability(handle, effect[0]):
            self.write_attribute(handle, *effect)

        handler()
