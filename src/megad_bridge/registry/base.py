"""Port for the host device registry.

The host framework owns device objects, their persistence and the user
interface. The bridge only talks to it through :class:`DeviceRegistry`.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

CommandHandler = Callable[[], None]


class RegistryError(Exception):
    """Raised when the host registry rejects an operation."""

    pass


class Capability(Enum):
    """Capabilities a registry device can expose."""

    ON_OFF = "onOff"


@dataclass(frozen=True, slots=True)
class DeviceProfile:
    """A named set of capabilities the host uses to build a device."""

    name: str
    capabilities: frozenset[Capability]


ON_OFF_LIGHT = DeviceProfile(name="onOffLight", capabilities=frozenset({Capability.ON_OFF}))

ON_OFF_ATTRIBUTE = "onOff"


@dataclass(frozen=True, slots=True)
class DeviceDescriptor:
    """Identification data for a bridged device."""

    unique_id: str
    """Storage key; stable across restarts."""

    name: str
    serial_number: str
    vendor_name: str
    product_name: str
    hardware_version: int
    software_version: str
    room: str | None = None


class DeviceRegistry(ABC):
    """Host registry operations consumed by the bridge."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Version string of the host framework."""

    @abstractmethod
    def wait_ready(self, timeout: float | None = None) -> bool:
        """Block until the host has finished loading.

        Returns:
            True if the host is ready, False on timeout.
        """

    @abstractmethod
    def clear_select(self) -> None:
        """Drop stale device/entity selections kept by the host UI."""

    @abstractmethod
    def create(
        self,
        profile: DeviceProfile,
        descriptor: DeviceDescriptor,
        handlers: Mapping[str, CommandHandler],
    ) -> Any:
        """Create a device object and attach command handlers.

        Returns:
            An opaque handle to the created device.
        """

    @abstractmethod
    def register(self, handle: Any) -> None:
        """Expose a created device through the host."""

    @abstractmethod
    def find(self, predicate: Callable[[Any], bool]) -> Any | None:
        """Return the first registered handle matching the predicate."""

    @abstractmethod
    def devices(self) -> list[Any]:
        """Return all registered handles."""

    @abstractmethod
    def unique_id(self, handle: Any) -> str:
        """Return the storage key of a handle."""

    @abstractmethod
    def has_capability(self, handle: Any, capability: Capability) -> bool:
        """Check whether a device exposes a capability."""

    @abstractmethod
    def read_attribute(self, handle: Any, capability: Capability, attribute: str) -> Any:
        """Read an attribute value."""

    @abstractmethod
    def write_attribute(
        self, handle: Any, capability: Capability, attribute: str, value: Any
    ) -> None:
        """Write an attribute value."""

    @abstractmethod
    def deregister_all(self) -> None:
        """Remove every device registered by this plugin."""

    @abstractmethod
    def shutdown(self, reason: str | None = None) -> None:
        """Host-side shutdown hook."""
