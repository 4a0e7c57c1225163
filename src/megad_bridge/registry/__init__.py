"""Device registry port, facade and in-memory host."""

from megad_bridge.registry.base import (
    ON_OFF_LIGHT,
    Capability,
    DeviceDescriptor,
    DeviceProfile,
    DeviceRegistry,
    RegistryError,
)
from megad_bridge.registry.facade import DeviceRegistryFacade
from megad_bridge.registry.memory import InMemoryRegistry, RegisteredDevice

__all__ = [
    "Capability",
    "DeviceDescriptor",
    "DeviceProfile",
    "DeviceRegistry",
    "DeviceRegistryFacade",
    "InMemoryRegistry",
    "ON_OFF_LIGHT",
    "RegisteredDevice",
    "RegistryError",
]
