"""Core domain models for the MegaD Bridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from megad_bridge.mqtt.client import MqttClient


@dataclass(slots=True)
class DeviceRecord:
    """Runtime view of one MegaD actuator.

    A record starts ``Unknown`` (``last_known_state is None``) and becomes
    ``Synced`` once a state report is applied or a command is published.
    """

    device_id: int
    """MegaD device ID."""

    display_name: str
    """Friendly name shown in the device registry."""

    registry_handle: Any
    """Opaque reference to the device object owned by the registry."""

    room: str | None = None
    """Optional room name."""

    last_known_state: bool | None = None
    """Last applied on/off state, or None while unknown."""

    @property
    def unique_id(self) -> str:
        """Storage key of the device in the registry."""
        return f"megad_{self.device_id}"

    @property
    def is_synced(self) -> bool:
        """Whether any state has been applied to this record yet."""
        return self.last_known_state is not None

    def describe_state(self) -> str:
        """Human-readable state label (``ON``, ``OFF`` or ``UNKNOWN``)."""
        if self.last_known_state is None:
            return "UNKNOWN"
        return "ON" if self.last_known_state else "OFF"


@dataclass(frozen=True, slots=True)
class Command:
    """A user or automation request to switch a device."""

    device_id: int
    desired_state: bool


@dataclass
class BridgeContext:
    """State shared between the lifecycle controller and the sync core.

    The MQTT session slot is written only by the lifecycle controller and read
    by the sync core when publishing. ``None`` means no live session.
    """

    mqtt: MqttClient | None = None

    @property
    def connected(self) -> bool:
        """True when a session exists and the broker connection is up."""
        return self.mqtt is not None and self.mqtt.is_connected()
