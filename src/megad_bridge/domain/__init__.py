"""Domain models for MegaD Bridge."""

from megad_bridge.domain.models import BridgeContext, Command, DeviceRecord

__all__ = ["BridgeContext", "Command", "DeviceRecord"]
