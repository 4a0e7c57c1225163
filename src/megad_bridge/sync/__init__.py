"""Bidirectional synchronization between MQTT and the device registry."""

from megad_bridge.sync.core import SyncCore

__all__ = ["SyncCore"]
