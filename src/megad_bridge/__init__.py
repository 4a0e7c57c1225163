"""MegaD Bridge: MQTT state synchronization for MegaD on/off actuators."""

__version__ = "1.0.0"
