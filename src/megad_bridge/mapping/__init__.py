"""Mapping layer between MegaD MQTT topics and device state."""

from megad_bridge.mapping.topics import (
    COMMAND_TOPIC,
    NAMESPACE,
    decode_inbound,
    encode_outbound,
    state_topic,
)

__all__ = ["COMMAND_TOPIC", "NAMESPACE", "decode_inbound", "encode_outbound", "state_topic"]
