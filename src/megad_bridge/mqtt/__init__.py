"""MQTT client layer for talking to the MegaD broker."""

from megad_bridge.mqtt.client import MqttClient, MqttClientError

__all__ = ["MqttClient", "MqttClientError"]
