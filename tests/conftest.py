"""Shared pytest fixtures for MegaD Bridge tests."""

import logging
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
import structlog
from paho.mqtt.enums import MQTTErrorCode

from megad_bridge.config import BridgeConfig, DeviceConfig, MqttConfig
from megad_bridge.observability.logging import PACKAGE_LOGGER
from megad_bridge.registry.memory import InMemoryRegistry


@pytest.fixture(autouse=True)
def restore_package_log_level() -> Iterator[None]:
    """Undo log level changes made through on_change_logger_level."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    structlog_config = structlog.get_config()
    yield
    package_logger.setLevel(level)
    structlog.configure(**structlog_config)


@pytest.fixture
def bedroom_light() -> DeviceConfig:
    """The single device used by most tests."""
    return DeviceConfig(id=11, name="Bedroom Light", room="Bedroom")


@pytest.fixture
def bridge_config(bedroom_light: DeviceConfig) -> BridgeConfig:
    """Configuration with a broker and one device."""
    return BridgeConfig(
        mqtt=MqttConfig(broker="mqtt://localhost:1883"),
        devices=[bedroom_light],
    )


@pytest.fixture
def degraded_config(bedroom_light: DeviceConfig) -> BridgeConfig:
    """Configuration without a broker."""
    return BridgeConfig(devices=[bedroom_light])


@pytest.fixture
def registry() -> InMemoryRegistry:
    """An empty, ready host registry."""
    return InMemoryRegistry()


@pytest.fixture
def mock_paho() -> Iterator[MagicMock]:
    """Patch the paho client class and return the instance the bridge will use."""
    with patch("megad_bridge.mqtt.client.mqtt.Client") as mock_client_cls:
        instance = mock_client_cls.return_value
        instance.subscribe.return_value = (MQTTErrorCode.MQTT_ERR_SUCCESS, 1)
        instance.publish.return_value = MagicMock(rc=MQTTErrorCode.MQTT_ERR_SUCCESS)
        yield instance
