"""End-to-end bridge flow against a mocked paho client."""

import logging
from unittest.mock import MagicMock, call

import pytest

from megad_bridge.config import BridgeConfig
from megad_bridge.lifecycle import LifecycleState, initialize_plugin
from megad_bridge.registry.base import Capability
from megad_bridge.registry.memory import InMemoryRegistry


def _deliver(paho: MagicMock, topic: str, payload: bytes) -> None:
    """Deliver a message through the on_message callback paho was given."""
    msg = MagicMock()
    msg.topic = topic
    msg.payload = payload
    paho.on_message(paho, None, msg)


def _broker_accepts(paho: MagicMock) -> None:
    """Fire the on_connect callback paho was given."""
    paho.on_connect(paho, None, MagicMock(), 0, None)


class TestBridgeFlow:
    """A single light going through startup, traffic and shutdown."""

    def test_full_flow(
        self,
        mock_paho: MagicMock,
        registry: InMemoryRegistry,
        bridge_config: BridgeConfig,
    ) -> None:
        """State reports and host commands flow both ways."""
        platform = initialize_plugin(registry, bridge_config)
        platform.on_start("Initial start")
        platform.on_configure()

        _broker_accepts(mock_paho)
        mock_paho.subscribe.assert_called_once_with("alex/11")

        record = platform.core.records[11]
        handle = record.registry_handle
        assert record.describe_state() == "UNKNOWN"

        # Controller reports the light on
        _deliver(mock_paho, "alex/11", b"1")
        assert record.last_known_state is True
        assert registry.read_attribute(handle, Capability.ON_OFF, "onOff") is True

        # User switches it off in the host
        registry.execute_command(handle, "off")
        mock_paho.publish.assert_called_once_with("alex/cmd", b"11:0", qos=0, retain=False)
        assert record.last_known_state is False

        # Controller echoes the new state
        _deliver(mock_paho, "alex/11", b"0")
        assert record.last_known_state is False
        assert registry.read_attribute(handle, Capability.ON_OFF, "onOff") is False

        platform.on_shutdown("Plugin stop")
        assert platform.state is LifecycleState.STOPPED
        mock_paho.disconnect.assert_called_once()

    def test_unknown_device_report(
        self,
        mock_paho: MagicMock,
        registry: InMemoryRegistry,
        bridge_config: BridgeConfig,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A report for an unconfigured id never reaches the registry."""
        platform = initialize_plugin(registry, bridge_config)
        platform.on_start()
        _broker_accepts(mock_paho)
        platform.core.handle_message("alex/11", b"1")

        with caplog.at_level(logging.WARNING):
            platform.core.handle_message("alex/99", b"0")

        assert "Device with ID 99 not found" in caplog.text
        handle = platform.core.records[11].registry_handle
        assert registry.read_attribute(handle, Capability.ON_OFF, "onOff") is True

    def test_command_before_connect_is_dropped(
        self, mock_paho: MagicMock, registry: InMemoryRegistry, bridge_config: BridgeConfig
    ) -> None:
        """Commands issued before the broker accepts the session are not sent."""
        platform = initialize_plugin(registry, bridge_config)
        platform.on_start()
        record = platform.core.records[11]

        registry.execute_command(record.registry_handle, "on")

        mock_paho.publish.assert_not_called()
        assert record.last_known_state is None

    def test_reconnect_restores_subscriptions(
        self, mock_paho: MagicMock, registry: InMemoryRegistry, bridge_config: BridgeConfig
    ) -> None:
        """After a broker restart the state topic is subscribed again."""
        platform = initialize_plugin(registry, bridge_config)
        platform.on_start()

        _broker_accepts(mock_paho)
        mock_paho.on_disconnect(mock_paho, None, MagicMock(), 7, None)
        assert not platform.context.connected
        _broker_accepts(mock_paho)

        assert mock_paho.subscribe.call_args_list == [call("alex/11"), call("alex/11")]
        assert platform.context.connected

    def test_degraded_bridge(
        self, mock_paho: MagicMock, registry: InMemoryRegistry, degraded_config: BridgeConfig
    ) -> None:
        """Without a broker the light exists but commands go nowhere."""
        platform = initialize_plugin(registry, degraded_config)
        platform.on_start()
        record = platform.core.records[11]

        registry.execute_command(record.registry_handle, "on")

        mock_paho.publish.assert_not_called()
        assert registry.read_attribute(record.registry_handle, Capability.ON_OFF, "onOff")
        assert record.last_known_state is None
