"""Unit tests for MegaD topic encoding and decoding."""

import pytest

from megad_bridge.mapping.topics import (
    COMMAND_TOPIC,
    decode_inbound,
    encode_outbound,
    state_topic,
)


class TestDecodeInbound:
    """Tests for decode_inbound."""

    def test_on_payload(self) -> None:
        """Payload "1" means on."""
        assert decode_inbound("alex/11", "1") == (11, True)

    def test_off_payload(self) -> None:
        """Payload "0" means off."""
        assert decode_inbound("alex/11", "0") == (11, False)

    @pytest.mark.parametrize("payload", ["garbage", "", "on", "10", "true", "2"])
    def test_other_payloads_mean_off(self, payload: str) -> None:
        """Anything other than "1" decodes to off rather than failing."""
        assert decode_inbound("alex/11", payload) == (11, False)

    def test_payload_whitespace_is_ignored(self) -> None:
        """Surrounding whitespace is stripped before comparison."""
        assert decode_inbound("alex/11", " 1\n") == (11, True)

    def test_bytes_payload(self) -> None:
        """Raw MQTT payload bytes are accepted."""
        assert decode_inbound("alex/7", b"1") == (7, True)
        assert decode_inbound("alex/7", b"\xff\xfe") == (7, False)

    @pytest.mark.parametrize(
        "topic",
        [
            "foo/11",
            "alex",
            "alex/11/state",
            "/alex/11",
            "alex/",
            "ALEX/11",
        ],
    )
    def test_wrong_shape_is_rejected(self, topic: str) -> None:
        """Topics outside alex/<id> are not state reports."""
        assert decode_inbound(topic, "1") is None

    @pytest.mark.parametrize("segment", ["abc", "11abc", "-5", "1.5", " 11", "11\n"])
    def test_non_integer_device_id_is_rejected(self, segment: str) -> None:
        """The device segment must be a plain decimal integer."""
        assert decode_inbound(f"alex/{segment}", "1") is None

    def test_command_topic_is_not_a_state_report(self) -> None:
        """Commands and state reports live in disjoint topic spaces."""
        topic, payload = encode_outbound(11, True)
        assert decode_inbound(topic, payload) is None


class TestEncodeOutbound:
    """Tests for encode_outbound."""

    def test_on_command(self) -> None:
        """An on command targets the shared command topic."""
        assert encode_outbound(11, True) == ("alex/cmd", "11:1")

    def test_off_command(self) -> None:
        """An off command uses payload suffix 0."""
        assert encode_outbound(11, False) == ("alex/cmd", "11:0")

    def test_all_devices_share_command_topic(self) -> None:
        """Every device publishes to the same command topic."""
        topics = {encode_outbound(device_id, True)[0] for device_id in (1, 11, 999)}
        assert topics == {COMMAND_TOPIC}


class TestStateTopic:
    """Tests for state_topic."""

    def test_state_topic(self) -> None:
        """State topics are per device."""
        assert state_topic(11) == "alex/11"

    def test_state_topic_decodes(self) -> None:
        """A state topic is recognized by the decoder."""
        assert decode_inbound(state_topic(42), "1") == (42, True)
