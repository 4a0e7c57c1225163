"""Translation between MegaD MQTT topics and (device id, on/off) pairs.

State reports and commands live in disjoint topic spaces:

    alex/<deviceId>   inbound state report, payload "1" (on) or anything else (off)
    alex/cmd          outbound command, payload "<deviceId>:<0|1>"

A command therefore never decodes as a state report.
"""

import re

NAMESPACE = "alex"
"""Fixed topic namespace shared by state reports and commands."""

COMMAND_TOPIC = f"{NAMESPACE}/cmd"
"""Single command topic shared by all devices."""

ON_PAYLOAD = "1"
OFF_PAYLOAD = "0"

DEVICE_ID_PATTERN = re.compile(r"[0-9]+")


def state_topic(device_id: int) -> str:
    """Build the inbound state topic for a device.

    Examples:
        >>> state_topic(11)
        'alex/11'
    """
    return f"{NAMESPACE}/{device_id}"


def decode_inbound(topic: str, payload: bytes | str) -> tuple[int, bool] | None:
    """Decode a state report.

    Args:
        topic: The MQTT topic the message arrived on.
        payload: Raw message payload.

    Returns:
        ``(device_id, state)`` for topics of the form ``alex/<deviceId>``,
        or None for any other topic. Only a payload of ``"1"`` (surrounding
        whitespace ignored) means on; every other payload means off.

    Examples:
        >>> decode_inbound("alex/11", "1")
        (11, True)
        >>> decode_inbound("alex/11", "garbage")
        (11, False)
        >>> decode_inbound("alex/cmd", "11:1") is None
        True
    """
    parts = topic.split("/")
    if len(parts) != 2 or parts[0] != NAMESPACE:
        return None

    if not DEVICE_ID_PATTERN.fullmatch(parts[1]):
        return None

    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")

    return int(parts[1]), payload.strip() == ON_PAYLOAD


def encode_outbound(device_id: int, state: bool) -> tuple[str, str]:
    """Encode a command for the MegaD controller.

    Examples:
        >>> encode_outbound(11, True)
        ('alex/cmd', '11:1')
    """
    return COMMAND_TOPIC, f"{device_id}:{ON_PAYLOAD if state else OFF_PAYLOAD}"
