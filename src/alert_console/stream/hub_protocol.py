"""
JSON hub protocol framing for the alert push endpoint.

Records are JSON objects terminated by the ASCII record separator (0x1E).
A single websocket frame may carry several records.

Message types handled:
    1 - Invocation (target + arguments), e.g. ReceiveAlert
    6 - Ping (keep-alive, no payload)
    7 - Close (optional "error", optional "allowReconnect")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterator, Optional

from alert_console.errors import TransportError

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "\x1e"
PROTOCOL_NAME = "json"
PROTOCOL_VERSION = 1

# Hub method the backend invokes for every alert transition
ALERT_RECEIVED_TARGET = "ReceiveAlert"


class HubMessageType(IntEnum):
    """Hub protocol message types."""
    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7


@dataclass(frozen=True)
class HubMessage:
    """A decoded hub record."""
    type: int
    target: Optional[str] = None
    arguments: list = field(default_factory=list)
    error: Optional[str] = None
    allow_reconnect: Optional[bool] = None


def encode_record(payload: dict) -> str:
    """Serialize one record and append the separator."""
    return json.dumps(payload, separators=(",", ":")) + RECORD_SEPARATOR


def handshake_request() -> str:
    return encode_record({"protocol": PROTOCOL_NAME, "version": PROTOCOL_VERSION})


def ping_message() -> str:
    return encode_record({"type": int(HubMessageType.PING)})


def close_message() -> str:
    return encode_record({"type": int(HubMessageType.CLOSE)})


def split_records(frame: Any) -> Iterator[str]:
    """Yield the non-empty records contained in a frame."""
    if isinstance(frame, (bytes, bytearray)):
        frame = frame.decode("utf-8")
    for record in frame.split(RECORD_SEPARATOR):
        if record.strip():
            yield record


def parse_handshake_response(frame: Any) -> list[str]:
    """
    Validate the handshake response and return any records after it.

    The server may piggy-back regular messages in the same frame as the
    handshake acknowledgment.

    Raises:
        TransportError: If the response is missing, malformed or carries an error
    """
    records = list(split_records(frame))
    if not records:
        raise TransportError("Empty handshake response")

    try:
        response = json.loads(records[0])
    except json.JSONDecodeError as e:
        raise TransportError(f"Malformed handshake response: {e}") from e

    if not isinstance(response, dict):
        raise TransportError(f"Unexpected handshake response: {records[0][:200]}")

    if response.get("error"):
        raise TransportError(f"Handshake rejected: {response['error']}")

    return records[1:]


def decode_frame(frame: Any) -> Iterator[HubMessage]:
    """
    Decode every record in a frame.

    Invalid JSON and records without a type are logged and skipped so one
    bad record does not drop the rest of the frame.
    """
    for record in split_records(frame):
        try:
            data = json.loads(record)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse hub record: {e}")
            continue

        if not isinstance(data, dict) or "type" not in data:
            logger.debug(f"Ignoring hub record without type: {record[:200]}")
            continue

        try:
            msg_type = int(data["type"])
        except (TypeError, ValueError):
            logger.debug(f"Ignoring hub record with invalid type: {record[:200]}")
            continue

        arguments = data.get("arguments") or []
        if not isinstance(arguments, list):
            arguments = [arguments]

        yield HubMessage(
            type=msg_type,
            target=data.get("target"),
            arguments=arguments,
            error=data.get("error"),
            allow_reconnect=data.get("allowReconnect"),
        )
