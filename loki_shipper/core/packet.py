"""Push payload assembly and wire encoding."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from loki_shipper.ports.errors import SerializationError
from loki_shipper.ports.records import Stream

__all__ = ["Packet", "build_packet", "serialize_packet", "dumps"]


@dataclass(frozen=True, slots=True)
class Packet:
    """The push envelope: every stream sent in one request."""

    streams: tuple[Stream, ...]

    def as_dict(self) -> dict[str, Any]:
        return {"streams": [stream.as_dict() for stream in self.streams]}


def build_packet(streams: Iterable[Stream]) -> Packet:
    """Assemble streams into one packet, preserving their order."""
    return Packet(streams=tuple(streams))


def dumps(value: Any) -> str:
    """Encode a value as compact JSON with literal non-ASCII text.

    Raises:
        SerializationError: If the value holds something JSON cannot encode.
    """
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode log payload as JSON: {e}") from e


def serialize_packet(packet: Packet) -> bytes:
    """Encode a packet to the UTF-8 request body.

    Raises:
        SerializationError: If a stream carries an unencodable value.
    """
    return dumps(packet.as_dict()).encode("utf-8")
