"""ICMP echo handling and error messages."""

from __future__ import annotations

import struct
from collections.abc import Callable
from ipaddress import IPv4Address

from mayanet.ip import PROTOCOL_ICMP, internet_checksum

ECHO_REPLY = 0
DESTINATION_UNREACHABLE = 3
ECHO_REQUEST = 8

HEADER_SIZE = 8
MAX_ERROR_SIZE = 576
MIN_ORIGINAL_SIZE = 28

_HEADER = struct.Struct("!BBHHH")

EchoReplyHandler = Callable[[IPv4Address, int, int, bytes], object]


class IcmpError(Exception):
    """Raised when an ICMP message cannot be built."""


def _with_checksum(message: bytes) -> bytes:
    zeroed = message[:2] + b"\x00\x00" + message[4:]
    return zeroed[:2] + internet_checksum(zeroed).to_bytes(2, "big") + zeroed[4:]


class IcmpProtocol:
    """Answers echo requests and reports echo replies."""

    def __init__(self, ip) -> None:
        self.ip = ip
        self.on_echo_reply: EchoReplyHandler | None = None
        ip.register_protocol(PROTOCOL_ICMP, self.handle_packet)

    def send_echo_request(
        self, dest_ip, identifier: int, sequence: int, data: bytes
    ) -> bool:
        """Send an echo request carrying data."""
        data = bytes(data)
        if not data:
            raise IcmpError("echo data is empty")
        if not (0 <= identifier <= 0xFFFF and 0 <= sequence <= 0xFFFF):
            raise IcmpError("identifier and sequence are 16-bit values")
        message = _HEADER.pack(ECHO_REQUEST, 0, 0, identifier, sequence) + data
        return bool(self.ip.send_packet(dest_ip, PROTOCOL_ICMP, _with_checksum(message)))

    def handle_packet(self, src_ip, packet: bytes) -> bool:
        """Process a received ICMP message; return True if it was acted on."""
        packet = bytes(packet)
        if len(packet) < HEADER_SIZE:
            return False
        kind, _code, received, identifier, sequence = _HEADER.unpack_from(packet)
        if internet_checksum(packet[:2] + b"\x00\x00" + packet[4:]) != received:
            return False

        if kind == ECHO_REQUEST:
            reply = _with_checksum(bytes([ECHO_REPLY]) + packet[1:])
            self.ip.send_packet(src_ip, PROTOCOL_ICMP, reply)
            return True
        if kind == ECHO_REPLY and self.on_echo_reply is not None:
            self.on_echo_reply(
                IPv4Address(src_ip), identifier, sequence, packet[HEADER_SIZE:]
            )
            return True
        return False

    def send_destination_unreachable(self, dest_ip, code: int, original: bytes) -> bool:
        """Report an undeliverable packet, quoting as much of it as fits."""
        original = bytes(original)
        if len(original) < MIN_ORIGINAL_SIZE:
            raise IcmpError(
                f"original packet must be at least {MIN_ORIGINAL_SIZE} bytes"
            )
        if not 0 <= code <= 0xFF:
            raise IcmpError(f"code {code} out of range")
        total_length = min(HEADER_SIZE + 4 + len(original), MAX_ERROR_SIZE)
        quoted = original[: total_length - HEADER_SIZE - 4]
        message = _HEADER.pack(DESTINATION_UNREACHABLE, code, 0, 0, 0) + bytes(4) + quoted
        return bool(self.ip.send_packet(dest_ip, PROTOCOL_ICMP, _with_checksum(message)))