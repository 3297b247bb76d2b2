"""IPv4 packet building, checking and protocol dispatch."""

from __future__ import annotations

import struct
from collections.abc import Callable
from ipaddress import IPv4Address
from typing import Protocol, Union

from mayanet.ethernet import BROADCAST_MAC, ETHERTYPE_IPV4

PROTOCOL_ICMP = 1
PROTOCOL_TCP = 6
PROTOCOL_UDP = 17

VERSION = 4
HEADER_LENGTH = 20
DEFAULT_TTL = 64
MAX_PACKET_SIZE = 65535

_HEADER = struct.Struct("!BBHHHBBH4s4s")

Address = Union[IPv4Address, str, int, bytes]
ProtocolHandler = Callable[[IPv4Address, bytes], object]


class IPError(Exception):
    """Raised when a packet cannot be built or a handler cannot be registered."""


class Link(Protocol):
    def send_frame(self, dest_mac: bytes, ethertype: int, payload: bytes) -> bool: ...


def internet_checksum(data: bytes) -> int:
    """Return the ones' complement checksum of data, as used by IP and ICMP."""
    data = bytes(data)
    if len(data) % 2:
        data += b"\x00"
    total = sum((high << 8) | low for high, low in zip(data[0::2], data[1::2]))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def _zero_checksum(header: bytes) -> bytes:
    return header[:10] + b"\x00\x00" + header[12:]


class IPv4Layer:
    """One IPv4 interface on top of a link layer."""

    def __init__(
        self, link: Link, address: Address, subnet_mask: Address, gateway: Address
    ) -> None:
        self.link = link
        self.address = IPv4Address(address)
        self.subnet_mask = IPv4Address(subnet_mask)
        self.gateway = IPv4Address(gateway)
        self._handlers: dict[int, ProtocolHandler] = {}
        self._next_id = 0

    def register_protocol(self, protocol: int, handler: ProtocolHandler) -> None:
        """Route incoming packets of this protocol number to handler."""
        if not 0 <= protocol <= 0xFF:
            raise IPError(f"protocol number {protocol} out of range")
        self._handlers[protocol] = handler

    def next_hop(self, dest_ip: Address) -> IPv4Address:
        """Return dest_ip if it is on the local subnet, else the gateway."""
        dest = IPv4Address(dest_ip)
        mask = int(self.subnet_mask)
        if int(dest) & mask == int(self.address) & mask:
            return dest
        return self.gateway

    def send_packet(self, dest_ip: Address, protocol: int, payload: bytes) -> bool:
        """Wrap payload in an IPv4 header and hand it to the link layer."""
        dest = IPv4Address(dest_ip)
        payload = bytes(payload)
        if not payload:
            raise IPError("payload is empty")
        if not 0 <= protocol <= 0xFF:
            raise IPError(f"protocol number {protocol} out of range")
        total_length = HEADER_LENGTH + len(payload)
        if total_length > MAX_PACKET_SIZE:
            raise IPError(f"packet of {total_length} bytes is too large")

        header = _HEADER.pack(
            (VERSION << 4) | (HEADER_LENGTH // 4),
            0,
            total_length,
            self._next_id,
            0,
            DEFAULT_TTL,
            protocol,
            0,
            self.address.packed,
            dest.packed,
        )
        checksum = internet_checksum(header)
        header = header[:10] + checksum.to_bytes(2, "big") + header[12:]

        # Without address resolution every frame goes to the broadcast MAC.
        try:
            return bool(
                self.link.send_frame(BROADCAST_MAC, ETHERTYPE_IPV4, header + payload)
            )
        finally:
            self._next_id = (self._next_id + 1) & 0xFFFF

    def handle_packet(self, packet: bytes) -> bool:
        """Check a received packet and pass its payload to the protocol handler."""
        packet = bytes(packet)
        if len(packet) < HEADER_LENGTH:
            return False
        version, ihl = packet[0] >> 4, packet[0] & 0x0F
        header_length = ihl * 4
        if version != VERSION or ihl < 5 or len(packet) < header_length:
            return False

        header = packet[:header_length]
        received = int.from_bytes(header[10:12], "big")
        if internet_checksum(_zero_checksum(header)) != received:
            return False
        if header[16:20] != self.address.packed:
            return False

        total_length = int.from_bytes(header[2:4], "big")
        if total_length < header_length:
            return False
        handler = self._handlers.get(header[9])
        if handler is None:
            return False
        handler(IPv4Address(header[12:16]), packet[header_length:total_length])
        return True