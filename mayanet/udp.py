"""UDP sockets over IPv4."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass
from ipaddress import IPv4Address

from mayanet.ip import PROTOCOL_UDP, internet_checksum

HEADER_SIZE = 8
MAX_SOCKETS = 256
DYNAMIC_PORT_START = 49152
MAX_PACKET_SIZE = 65507

_HEADER = struct.Struct("!HHHH")

DatagramHandler = Callable[[IPv4Address, int, bytes], object]


class UdpError(Exception):
    """Raised when a socket cannot be created or a datagram cannot be sent."""


def udp_checksum(src_ip, dest_ip, segment: bytes) -> int:
    """Checksum of a UDP segment and its IPv4 pseudo-header.

    The checksum field of the segment itself is treated as zero.
    """
    segment = bytes(segment)
    if len(segment) < HEADER_SIZE:
        raise UdpError("segment is shorter than a UDP header")
    pseudo = (
        IPv4Address(src_ip).packed
        + IPv4Address(dest_ip).packed
        + struct.pack("!BBH", 0, PROTOCOL_UDP, len(segment))
    )
    return internet_checksum(pseudo + segment[:6] + b"\x00\x00" + segment[8:])


@dataclass(eq=False)
class UdpSocket:
    """A bound UDP port."""

    protocol: UdpProtocol
    local_port: int
    handler: DatagramHandler

    @property
    def is_open(self) -> bool:
        return self.protocol._sockets.get(self.local_port) is self

    def send(self, dest_ip, dest_port: int, data: bytes) -> bool:
        return self.protocol.send(self, dest_ip, dest_port, data)

    def close(self) -> None:
        self.protocol.close_socket(self)


class UdpProtocol:
    """Port table and datagram handling for one IP layer."""

    def __init__(self, ip) -> None:
        self.ip = ip
        self._sockets: dict[int, UdpSocket] = {}
        self._next_port = DYNAMIC_PORT_START
        ip.register_protocol(PROTOCOL_UDP, self.handle_packet)

    def _allocate_port(self) -> int:
        port = self._next_port
        self._next_port = (self._next_port + 1) & 0xFFFF
        if self._next_port < DYNAMIC_PORT_START:
            self._next_port = DYNAMIC_PORT_START
        return port

    def create_socket(self, port: int, handler: DatagramHandler) -> UdpSocket:
        """Bind a port; port 0 picks the next dynamic port."""
        if not 0 <= port <= 0xFFFF:
            raise UdpError(f"port {port} out of range")
        if port == 0:
            port = self._allocate_port()
        if port in self._sockets:
            raise UdpError(f"port {port} is already in use")
        if len(self._sockets) >= MAX_SOCKETS:
            raise UdpError("no free sockets")
        socket = UdpSocket(self, port, handler)
        self._sockets[port] = socket
        return socket

    def close_socket(self, socket: UdpSocket) -> None:
        if self._sockets.get(socket.local_port) is socket:
            del self._sockets[socket.local_port]

    def send(self, socket: UdpSocket, dest_ip, dest_port: int, data: bytes) -> bool:
        """Send data from socket to dest_ip:dest_port."""
        if self._sockets.get(socket.local_port) is not socket:
            raise UdpError("socket is closed")
        data = bytes(data)
        if not data:
            raise UdpError("data is empty")
        if not 0 <= dest_port <= 0xFFFF:
            raise UdpError(f"port {dest_port} out of range")
        total_length = HEADER_SIZE + len(data)
        if total_length > MAX_PACKET_SIZE:
            raise UdpError(f"datagram of {total_length} bytes is too large")

        dest = IPv4Address(dest_ip)
        header = _HEADER.pack(socket.local_port, dest_port, total_length, 0)
        checksum = udp_checksum(self.ip.address, dest, header + data)
        segment = header[:6] + checksum.to_bytes(2, "big") + data
        return bool(self.ip.send_packet(dest, PROTOCOL_UDP, segment))

    def handle_packet(self, src_ip, packet: bytes) -> bool:
        """Deliver a received segment to the socket bound to its port."""
        packet = bytes(packet)
        if len(packet) < HEADER_SIZE:
            return False
        src_port, dest_port, _length, received = _HEADER.unpack_from(packet)
        socket = self._sockets.get(dest_port)
        if socket is None:
            return False
        if udp_checksum(src_ip, self.ip.address, packet) != received:
            return False
        socket.handler(IPv4Address(src_ip), src_port, packet[HEADER_SIZE:])
        return True