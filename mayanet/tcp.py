"""A small TCP implementation: handshake, data transfer and close."""

from __future__ import annotations

import struct
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, IntFlag, auto
from ipaddress import IPv4Address

from mayanet.ip import PROTOCOL_TCP, internet_checksum

HEADER_SIZE = 20
WINDOW_SIZE = 8192
DYNAMIC_PORT_START = 49152

_HEADER = struct.Struct("!HHIIBBHHH")
_SEQ_MASK = 0xFFFFFFFF


class TcpError(Exception):
    """Raised when a socket operation is not allowed in its current state."""


class TcpFlags(IntFlag):
    FIN = 0x01
    SYN = 0x02
    RST = 0x04
    PSH = 0x08
    ACK = 0x10
    URG = 0x20


class TcpState(Enum):
    CLOSED = auto()
    LISTEN = auto()
    SYN_SENT = auto()
    SYN_RECEIVED = auto()
    ESTABLISHED = auto()
    FIN_WAIT_1 = auto()
    FIN_WAIT_2 = auto()
    CLOSE_WAIT = auto()
    CLOSING = auto()
    LAST_ACK = auto()
    TIME_WAIT = auto()


class TcpEvent(Enum):
    CONNECTED = auto()
    DATA = auto()
    CLOSED = auto()


Callback = Callable[["TcpSocket", TcpEvent, bytes], object]


def tcp_checksum(src_ip, dest_ip, segment: bytes) -> int:
    """Checksum of a TCP segment and its IPv4 pseudo-header.

    The checksum field of the segment itself is treated as zero.
    """
    segment = bytes(segment)
    if len(segment) < HEADER_SIZE:
        raise TcpError("segment is shorter than a TCP header")
    pseudo = (
        IPv4Address(src_ip).packed
        + IPv4Address(dest_ip).packed
        + struct.pack("!BBH", 0, PROTOCOL_TCP, len(segment))
    )
    return internet_checksum(pseudo + segment[:16] + b"\x00\x00" + segment[18:])


@dataclass(eq=False)
class TcpSocket:
    """One connection endpoint."""

    local_port: int
    callback: Callback
    state: TcpState = TcpState.CLOSED
    remote_ip: IPv4Address = field(default_factory=lambda: IPv4Address(0))
    remote_port: int = 0
    seq_num: int = 0
    ack_num: int = 0


def _default_clock() -> int:
    return int(time.monotonic() * 1000) & _SEQ_MASK


class TcpProtocol:
    """Socket list and segment handling for one IP layer."""

    def __init__(self, ip, clock: Callable[[], int] | None = None) -> None:
        self.ip = ip
        self.clock = clock or _default_clock
        self.sockets: list[TcpSocket] = []
        self._next_port = DYNAMIC_PORT_START
        ip.register_protocol(PROTOCOL_TCP, self.handle_packet)

    def _transmit(
        self,
        local_port: int,
        remote_ip: IPv4Address,
        remote_port: int,
        seq: int,
        ack: int,
        flags: TcpFlags,
        data: bytes = b"",
    ) -> bool:
        header = _HEADER.pack(
            local_port,
            remote_port,
            seq & _SEQ_MASK,
            ack & _SEQ_MASK,
            (HEADER_SIZE // 4) << 4,
            int(flags),
            WINDOW_SIZE,
            0,
            0,
        )
        segment = header + data
        checksum = tcp_checksum(self.ip.address, remote_ip, segment)
        segment = segment[:16] + checksum.to_bytes(2, "big") + segment[18:]
        return bool(self.ip.send_packet(remote_ip, PROTOCOL_TCP, segment))

    def _send(self, socket: TcpSocket, flags: TcpFlags, data: bytes = b"") -> bool:
        result = self._transmit(
            socket.local_port,
            socket.remote_ip,
            socket.remote_port,
            socket.seq_num,
            socket.ack_num,
            flags,
            data,
        )
        advance = len(data)
        if flags & (TcpFlags.SYN | TcpFlags.FIN):
            advance += 1
        socket.seq_num = (socket.seq_num + advance) & _SEQ_MASK
        return result

    def create_socket(self, callback: Callback) -> TcpSocket:
        """Create a closed socket on the next dynamic port."""
        if not callable(callback):
            raise TcpError("callback must be callable")
        socket = TcpSocket(self._next_port, callback)
        self._next_port = (self._next_port + 1) & 0xFFFF
        self.sockets.insert(0, socket)
        return socket

    def connect(self, socket: TcpSocket, ip, port: int) -> bool:
        """Start an active open by sending SYN."""
        if socket not in self.sockets:
            raise TcpError("socket does not belong to this protocol")
        if socket.state is not TcpState.CLOSED:
            raise TcpError(f"cannot connect a socket in state {socket.state.name}")
        if not 0 <= port <= 0xFFFF:
            raise TcpError(f"port {port} out of range")
        socket.remote_ip = IPv4Address(ip)
        socket.remote_port = port
        socket.seq_num = self.clock() & _SEQ_MASK
        socket.state = TcpState.SYN_SENT
        self._send(socket, TcpFlags.SYN)
        return True

    def close(self, socket: TcpSocket) -> None:
        """Send FIN on an established connection, otherwise drop the socket."""
        if socket.state is TcpState.ESTABLISHED:
            self._send(socket, TcpFlags.FIN | TcpFlags.ACK)
            socket.state = TcpState.FIN_WAIT_1
        elif socket in self.sockets:
            self.sockets.remove(socket)

    def send(self, socket: TcpSocket, data: bytes) -> bool:
        """Send data on an established connection."""
        data = bytes(data)
        if not data:
            raise TcpError("data is empty")
        if socket.state is not TcpState.ESTABLISHED:
            raise TcpError(f"cannot send in state {socket.state.name}")
        return self._send(socket, TcpFlags.PSH | TcpFlags.ACK, data)

    def _find(self, src_ip: IPv4Address, src_port: int, dest_port: int) -> TcpSocket | None:
        for socket in self.sockets:
            if socket.local_port != dest_port:
                continue
            if socket.state is TcpState.LISTEN or (
                socket.remote_port == src_port and socket.remote_ip == src_ip
            ):
                return socket
        return None

    def handle_packet(self, src_ip, packet: bytes) -> bool:
        """Process a received segment; return True if a socket took it."""
        packet = bytes(packet)
        if len(packet) < HEADER_SIZE:
            return False
        src_port, dest_port, seq, ack, offset_byte, raw_flags, *_ = _HEADER.unpack_from(
            packet
        )
        data_offset = max((offset_byte >> 4) * 4, HEADER_SIZE)
        flags = TcpFlags(raw_flags & 0x3F)
        source = IPv4Address(src_ip)

        socket = self._find(source, src_port, dest_port)
        if socket is None:
            self._transmit(dest_port, source, src_port, ack, 0, TcpFlags.RST)
            return False

        if socket.state is TcpState.LISTEN:
            if flags & TcpFlags.SYN:
                socket.remote_ip = source
                socket.remote_port = src_port
                socket.ack_num = (seq + 1) & _SEQ_MASK
                socket.seq_num = self.clock() & _SEQ_MASK
                socket.state = TcpState.SYN_RECEIVED
                self._send(socket, TcpFlags.SYN | TcpFlags.ACK)
        elif socket.state is TcpState.SYN_SENT:
            if flags & (TcpFlags.SYN | TcpFlags.ACK) == TcpFlags.SYN | TcpFlags.ACK:
                socket.ack_num = (seq + 1) & _SEQ_MASK
                socket.state = TcpState.ESTABLISHED
                self._send(socket, TcpFlags.ACK)
                socket.callback(socket, TcpEvent.CONNECTED, b"")
        elif socket.state is TcpState.ESTABLISHED:
            if flags & TcpFlags.PSH:
                data = packet[data_offset:]
                socket.ack_num = (socket.ack_num + len(data)) & _SEQ_MASK
                self._send(socket, TcpFlags.ACK)
                socket.callback(socket, TcpEvent.DATA, data)
            if flags & TcpFlags.FIN:
                socket.ack_num = (socket.ack_num + 1) & _SEQ_MASK
                socket.state = TcpState.CLOSE_WAIT
                self._send(socket, TcpFlags.ACK)
                socket.callback(socket, TcpEvent.CLOSED, b"")
        return True