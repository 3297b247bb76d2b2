"""Ethernet II framing."""

from __future__ import annotations

import struct
from collections.abc import Callable

BROADCAST_MAC = b"\xff" * 6
HEADER_SIZE = 14
MIN_FRAME_SIZE = 60
MAX_FRAME_SIZE = 1514
ETHERTYPE_IPV4 = 0x0800

_HEADER = struct.Struct("!6s6sH")

ReceiveHandler = Callable[[bytes, int, bytes], None]
Transmit = Callable[[bytes], bool]


class EthernetError(Exception):
    """Raised when a frame cannot be built or sent."""


def _mac(value: bytes) -> bytes:
    mac = bytes(value)
    if len(mac) != 6:
        raise EthernetError("a MAC address is 6 bytes long")
    return mac


class EthernetLayer:
    """Builds outgoing frames and filters incoming ones for one interface."""

    def __init__(self, mac: bytes, transmit: Transmit) -> None:
        self.mac = _mac(mac)
        self._transmit = transmit
        self.on_receive: ReceiveHandler | None = None

    def send_frame(self, dest_mac: bytes, ethertype: int, payload: bytes) -> bool:
        """Frame the payload, pad it to the minimum size and transmit it."""
        dest = _mac(dest_mac)
        payload = bytes(payload)
        if not payload:
            raise EthernetError("payload is empty")
        if not 0 <= ethertype <= 0xFFFF:
            raise EthernetError(f"ethertype {ethertype:#x} out of range")
        frame = _HEADER.pack(dest, self.mac, ethertype) + payload
        if len(frame) > MAX_FRAME_SIZE:
            raise EthernetError(
                f"frame of {len(frame)} bytes exceeds {MAX_FRAME_SIZE} bytes"
            )
        frame = frame.ljust(MIN_FRAME_SIZE, b"\x00")
        return bool(self._transmit(frame))

    def handle_frame(self, frame: bytes) -> bool:
        """Deliver a received frame to the receive handler if it is for us."""
        frame = bytes(frame)
        if not HEADER_SIZE <= len(frame) <= MAX_FRAME_SIZE:
            return False
        dest, src, ethertype = _HEADER.unpack_from(frame)
        if dest != BROADCAST_MAC and dest != self.mac:
            return False
        if self.on_receive is None:
            return False
        self.on_receive(src, ethertype, frame[HEADER_SIZE:])
        return True