"""DHCP client: discover, request and lease reporting."""

from __future__ import annotations

import struct
import time
from collections.abc import Callable
from dataclasses import dataclass
from ipaddress import IPv4Address

SERVER_PORT = 67
CLIENT_PORT = 68
MAGIC_COOKIE = 0x63825363

OP_REQUEST = 1
OP_REPLY = 2
HTYPE_ETHERNET = 1
MAC_LENGTH = 6

OPTION_PAD = 0
OPTION_SUBNET_MASK = 1
OPTION_ROUTER = 3
OPTION_DNS_SERVER = 6
OPTION_REQUESTED_IP = 50
OPTION_LEASE_TIME = 51
OPTION_MESSAGE_TYPE = 53
OPTION_SERVER_ID = 54
OPTION_PARAMETER_REQUEST = 55
OPTION_END = 255

MESSAGE_DISCOVER = 1
MESSAGE_OFFER = 2
MESSAGE_REQUEST = 3
MESSAGE_ACK = 5
MESSAGE_NAK = 6

DEFAULT_LEASE_TIME = 3600
BROADCAST = IPv4Address("255.255.255.255")
PARAMETER_REQUEST_LIST = bytes([OPTION_SUBNET_MASK, OPTION_ROUTER, OPTION_DNS_SERVER])

_HEADER = struct.Struct("!BBBBIHHIIII16s64s128sI")
HEADER_SIZE = _HEADER.size
_XID_MASK = 0xFFFFFFFF


class DhcpError(Exception):
    """Raised when a DHCP message cannot be built or sent."""


@dataclass(frozen=True)
class DhcpInfo:
    """The configuration granted by a DHCP server."""

    ip_address: IPv4Address
    server_ip: IPv4Address
    lease_time: int
    subnet_mask: IPv4Address | None = None
    router: IPv4Address | None = None
    dns_server: IPv4Address | None = None


LeaseCallback = Callable[[DhcpInfo], object]


def encode_option(code: int, value: bytes) -> bytes:
    """Encode one option as code, length and value."""
    value = bytes(value)
    if code in (OPTION_PAD, OPTION_END) or not 0 <= code <= 0xFF:
        raise DhcpError(f"option code {code} cannot carry a value")
    if len(value) > 0xFF:
        raise DhcpError(f"option value of {len(value)} bytes is too long")
    return bytes([code, len(value)]) + value


def find_option(options: bytes, code: int) -> bytes | None:
    """Return the value of the first option with this code, or None."""
    options = bytes(options)
    offset = 0
    while offset < len(options):
        kind = options[offset]
        offset += 1
        if kind == OPTION_END:
            break
        if kind == OPTION_PAD:
            continue
        if offset >= len(options):
            break
        length = options[offset]
        offset += 1
        if offset + length > len(options):
            break
        if kind == code:
            return options[offset : offset + length]
        offset += length
    return None


def _fixed_option(options: bytes, code: int, size: int) -> bytes | None:
    value = find_option(options, code)
    if value is None or len(value) != size:
        return None
    return value


def _first_address(options: bytes, code: int) -> IPv4Address | None:
    value = find_option(options, code)
    if not value or len(value) % 4:
        return None
    return IPv4Address(value[:4])


def _default_clock() -> int:
    return int(time.monotonic() * 1000) & _XID_MASK


class DhcpClient:
    """Obtains an address lease over a UDP layer."""

    def __init__(
        self,
        udp,
        mac: bytes,
        callback: LeaseCallback,
        clock: Callable[[], int] | None = None,
    ) -> None:
        mac = bytes(mac)
        if len(mac) != MAC_LENGTH:
            raise DhcpError("a MAC address is 6 bytes long")
        if not callable(callback):
            raise DhcpError("callback must be callable")
        self.udp = udp
        self.mac = mac
        self.callback = callback
        self.clock = clock or _default_clock
        self.socket = None
        self.xid = 0
        self.server_ip: IPv4Address | None = None
        self.offered_ip: IPv4Address | None = None
        self.lease_time = 0

    @property
    def started(self) -> bool:
        return self.socket is not None

    def start(self) -> bool:
        """Bind the client port and begin by broadcasting DISCOVER."""
        if self.socket is not None:
            return True
        self.socket = self.udp.create_socket(CLIENT_PORT, self.handle_packet)
        return self.send_discover()

    def _message(self, options: bytes) -> bytes:
        header = _HEADER.pack(
            OP_REQUEST,
            HTYPE_ETHERNET,
            MAC_LENGTH,
            0,
            self.xid,
            0,
            0,
            0,
            0,
            0,
            0,
            self.mac,
            b"",
            b"",
            MAGIC_COOKIE,
        )
        return header + options + bytes([OPTION_END])

    def _broadcast(self, options: bytes) -> bool:
        if self.socket is None:
            raise DhcpError("client has not been started")
        return bool(self.socket.send(BROADCAST, SERVER_PORT, self._message(options)))

    def send_discover(self) -> bool:
        """Broadcast DISCOVER with a fresh transaction id."""
        if self.socket is None:
            raise DhcpError("client has not been started")
        self.xid = self.clock() & _XID_MASK
        options = encode_option(
            OPTION_MESSAGE_TYPE, bytes([MESSAGE_DISCOVER])
        ) + encode_option(OPTION_PARAMETER_REQUEST, PARAMETER_REQUEST_LIST)
        return self._broadcast(options)

    def send_request(self) -> bool:
        """Broadcast REQUEST for the address last offered."""
        if self.socket is None:
            raise DhcpError("client has not been started")
        if self.offered_ip is None or self.server_ip is None:
            raise DhcpError("no address has been offered")
        options = (
            encode_option(OPTION_MESSAGE_TYPE, bytes([MESSAGE_REQUEST]))
            + encode_option(OPTION_REQUESTED_IP, self.offered_ip.packed)
            + encode_option(OPTION_SERVER_ID, self.server_ip.packed)
            + encode_option(OPTION_PARAMETER_REQUEST, PARAMETER_REQUEST_LIST)
        )
        return self._broadcast(options)

    def handle_packet(self, src_ip, src_port: int, data: bytes) -> bool:
        """Process a server reply; return True if it was acted on."""
        data = bytes(data)
        if len(data) < HEADER_SIZE:
            return False
        fields = _HEADER.unpack_from(data)
        op, xid, yiaddr, cookie = fields[0], fields[4], fields[8], fields[14]
        if op != OP_REPLY or xid != self.xid or cookie != MAGIC_COOKIE:
            return False

        options = data[HEADER_SIZE:]
        message = _fixed_option(options, OPTION_MESSAGE_TYPE, 1)
        if message is None:
            return False
        kind = message[0]

        if kind == MESSAGE_OFFER:
            self.offered_ip = IPv4Address(yiaddr)
            self.server_ip = IPv4Address(src_ip)
            lease = _fixed_option(options, OPTION_LEASE_TIME, 4)
            self.lease_time = (
                int.from_bytes(lease, "big") if lease is not None else DEFAULT_LEASE_TIME
            )
            self.send_request()
            return True
        if kind == MESSAGE_ACK:
            mask = _fixed_option(options, OPTION_SUBNET_MASK, 4)
            info = DhcpInfo(
                ip_address=IPv4Address(yiaddr),
                server_ip=self.server_ip or IPv4Address(src_ip),
                lease_time=self.lease_time,
                subnet_mask=IPv4Address(mask) if mask is not None else None,
                router=_first_address(options, OPTION_ROUTER),
                dns_server=_first_address(options, OPTION_DNS_SERVER),
            )
            self.callback(info)
            return True
        if kind == MESSAGE_NAK:
            self.send_discover()
            return True
        return False