"""A DNS stub resolver for A records."""

from __future__ import annotations

import struct
from collections.abc import Callable
from ipaddress import IPv4Address

PORT = 53
MAX_PACKET_SIZE = 512
MAX_NAME_LENGTH = 255
MAX_LABEL_LENGTH = 63

FLAG_RESPONSE = 0x8000
FLAG_RECURSION_DESIRED = 0x0100
TYPE_A = 1
CLASS_IN = 1

_HEADER = struct.Struct("!HHHHHH")
_QUESTION = struct.Struct("!HH")
_RECORD = struct.Struct("!HHIH")
_MAX_POINTERS = 64

ResolveCallback = Callable[[str, "IPv4Address | None"], object]


class DnsError(Exception):
    """Raised for names that cannot be encoded and packets that cannot be parsed."""


def encode_name(domain: str) -> bytes:
    """Encode a dotted domain name as a sequence of length-prefixed labels."""
    labels = domain.split(".") if domain else []
    if labels and labels[-1] == "":
        labels.pop()
    out = bytearray()
    for label in labels:
        try:
            raw = label.encode("ascii")
        except UnicodeEncodeError as exc:
            raise DnsError(f"label {label!r} is not ASCII") from exc
        if not raw:
            raise DnsError(f"empty label in {domain!r}")
        if len(raw) > MAX_LABEL_LENGTH:
            raise DnsError(f"label {label!r} is longer than {MAX_LABEL_LENGTH} bytes")
        out.append(len(raw))
        out += raw
    out.append(0)
    return bytes(out)


def decode_name(packet: bytes, offset: int) -> tuple[str, int]:
    """Decode the name at offset; return it and the offset just past it."""
    packet = bytes(packet)
    labels: list[str] = []
    end: int | None = None
    pointers = 0
    while True:
        if offset >= len(packet):
            raise DnsError("name runs past the end of the packet")
        length = packet[offset]
        if length & 0xC0:
            if offset + 1 >= len(packet):
                raise DnsError("truncated compression pointer")
            if end is None:
                end = offset + 2
            pointers += 1
            if pointers > _MAX_POINTERS:
                raise DnsError("compression pointers form a loop")
            offset = ((length & 0x3F) << 8) | packet[offset + 1]
            continue
        offset += 1
        if length == 0:
            break
        if offset + length > len(packet):
            raise DnsError("label runs past the end of the packet")
        labels.append(packet[offset : offset + length].decode("latin-1"))
        offset += length
    name = ".".join(labels)[:MAX_NAME_LENGTH]
    return name, offset if end is None else end


def build_query(query_id: int, domain: str) -> bytes:
    """Build a recursive query for the A record of domain."""
    if not 0 <= query_id <= 0xFFFF:
        raise DnsError(f"query id {query_id} out of range")
    query = (
        _HEADER.pack(query_id, FLAG_RECURSION_DESIRED, 1, 0, 0, 0)
        + encode_name(domain)
        + _QUESTION.pack(TYPE_A, CLASS_IN)
    )
    if len(query) > MAX_PACKET_SIZE:
        raise DnsError("query is too large")
    return query


def parse_response(data: bytes) -> tuple[str, IPv4Address | None]:
    """Return the name and the first A record address of a response.

    The address is None when the response holds no A record.
    """
    data = bytes(data)
    if len(data) < _HEADER.size:
        raise DnsError("packet is shorter than a DNS header")
    _id, flags, questions, answers, _ns, _ar = _HEADER.unpack_from(data)
    if not flags & FLAG_RESPONSE:
        raise DnsError("packet is not a response")

    offset = _HEADER.size
    name = ""
    for _ in range(questions):
        name, offset = decode_name(data, offset)
        offset += _QUESTION.size
        if offset > len(data):
            raise DnsError("question runs past the end of the packet")

    for _ in range(answers):
        name, offset = decode_name(data, offset)
        if offset + _RECORD.size > len(data):
            raise DnsError("record runs past the end of the packet")
        rtype, _rclass, _ttl, length = _RECORD.unpack_from(data, offset)
        offset += _RECORD.size
        if rtype == TYPE_A and length == 4:
            if offset + 4 > len(data):
                raise DnsError("address runs past the end of the packet")
            return name, IPv4Address(data[offset : offset + 4])
        offset += length
    return name, None


class DnsResolver:
    """Sends A queries to one server and reports the answers."""

    def __init__(self, udp, server) -> None:
        self.server = IPv4Address(server)
        self.socket = udp.create_socket(0, self.handle_response)
        self.query_id = 0
        self.callback: ResolveCallback | None = None

    def resolve(self, domain: str, callback: ResolveCallback) -> bool:
        """Send a query for domain; callback gets the name and address."""
        if not domain:
            raise DnsError("domain is empty")
        if not callable(callback):
            raise DnsError("callback must be callable")
        self.query_id = (self.query_id + 1) & 0xFFFF
        query = build_query(self.query_id, domain)
        self.callback = callback
        return bool(self.socket.send(self.server, PORT, query))

    def handle_response(self, src_ip, src_port: int, data: bytes) -> bool:
        """Parse a response and pass its result to the pending callback."""
        if self.callback is None:
            return False
        try:
            name, address = parse_response(data)
        except DnsError:
            return False
        self.callback(name, address)
        return True