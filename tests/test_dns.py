import struct
from ipaddress import IPv4Address

import pytest

from mayanet.dns import (
    PORT,
    DnsError,
    DnsResolver,
    build_query,
    decode_name,
    encode_name,
    parse_response,
)

SERVER = IPv4Address("10.0.0.1")


def make_response(domain, address=None, query_id=1):
    query = build_query(query_id, domain)
    answers = 1 if address is not None else 0
    header = struct.pack("!HHHHHH", query_id, 0x8180, 1, answers, 0, 0)
    body = query[12:]
    if address is not None:
        body += b"\xc0\x0c" + struct.pack("!HHIH", 1, 1, 60, 4) + IPv4Address(address).packed
    return header + body


class FakeSocket:
    def __init__(self, handler):
        self.handler = handler
        self.sent = []

    def send(self, dest, port, data):
        self.sent.append((IPv4Address(dest), port, bytes(data)))
        return True


class FakeUdp:
    def __init__(self):
        self.created = []

    def create_socket(self, port, handler):
        sock = FakeSocket(handler)
        self.created.append((port, sock))
        return sock


def test_encode_name_wire_format():
    assert encode_name("example.com") == b"\x07example\x03com\x00"


def test_encode_root_and_trailing_dot():
    assert encode_name("") == b"\x00"
    assert encode_name("example.com.") == encode_name("example.com")


def test_encode_rejects_long_label():
    with pytest.raises(DnsError):
        encode_name("a" * 64 + ".com")


def test_encode_rejects_empty_label():
    with pytest.raises(DnsError):
        encode_name("a..b")


def test_decode_round_trip():
    raw = b"\xff" + encode_name("www.example.org") + b"\xaa"
    name, end = decode_name(raw, 1)
    assert name == "www.example.org"
    assert raw[end] == 0xAA


def test_decode_follows_pointer():
    first = encode_name("example.com")
    packet = first + b"\x03www\xc0\x00" + b"\x99"
    name, end = decode_name(packet, len(first))
    assert name == "www.example.com"
    assert packet[end] == 0x99


def test_decode_pointer_loop_raises():
    with pytest.raises(DnsError):
        decode_name(b"\xc0\x00", 0)


def test_decode_truncated_raises():
    with pytest.raises(DnsError):
        decode_name(b"\x05abc", 0)


def test_build_query_layout():
    query = build_query(7, "example.com")
    header = struct.unpack("!HHHHHH", query[:12])
    assert header == (7, 0x0100, 1, 0, 0, 0)
    assert query[12:-4] == encode_name("example.com")
    assert struct.unpack("!HH", query[-4:]) == (1, 1)


def test_build_query_rejects_bad_id():
    with pytest.raises(DnsError):
        build_query(70000, "example.com")


def test_parse_response_with_answer():
    name, address = parse_response(make_response("example.com", "10.0.0.5"))
    assert name == "example.com"
    assert address == IPv4Address("10.0.0.5")


def test_parse_response_without_answer():
    assert parse_response(make_response("example.com")) == ("example.com", None)


def test_parse_rejects_query():
    with pytest.raises(DnsError):
        parse_response(build_query(1, "example.com"))


def test_parse_rejects_short_packet():
    with pytest.raises(DnsError):
        parse_response(b"\x00\x01")


def test_resolver_sends_query_to_server():
    udp = FakeUdp()
    resolver = DnsResolver(udp, SERVER)
    assert udp.created[0][0] == 0
    assert resolver.resolve("example.com", lambda n, a: None) is True
    dest, port, data = resolver.socket.sent[-1]
    assert (dest, port) == (SERVER, PORT)
    assert data == build_query(1, "example.com")


def test_query_ids_increase():
    resolver = DnsResolver(FakeUdp(), SERVER)
    resolver.resolve("a.example.com", lambda n, a: None)
    resolver.resolve("b.example.com", lambda n, a: None)
    assert resolver.socket.sent[1][2][:2] == (2).to_bytes(2, "big")


def test_resolver_reports_answer():
    resolver = DnsResolver(FakeUdp(), SERVER)
    results = []
    resolver.resolve("example.com", lambda n, a: results.append((n, a)))
    handled = resolver.socket.handler(SERVER, PORT, make_response("example.com", "10.0.0.5"))
    assert handled is True
    assert results == [("example.com", IPv4Address("10.0.0.5"))]


def test_resolver_ignores_without_pending_query():
    resolver = DnsResolver(FakeUdp(), SERVER)
    assert resolver.handle_response(SERVER, PORT, make_response("example.com", "10.0.0.5")) is False


def test_resolver_ignores_garbage():
    resolver = DnsResolver(FakeUdp(), SERVER)
    results = []
    resolver.resolve("example.com", lambda n, a: results.append(n))
    assert resolver.handle_response(SERVER, PORT, b"\x00") is False
    assert results == []


def test_resolve_rejects_empty_domain():
    resolver = DnsResolver(FakeUdp(), SERVER)
    with pytest.raises(DnsError):
        resolver.resolve("", lambda n, a: None)