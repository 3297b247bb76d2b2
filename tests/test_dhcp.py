import itertools
import struct
from ipaddress import IPv4Address

import pytest

from mayanet.dhcp import (
    BROADCAST,
    CLIENT_PORT,
    DEFAULT_LEASE_TIME,
    HEADER_SIZE,
    MAGIC_COOKIE,
    MESSAGE_ACK,
    MESSAGE_DISCOVER,
    MESSAGE_NAK,
    MESSAGE_OFFER,
    MESSAGE_REQUEST,
    OP_REPLY,
    OP_REQUEST,
    OPTION_DNS_SERVER,
    OPTION_END,
    OPTION_LEASE_TIME,
    OPTION_MESSAGE_TYPE,
    OPTION_PAD,
    OPTION_PARAMETER_REQUEST,
    OPTION_REQUESTED_IP,
    OPTION_ROUTER,
    OPTION_SERVER_ID,
    OPTION_SUBNET_MASK,
    PARAMETER_REQUEST_LIST,
    SERVER_PORT,
    DhcpClient,
    DhcpError,
    DhcpInfo,
    encode_option,
    find_option,
)

MAC = bytes.fromhex("020000000001")
SERVER = IPv4Address("10.0.0.1")
OFFERED = IPv4Address("10.0.0.50")


class FakeSocket:
    def __init__(self, port, handler):
        self.port = port
        self.handler = handler
        self.sent = []

    def send(self, dest_ip, dest_port, data):
        self.sent.append((IPv4Address(dest_ip), dest_port, bytes(data)))
        return True


class FakeUdp:
    def __init__(self):
        self.sockets = []

    def create_socket(self, port, handler):
        socket = FakeSocket(port, handler)
        self.sockets.append(socket)
        return socket


def make_reply(xid, message_type, extra=b"", op=OP_REPLY, cookie=MAGIC_COOKIE):
    header = struct.pack(
        "!BBBBIHHIIII16s64s128sI",
        op, 1, 6, 0, xid, 0, 0, 0, int(OFFERED), 0, 0, MAC, b"", b"", cookie,
    )
    options = encode_option(OPTION_MESSAGE_TYPE, bytes([message_type])) + extra
    return header + options + bytes([OPTION_END])


@pytest.fixture
def setup():
    udp = FakeUdp()
    leases = []
    client = DhcpClient(udp, MAC, leases.append, clock=itertools.count(1000).__next__)
    client.start()
    return client, udp.sockets[0], leases


def test_start_broadcasts_discover(setup):
    client, socket, _ = setup
    assert socket.port == CLIENT_PORT
    assert len(socket.sent) == 1
    dest, port, packet = socket.sent[0]
    assert dest == BROADCAST
    assert port == SERVER_PORT
    assert packet[0] == OP_REQUEST
    assert int.from_bytes(packet[4:8], "big") == client.xid == 1000
    assert packet[28:34] == MAC
    assert packet[236:240] == MAGIC_COOKIE.to_bytes(4, "big")
    options = packet[HEADER_SIZE:]
    assert find_option(options, OPTION_MESSAGE_TYPE) == bytes([MESSAGE_DISCOVER])
    assert find_option(options, OPTION_PARAMETER_REQUEST) == PARAMETER_REQUEST_LIST
    assert packet[-1] == OPTION_END


def test_offer_sends_request(setup):
    client, socket, _ = setup
    lease = encode_option(OPTION_LEASE_TIME, (7200).to_bytes(4, "big"))
    assert client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_OFFER, lease))
    assert client.offered_ip == OFFERED
    assert client.server_ip == SERVER
    assert client.lease_time == 7200
    _, _, packet = socket.sent[-1]
    assert int.from_bytes(packet[4:8], "big") == client.xid
    options = packet[HEADER_SIZE:]
    assert find_option(options, OPTION_MESSAGE_TYPE) == bytes([MESSAGE_REQUEST])
    assert find_option(options, OPTION_REQUESTED_IP) == OFFERED.packed
    assert find_option(options, OPTION_SERVER_ID) == SERVER.packed


def test_offer_without_lease_uses_default(setup):
    client, _, _ = setup
    client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_OFFER))
    assert client.lease_time == DEFAULT_LEASE_TIME


def test_ack_reports_lease(setup):
    client, _, leases = setup
    client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_OFFER))
    mask = IPv4Address("255.255.255.0")
    router = IPv4Address("10.0.0.254")
    dns1, dns2 = IPv4Address("10.0.0.53"), IPv4Address("10.0.0.54")
    extra = (
        encode_option(OPTION_SUBNET_MASK, mask.packed)
        + encode_option(OPTION_ROUTER, router.packed)
        + encode_option(OPTION_DNS_SERVER, dns1.packed + dns2.packed)
    )
    assert client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_ACK, extra))
    assert leases == [
        DhcpInfo(OFFERED, SERVER, DEFAULT_LEASE_TIME, mask, router, dns1)
    ]


def test_ack_without_options_leaves_them_unset(setup):
    client, _, leases = setup
    client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_OFFER))
    client.handle_packet(SERVER, SERVER_PORT, make_reply(client.xid, MESSAGE_ACK))
    assert leases[0].subnet_mask is None
    assert leases[0].router is None
    assert leases[0].dns_server is None


def test_nak_restarts_with_new_xid(setup):
    client, socket, _ = setup
    old = client.xid
    assert client.handle_packet(SERVER, SERVER_PORT, make_reply(old, MESSAGE_NAK))
    assert client.xid != old
    options = socket.sent[-1][2][HEADER_SIZE:]
    assert find_option(options, OPTION_MESSAGE_TYPE) == bytes([MESSAGE_DISCOVER])


@pytest.mark.parametrize(
    "make",
    [
        lambda xid: make_reply(xid, MESSAGE_OFFER, op=OP_REQUEST),
        lambda xid: make_reply(xid + 1, MESSAGE_OFFER),
        lambda xid: make_reply(xid, MESSAGE_OFFER, cookie=0),
        lambda xid: make_reply(xid, MESSAGE_OFFER)[: HEADER_SIZE - 1],
        lambda xid: make_reply(xid, MESSAGE_OFFER)[:HEADER_SIZE] + bytes([OPTION_END]),
    ],
)
def test_ignored_packets(setup, make):
    client, socket, _ = setup
    assert client.handle_packet(SERVER, SERVER_PORT, make(client.xid)) is False
    assert len(socket.sent) == 1
    assert client.offered_ip is None


def test_send_before_start_raises():
    client = DhcpClient(FakeUdp(), MAC, lambda info: None)
    with pytest.raises(DhcpError):
        client.send_discover()


def test_request_without_offer_raises(setup):
    client, _, _ = setup
    with pytest.raises(DhcpError):
        client.send_request()


def test_bad_mac_raises():
    with pytest.raises(DhcpError):
        DhcpClient(FakeUdp(), b"\x02\x00", lambda info: None)


def test_find_option_skips_pad_and_stops_at_end():
    options = bytes([OPTION_PAD, OPTION_PAD]) + encode_option(OPTION_ROUTER, b"abcd")
    assert find_option(options, OPTION_ROUTER) == b"abcd"
    hidden = bytes([OPTION_END]) + encode_option(OPTION_ROUTER, b"abcd")
    assert find_option(hidden, OPTION_ROUTER) is None


def test_find_option_truncated_returns_none():
    options = encode_option(OPTION_ROUTER, b"abcd")[:-1]
    assert find_option(options, OPTION_ROUTER) is None


def test_encode_option_round_trip():
    encoded = encode_option(OPTION_SERVER_ID, SERVER.packed)
    assert encoded[0] == OPTION_SERVER_ID
    assert encoded[1] == len(SERVER.packed)
    assert find_option(encoded, OPTION_SERVER_ID) == SERVER.packed


@pytest.mark.parametrize("code, value", [(OPTION_PAD, b""), (OPTION_END, b""), (OPTION_ROUTER, bytes(256))])
def test_encode_option_errors(code, value):
    with pytest.raises(DhcpError):
        encode_option(code, value)