# mayanet

A compact, pure-Python network stack. Each layer is a plain object that you
connect to the one below it, so it is easy to inspect, test and drive by hand.
The package also holds codecs for a few low-level binary structures and a
small set of widgets that paint into an in-memory pixel buffer.

It has no third-party dependencies.

## Network layers

- `mayanet.pci`: `PciDevice` records and `find_device(devices, vendor_id,
  device_id)`, which returns the first match or `None`.
- `mayanet.nic.Nic`: driver logic for an Intel 8254x-style card with
  32-entry transmit and receive descriptor rings. It talks to the card through
  any object with `read(offset)` and `write(offset, value)` methods. `Nic.probe`
  picks the supported card from a list of `PciDevice` records and calls a
  function you supply to get the register block for its I/O base.
  `send_packet` fills a transmit descriptor, `receive` places an arriving frame
  in the receive ring, and `handle_interrupt` passes received frames to
  `on_receive` and reclaims completed transmit descriptors.
- `mayanet.ethernet.EthernetLayer`: builds frames, pads them to 60 bytes and
  refuses frames over 1514 bytes. `handle_frame` keeps frames that are
  broadcast or addressed to this host and hands them to `on_receive`.
- `mayanet.ip.IPv4Layer`: builds IPv4 headers, checks incoming ones
  (version, length, checksum, destination), and dispatches payloads through a
  table filled with `register_protocol`. `next_hop` chooses between the
  destination and the gateway. `internet_checksum` is usable on its own.
- `mayanet.icmp.IcmpProtocol`: answers echo requests, reports echo replies to
  `on_echo_reply`, sends echo requests and destination-unreachable messages.
- `mayanet.udp.UdpProtocol` and `UdpSocket`: up to 256 port-bound sockets;
  port 0 picks the next port from 49152 upward. Incoming datagrams are checked
  with `udp_checksum` before they reach the socket's handler.
- `mayanet.tcp.TcpProtocol`: a minimal connection state machine (`TcpState`,
  `TcpFlags`, `TcpEvent`) with per-socket callbacks. It covers the active open
  (`connect`), an incoming SYN on a socket whose `state` you have set to
  `TcpState.LISTEN`, data on an established connection, and the peer's FIN.
  `tcp_checksum` is usable on its own.
- `mayanet.dns`: `DnsResolver` sends A-record queries to one server and passes
  the name and address (or `None`) to the callback of the latest query. The
  helpers `encode_name`, `decode_name`, `build_query` and `parse_response` can
  be used on their own.
- `mayanet.dhcp.DhcpClient`: the discover, offer, request and acknowledge
  exchange, reporting the lease as a `DhcpInfo`; a NAK starts over with a new
  discover. `encode_option` and `find_option` handle the option field.

Failures are raised as exceptions of each module: `NicError`,
`EthernetError`, `IPError`, `IcmpError`, `UdpError`, `TcpError`, `DnsError`
and `DhcpError`. Packets that arrive malformed or unaddressed are dropped and
the `handle_*` method returns `False`.

## Example

```python
from mayanet.ethernet import EthernetLayer
from mayanet.ip import IPv4Layer
from mayanet.udp import UdpProtocol

sent = []
link = EthernetLayer(bytes.fromhex("020000000001"), sent.append)
ip = IPv4Layer(link, "10.0.0.15", "255.255.255.0", "10.0.0.1")
udp = UdpProtocol(ip)

sock = udp.create_socket(0, lambda src_ip, src_port, data: print(data))
sock.send("10.0.0.2", 9999, b"hello")
print(len(sent[0]))  # 60: one padded Ethernet frame went to the transmit function
```

## Structure codecs

- `mayanet.fat32`: `BootSector`, `DirEntry` and `LfnEntry` read from and
  written to bytes, plus `Attribute`, `is_end_of_chain` and `Fat32Error`.
- `mayanet.multiboot.MultibootInfo`: the boot information record.
- `mayanet.interrupts`: `IdtEntry`, `IdtPointer` and `Registers`.

## Widgets

- `mayanet.window.Window`: a palette-indexed pixel buffer with a position,
  title and visibility; drawing is clipped to the window.
- `mayanet.widgets`: `Widget`, `Button`, `Label`, `TextBox`, `CheckBox` and
  `RadioButton`, arranged as a tree, with click and key handling.
- `mayanet.containers`: `ListBox`, `ScrollBar` and `Panel`.

## What it does not do

- It does not send or receive on a real network. The card is reached only
  through the register object you pass in, and frames leave through the
  transmit function you give `EthernetLayer`.
- There is no address resolution: every IPv4 packet is sent to the broadcast
  MAC address.
- TCP has no retransmission, windowing or handling of the closing states after
  `FIN_WAIT_1`, and there is no call that puts a socket into `LISTEN`.
- The FAT32 module reads and writes on-disk structures only; it does not mount
  or read a file system.
- Widgets paint filled rectangles into a `Window` buffer; text is not
  rendered and nothing is shown on a screen.
- There is no command-line program.

## Tests

```
pip install -e .[test]
pytest
```