"""Driver logic for an Intel 8254x-style network card with descriptor rings."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol

from mayanet.pci import PciDevice, find_device

VENDOR_ID_INTEL = 0x8086
DEVICE_ID_I825XX = 0x100E

REG_CTRL = 0x0000
REG_STATUS = 0x0008
REG_EEPROM = 0x0014
REG_CTRL_EXT = 0x0018
REG_RX_CTRL = 0x0100
REG_TX_CTRL = 0x0400
REG_MAC_LOW = 0x5400
REG_MAC_HIGH = 0x5404

CTRL_RESET = 0x04000000
CTRL_SLU = 0x40
CTRL_ASDE = 0x20
CTRL_VME = 0x40000000

STATUS_RX = 0x80
STATUS_TX_DONE = 0x2
DESC_DONE = 0x1
TX_CMD = 0x0B  # end of packet, insert FCS, report status

RX_BUFFER_SIZE = 2048
TX_BUFFER_SIZE = 2048
NUM_RX_DESC = 32
NUM_TX_DESC = 32

_RESET_POLLS = 100_000

ReceiveHandler = Callable[[bytes], object]


class NicError(Exception):
    """Raised when the card cannot be found, reset or used."""


class Registers(Protocol):
    def read(self, offset: int) -> int: ...

    def write(self, offset: int, value: int) -> None: ...


@dataclass
class RxDescriptor:
    buffer: bytearray = field(default_factory=lambda: bytearray(RX_BUFFER_SIZE))
    length: int = 0
    status: int = 0
    errors: int = 0


@dataclass
class TxDescriptor:
    buffer: bytearray = field(default_factory=lambda: bytearray(TX_BUFFER_SIZE))
    length: int = 0
    cmd: int = 0
    status: int = 0


class Nic:
    """One network card reached through its register block."""

    def __init__(self, registers: Registers) -> None:
        self.registers = registers
        self.io_base = 0
        self.interrupt_line: int | None = None
        self.on_receive: ReceiveHandler | None = None

        registers.write(REG_CTRL, CTRL_RESET)
        for _ in range(_RESET_POLLS):
            if not registers.read(REG_CTRL) & CTRL_RESET:
                break
        else:
            raise NicError("device did not come out of reset")

        self.rx_ring = [RxDescriptor() for _ in range(NUM_RX_DESC)]
        self.tx_ring = [TxDescriptor() for _ in range(NUM_TX_DESC)]
        self.rx_cur = 0
        self.tx_cur = 0
        self._rx_fill = 0
        self._tx_clean = 0
        self._tx_pending = 0

        registers.write(REG_CTRL, CTRL_SLU | CTRL_ASDE | CTRL_VME)

        low = registers.read(REG_MAC_LOW) & 0xFFFFFFFF
        high = registers.read(REG_MAC_HIGH) & 0xFFFF
        self.mac = low.to_bytes(4, "little") + high.to_bytes(2, "little")

    @classmethod
    def probe(
        cls, devices: Iterable[PciDevice], registers: Callable[[int], Registers]
    ) -> Nic:
        """Find the card on the bus and bring it up.

        registers maps the card's I/O base address to its register block.
        """
        device = find_device(devices, VENDOR_ID_INTEL, DEVICE_ID_I825XX)
        if device is None:
            raise NicError("no supported network card found")
        io_base = device.bars[0] & ~3
        nic = cls(registers(io_base))
        nic.io_base = io_base
        nic.interrupt_line = device.interrupt_line
        return nic

    def send_packet(self, data: bytes) -> bool:
        """Place a frame in the next transmit descriptor and notify the card."""
        data = bytes(data)
        if not data:
            raise NicError("packet is empty")
        if len(data) > TX_BUFFER_SIZE:
            raise NicError(f"packet of {len(data)} bytes exceeds {TX_BUFFER_SIZE} bytes")
        if self._tx_pending >= NUM_TX_DESC:
            raise NicError("transmit ring is full")

        desc = self.tx_ring[self.tx_cur]
        desc.buffer[: len(data)] = data
        desc.length = len(data)
        desc.cmd = TX_CMD
        desc.status = 0
        self.registers.write(REG_TX_CTRL + 8, self.tx_cur)

        self.tx_cur = (self.tx_cur + 1) % NUM_TX_DESC
        self._tx_pending += 1
        return True

    def receive(self, data: bytes) -> None:
        """Store an arriving frame in the next free receive descriptor."""
        data = bytes(data)
        if not data or len(data) > RX_BUFFER_SIZE:
            raise NicError("received frame has an invalid length")
        desc = self.rx_ring[self._rx_fill]
        if desc.status & DESC_DONE:
            raise NicError("receive ring is full")
        desc.buffer[: len(data)] = data
        desc.length = len(data)
        desc.status |= DESC_DONE
        self._rx_fill = (self._rx_fill + 1) % NUM_RX_DESC

    def handle_interrupt(self) -> int:
        """Deliver received frames and reclaim sent descriptors.

        Returns the number of frames delivered.
        """
        status = self.registers.read(REG_STATUS)
        delivered = 0
        if status & STATUS_RX:
            while self.rx_ring[self.rx_cur].status & DESC_DONE:
                desc = self.rx_ring[self.rx_cur]
                if self.on_receive is not None:
                    self.on_receive(bytes(desc.buffer[: desc.length]))
                delivered += 1
                desc.status = 0
                self.registers.write(REG_RX_CTRL + 8, self.rx_cur)
                self.rx_cur = (self.rx_cur + 1) % NUM_RX_DESC
        if status & STATUS_TX_DONE:
            while self._tx_pending and self.tx_ring[self._tx_clean].status & DESC_DONE:
                self.tx_ring[self._tx_clean].status = 0
                self._tx_clean = (self._tx_clean + 1) % NUM_TX_DESC
                self._tx_pending -= 1
        return delivered