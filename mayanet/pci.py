"""PCI device descriptions and lookup."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

CONFIG_VENDOR_ID = 0x00
CONFIG_DEVICE_ID = 0x02
CONFIG_COMMAND = 0x04
CONFIG_STATUS = 0x06
CONFIG_CLASS_CODE = 0x0B
CONFIG_HEADER_TYPE = 0x0E
CONFIG_BAR0 = 0x10
CONFIG_BAR1 = 0x14

BAR_COUNT = 6


@dataclass(frozen=True)
class PciDevice:
    """One function found on the PCI bus."""

    vendor_id: int
    device_id: int
    class_code: int = 0
    subclass: int = 0
    prog_if: int = 0
    revision: int = 0
    bus: int = 0
    slot: int = 0
    function: int = 0
    bars: tuple[int, ...] = (0,) * BAR_COUNT
    interrupt_line: int = 0

    def __post_init__(self) -> None:
        if len(self.bars) != BAR_COUNT:
            raise ValueError(f"a PCI device has {BAR_COUNT} base address registers")
        object.__setattr__(self, "bars", tuple(self.bars))


def find_device(
    devices: Iterable[PciDevice], vendor_id: int, device_id: int
) -> PciDevice | None:
    """Return the first device with the given vendor and device id, or None."""
    return next(
        (
            device
            for device in devices
            if device.vendor_id == vendor_id and device.device_id == device_id
        ),
        None,
    )