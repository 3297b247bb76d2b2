"""The information block a multiboot loader hands to the kernel."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields

_LAYOUT = struct.Struct("<24I")
SIZE = _LAYOUT.size
_SYMS = 4


@dataclass
class MultibootInfo:
    """The multiboot information structure, all fields 32-bit."""

    flags: int = 0
    mem_lower: int = 0
    mem_upper: int = 0
    boot_device: int = 0
    cmdline: int = 0
    mods_count: int = 0
    mods_addr: int = 0
    syms: tuple[int, ...] = (0,) * _SYMS
    mmap_length: int = 0
    mmap_addr: int = 0
    drives_length: int = 0
    drives_addr: int = 0
    config_table: int = 0
    boot_loader_name: int = 0
    apm_table: int = 0
    vbe_control_info: int = 0
    vbe_mode_info: int = 0
    vbe_mode: int = 0
    vbe_interface_seg: int = 0
    vbe_interface_off: int = 0
    vbe_interface_len: int = 0

    def __post_init__(self) -> None:
        self.syms = tuple(self.syms)
        if len(self.syms) != _SYMS:
            raise ValueError(f"syms holds {_SYMS} values")
        for value in self._values():
            if not 0 <= value <= 0xFFFFFFFF:
                raise ValueError(f"value {value} does not fit in 32 bits")

    def _values(self) -> list[int]:
        values: list[int] = []
        for spec in fields(self):
            value = getattr(self, spec.name)
            if spec.name == "syms":
                values.extend(value)
            else:
                values.append(value)
        return values

    @classmethod
    def from_bytes(cls, data: bytes) -> MultibootInfo:
        data = bytes(data)
        if len(data) < SIZE:
            raise ValueError(f"multiboot information needs {SIZE} bytes")
        values = _LAYOUT.unpack_from(data)
        return cls(*values[:7], tuple(values[7:11]), *values[11:])

    def to_bytes(self) -> bytes:
        return _LAYOUT.pack(*self._values())