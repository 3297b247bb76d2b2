"""x86 interrupt descriptor table entries and the saved register frame."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass, fields

_ENTRY = struct.Struct("<HHBBH")
_POINTER = struct.Struct("<HI")
_REGISTERS = struct.Struct("<19I")


def _check(value: int, bits: int, name: str) -> None:
    if not 0 <= value < 1 << bits:
        raise ValueError(f"{name} {value} does not fit in {bits} bits")


def _require(data: bytes, size: int, what: str) -> bytes:
    data = bytes(data)
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")
    return data


@dataclass(frozen=True)
class IdtEntry:
    """One interrupt gate."""

    base: int
    selector: int
    flags: int

    def __post_init__(self) -> None:
        _check(self.base, 32, "base")
        _check(self.selector, 16, "selector")
        _check(self.flags, 8, "flags")

    @classmethod
    def from_gate(cls, base: int, selector: int, flags: int) -> IdtEntry:
        return cls(base, selector, flags)

    @classmethod
    def from_bytes(cls, data: bytes) -> IdtEntry:
        data = _require(data, _ENTRY.size, "IDT entry")
        low, selector, zero, flags, high = _ENTRY.unpack_from(data)
        if zero:
            raise ValueError("reserved byte of an IDT entry must be zero")
        return cls((high << 16) | low, selector, flags)

    def to_bytes(self) -> bytes:
        return _ENTRY.pack(
            self.base & 0xFFFF, self.selector, 0, self.flags, self.base >> 16
        )


@dataclass(frozen=True)
class IdtPointer:
    """The operand of the lidt instruction."""

    limit: int
    base: int

    def __post_init__(self) -> None:
        _check(self.limit, 16, "limit")
        _check(self.base, 32, "base")

    @classmethod
    def from_bytes(cls, data: bytes) -> IdtPointer:
        data = _require(data, _POINTER.size, "IDT pointer")
        return cls(*_POINTER.unpack_from(data))

    def to_bytes(self) -> bytes:
        return _POINTER.pack(self.limit, self.base)


@dataclass
class Registers:
    """The register frame pushed by the interrupt stubs."""

    gs: int = 0
    fs: int = 0
    es: int = 0
    ds: int = 0
    edi: int = 0
    esi: int = 0
    ebp: int = 0
    esp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    int_no: int = 0
    err_code: int = 0
    eip: int = 0
    cs: int = 0
    eflags: int = 0
    useresp: int = 0
    ss: int = 0

    def __post_init__(self) -> None:
        for spec in fields(self):
            _check(getattr(self, spec.name), 32, spec.name)

    @classmethod
    def from_bytes(cls, data: bytes) -> Registers:
        data = _require(data, _REGISTERS.size, "register frame")
        return cls(*_REGISTERS.unpack_from(data))

    def to_bytes(self) -> bytes:
        return _REGISTERS.pack(*astuple(self))