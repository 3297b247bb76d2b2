"""On-disk structures of the FAT32 file system."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from enum import IntFlag

SECTOR_SIZE = 512
SIGNATURE = 0xAA55
EOC_MARK = 0x0FFFFFF8
CLUSTER_MASK = 0x0FFFFFFF
LFN_CHARS = 13

OK = 0
ERROR_NOT_FOUND = -1
ERROR_ACCESS_DENIED = -2
ERROR_DISK_FULL = -3
ERROR_INVALID_PATH = -4
ERROR_FILE_EXISTS = -5
ERROR_NOT_A_FILE = -6
ERROR_NOT_A_DIRECTORY = -7
ERROR_INVALID_HANDLE = -8
ERROR_IO_ERROR = -9
ERROR_NOT_MOUNTED = -10

_BOOT = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH")
_DIR = struct.Struct("<8s3sBBBHHHHHHHI")
_LFN = struct.Struct("<B5HBBB6HH2H")


class Fat32Error(Exception):
    """Raised for malformed structures; code holds the file system error code."""

    def __init__(self, message: str, code: int = ERROR_IO_ERROR) -> None:
        super().__init__(message)
        self.code = code


class Attribute(IntFlag):
    READ_ONLY = 0x01
    HIDDEN = 0x02
    SYSTEM = 0x04
    VOLUME_ID = 0x08
    DIRECTORY = 0x10
    ARCHIVE = 0x20
    LFN = 0x0F


def is_end_of_chain(cluster: int) -> bool:
    """True if a FAT entry marks the last cluster of a chain."""
    return cluster & CLUSTER_MASK >= EOC_MARK


def _encode_text(value: str, width: int) -> bytes:
    raw = value.encode("latin-1")
    if len(raw) > width:
        raise Fat32Error(f"{value!r} is longer than {width} bytes")
    return raw.ljust(width, b" ")


def _decode_text(raw: bytes) -> str:
    return raw.decode("latin-1").rstrip(" ")


def _fixed_bytes(value: bytes, width: int) -> bytes:
    value = bytes(value)
    if len(value) > width:
        raise Fat32Error(f"field of {len(value)} bytes exceeds {width} bytes")
    return value.ljust(width, b"\x00")


def _require(data: bytes, size: int, what: str) -> bytes:
    data = bytes(data)
    if len(data) < size:
        raise Fat32Error(f"{what} needs {size} bytes, got {len(data)}")
    return data


_BOOT_TEXT = {"oem_name": 8, "volume_label": 11, "fs_type": 8}
_BOOT_RAW = {"jump_code": 3, "reserved": 12, "boot_code": 420}


@dataclass
class BootSector:
    """The FAT32 boot sector (BIOS parameter block)."""

    jump_code: bytes = bytes(3)
    oem_name: str = ""
    bytes_per_sector: int = SECTOR_SIZE
    sectors_per_cluster: int = 0
    reserved_sectors: int = 0
    num_fats: int = 0
    root_dir_entries: int = 0
    total_sectors_16: int = 0
    media_descriptor: int = 0
    fat_size_16: int = 0
    sectors_per_track: int = 0
    num_heads: int = 0
    hidden_sectors: int = 0
    total_sectors_32: int = 0
    fat_size_32: int = 0
    ext_flags: int = 0
    fs_version: int = 0
    root_cluster: int = 0
    fs_info: int = 0
    backup_boot_sector: int = 0
    reserved: bytes = bytes(12)
    drive_number: int = 0
    reserved1: int = 0
    boot_signature: int = 0
    volume_serial: int = 0
    volume_label: str = ""
    fs_type: str = ""
    boot_code: bytes = bytes(420)
    signature: int = SIGNATURE

    @classmethod
    def from_bytes(cls, data: bytes) -> BootSector:
        data = _require(data, _BOOT.size, "boot sector")
        values = {}
        for spec, value in zip(fields(cls), _BOOT.unpack_from(data)):
            if spec.name in _BOOT_TEXT:
                value = _decode_text(value)
            values[spec.name] = value
        sector = cls(**values)
        if sector.signature != SIGNATURE:
            raise Fat32Error(f"bad boot sector signature {sector.signature:#06x}")
        return sector

    def to_bytes(self) -> bytes:
        values = []
        for spec in fields(self):
            value = getattr(self, spec.name)
            if spec.name in _BOOT_TEXT:
                value = _encode_text(value, _BOOT_TEXT[spec.name])
            elif spec.name in _BOOT_RAW:
                value = _fixed_bytes(value, _BOOT_RAW[spec.name])
            values.append(value)
        try:
            return _BOOT.pack(*values)
        except struct.error as exc:
            raise Fat32Error(str(exc)) from exc


@dataclass
class DirEntry:
    """A short-name directory entry."""

    name: str = ""
    extension: str = ""
    attributes: Attribute = Attribute(0)
    reserved: int = 0
    creation_time_tenths: int = 0
    creation_time: int = 0
    creation_date: int = 0
    last_access_date: int = 0
    first_cluster: int = 0
    last_write_time: int = 0
    last_write_date: int = 0
    file_size: int = 0

    @property
    def filename(self) -> str:
        name, ext = self.name.rstrip(), self.extension.rstrip()
        return f"{name}.{ext}" if ext else name

    @property
    def is_directory(self) -> bool:
        return bool(self.attributes & Attribute.DIRECTORY)

    @property
    def is_long_name(self) -> bool:
        return self.attributes & Attribute.LFN == Attribute.LFN

    @classmethod
    def from_bytes(cls, data: bytes) -> DirEntry:
        data = _require(data, _DIR.size, "directory entry")
        (name, ext, attrs, reserved, tenths, ctime, cdate, adate,
         high, wtime, wdate, low, size) = _DIR.unpack_from(data)
        return cls(
            name=_decode_text(name),
            extension=_decode_text(ext),
            attributes=Attribute(attrs),
            reserved=reserved,
            creation_time_tenths=tenths,
            creation_time=ctime,
            creation_date=cdate,
            last_access_date=adate,
            first_cluster=(high << 16) | low,
            last_write_time=wtime,
            last_write_date=wdate,
            file_size=size,
        )

    def to_bytes(self) -> bytes:
        if not 0 <= self.first_cluster <= 0xFFFFFFFF:
            raise Fat32Error(f"cluster {self.first_cluster} out of range")
        try:
            return _DIR.pack(
                _encode_text(self.name, 8),
                _encode_text(self.extension, 3),
                int(self.attributes),
                self.reserved,
                self.creation_time_tenths,
                self.creation_time,
                self.creation_date,
                self.last_access_date,
                self.first_cluster >> 16,
                self.last_write_time,
                self.last_write_date,
                self.first_cluster & 0xFFFF,
                self.file_size,
            )
        except struct.error as exc:
            raise Fat32Error(str(exc)) from exc


@dataclass
class LfnEntry:
    """A long-file-name entry holding 13 UTF-16 code units."""

    order: int = 0
    chars: tuple[int, ...] = (0xFFFF,) * LFN_CHARS
    checksum: int = 0
    attributes: int = int(Attribute.LFN)
    type: int = 0
    first_cluster_low: int = 0

    def __post_init__(self) -> None:
        self.chars = tuple(self.chars)
        if len(self.chars) != LFN_CHARS:
            raise Fat32Error(f"a long-name entry holds {LFN_CHARS} characters")

    @property
    def sequence(self) -> int:
        return self.order & 0x1F

    @property
    def is_last(self) -> bool:
        return bool(self.order & 0x40)

    @classmethod
    def from_bytes(cls, data: bytes) -> LfnEntry:
        data = _require(data, _LFN.size, "long-name entry")
        values = _LFN.unpack_from(data)
        return cls(
            order=values[0],
            chars=values[1:6] + values[9:15] + values[16:18],
            attributes=values[6],
            type=values[7],
            checksum=values[8],
            first_cluster_low=values[15],
        )

    def to_bytes(self) -> bytes:
        try:
            return _LFN.pack(
                self.order,
                *self.chars[:5],
                self.attributes,
                self.type,
                self.checksum,
                *self.chars[5:11],
                self.first_cluster_low,
                *self.chars[11:],
            )
        except struct.error as exc:
            raise Fat32Error(str(exc)) from exc

    def name_part(self) -> str:
        """The characters of this entry up to the terminator."""
        units = []
        for unit in self.chars:
            if unit in (0x0000, 0xFFFF):
                break
            units.append(unit)
        return struct.pack(f"<{len(units)}H", *units).decode("utf-16-le", "replace")