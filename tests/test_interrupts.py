import pytest

from mayanet.interrupts import IdtEntry, IdtPointer, Registers


def test_idt_entry_wire_bytes():
    entry = IdtEntry.from_gate(0x12345678, 0x08, 0x8E)
    assert entry.to_bytes() == bytes([0x78, 0x56, 0x08, 0x00, 0x00, 0x8E, 0x34, 0x12])


def test_idt_entry_round_trip():
    entry = IdtEntry.from_gate(0xC0100ABC, 0x10, 0xEE)
    assert IdtEntry.from_bytes(entry.to_bytes()) == entry


def test_idt_entry_reserved_byte_must_be_zero():
    raw = bytearray(IdtEntry.from_gate(0x1000, 0x08, 0x8E).to_bytes())
    raw[4] = 1
    with pytest.raises(ValueError):
        IdtEntry.from_bytes(bytes(raw))


@pytest.mark.parametrize(
    "base, selector, flags", [(1 << 32, 0, 0), (0, 1 << 16, 0), (0, 0, 256), (-1, 0, 0)]
)
def test_idt_entry_out_of_range(base, selector, flags):
    with pytest.raises(ValueError):
        IdtEntry.from_gate(base, selector, flags)


def test_idt_entry_too_short():
    with pytest.raises(ValueError):
        IdtEntry.from_bytes(bytes(7))


def test_idt_pointer_round_trip():
    pointer = IdtPointer(limit=256 * 8 - 1, base=0x00105000)
    raw = pointer.to_bytes()
    assert len(raw) == 6
    assert raw[:2] == pointer.limit.to_bytes(2, "little")
    assert IdtPointer.from_bytes(raw) == pointer


def test_idt_pointer_too_short():
    with pytest.raises(ValueError):
        IdtPointer.from_bytes(bytes(5))


def test_registers_round_trip_and_layout():
    regs = Registers(gs=0x10, eax=0xDEADBEEF, int_no=14, err_code=2, eip=0xC0001000, ss=0x23)
    raw = regs.to_bytes()
    assert len(raw) == 19 * 4
    assert raw[44:48] == regs.eax.to_bytes(4, "little")
    assert raw[48:52] == regs.int_no.to_bytes(4, "little")
    assert Registers.from_bytes(raw) == regs


def test_registers_out_of_range():
    with pytest.raises(ValueError):
        Registers(eax=1 << 32)


def test_registers_too_short():
    with pytest.raises(ValueError):
        Registers.from_bytes(bytes(10))