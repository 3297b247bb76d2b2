import pytest

from mayanet.pci import BAR_COUNT, PciDevice, find_device

INTEL = 0x8086
I825XX = 0x100E


def _devices():
    return [
        PciDevice(vendor_id=0x1234, device_id=0x1111, bus=0, slot=1),
        PciDevice(vendor_id=INTEL, device_id=I825XX, bus=0, slot=3, interrupt_line=11),
        PciDevice(vendor_id=INTEL, device_id=I825XX, bus=0, slot=4),
    ]


def test_find_device_returns_first_match():
    found = find_device(_devices(), INTEL, I825XX)
    assert found is not None
    assert found.slot == 3
    assert found.interrupt_line == 11


def test_find_device_missing_returns_none():
    assert find_device(_devices(), INTEL, 0x9999) is None


def test_find_device_empty_list():
    assert find_device([], INTEL, I825XX) is None


def test_find_device_accepts_generator():
    found = find_device((d for d in _devices()), 0x1234, 0x1111)
    assert found == PciDevice(vendor_id=0x1234, device_id=0x1111, bus=0, slot=1)


def test_default_bars_are_zero():
    device = PciDevice(vendor_id=INTEL, device_id=I825XX)
    assert device.bars == (0,) * BAR_COUNT


def test_bars_are_stored_as_tuple():
    device = PciDevice(vendor_id=INTEL, device_id=I825XX, bars=[1, 2, 3, 4, 5, 6])
    assert device.bars == (1, 2, 3, 4, 5, 6)


def test_wrong_bar_count_rejected():
    with pytest.raises(ValueError):
        PciDevice(vendor_id=INTEL, device_id=I825XX, bars=(0, 0))