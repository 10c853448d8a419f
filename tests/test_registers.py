import pytest

from canutil.bits import can_dlc2len, field_get, field_prep
from canutil.mcp251xfd import registers as r


def test_fifo_zero_is_the_tx_queue():
    assert r.fifocon(0) == r.REG_TXQCON
    assert r.fifosta(0) == r.REG_TXQSTA
    assert r.fifoua(0) == r.REG_TXQUA


@pytest.mark.parametrize("n", [0, 1, 5, 31])
def test_fifo_registers_are_consecutive(n):
    assert r.fifosta(n) == r.fifocon(n) + 4
    assert r.fifoua(n) == r.fifosta(n) + 4
    assert r.fifocon(n + 1) == r.fifoua(n) + 4


def test_filter_register_addresses():
    assert r.fltcon(0) == 0x1D0
    assert r.fltobj(0) == 0x1F0
    assert r.fltmask(0) == 0x1F4
    assert r.fltmask(3) == r.fltobj(3) + 4
    assert r.fltobj(4) == r.fltmask(3) + 4


def test_filter_objects_follow_filter_control():
    assert r.fltobj(0) == r.fltcon(8)


def test_last_fifo_before_filters():
    assert r.fifoua(31) + 4 <= r.fltcon(0)


@pytest.mark.parametrize("func", [r.fifocon, r.fifosta, r.fifoua, r.fltcon, r.fltobj, r.fltmask])
def test_negative_index_rejected(func):
    with pytest.raises(ValueError):
        func(-1)


def test_plsize_field_round_trip():
    con = field_prep(r.REG_FIFOCON_PLSIZE_MASK, r.REG_FIFOCON_PLSIZE_64)
    assert field_get(r.REG_FIFOCON_PLSIZE_MASK, con) == r.REG_FIFOCON_PLSIZE_64
    assert con & ~r.REG_FIFOCON_PLSIZE_MASK == 0


def test_fifo_fields_do_not_overlap():
    plsize = field_prep(r.REG_FIFOCON_PLSIZE_MASK, 0x7)
    fsize = field_prep(r.REG_FIFOCON_FSIZE_MASK, 0x1F)
    txat = field_prep(r.REG_FIFOCON_TXAT_MASK, 0x3)
    assert plsize & fsize == 0
    assert fsize & txat == 0
    assert field_get(r.REG_FIFOCON_FSIZE_MASK, plsize | fsize | txat) == 0x1F


def test_int_enable_bits_are_flag_bits_shifted():
    assert field_get(r.REG_INT_IE_MASK, r.REG_INT_IVMIE) == r.REG_INT_IVMIF
    assert field_get(r.REG_INT_IE_MASK, r.REG_INT_TXIE) == r.REG_INT_TXIF
    assert field_prep(r.REG_INT_IE_MASK, r.REG_INT_IF_MASK) == r.REG_INT_IE_MASK


def test_ram_window_lies_between_filters_and_osc():
    assert r.fltmask(31) + 4 <= r.RAM_START
    assert r.RAM_START + r.RAM_SIZE <= r.REG_OSC


def test_object_sizes():
    assert r.CAN_DATA_SIZE == can_dlc2len(8)
    assert r.CANFD_DATA_SIZE == can_dlc2len(15)
    assert r.HW_RX_OBJ_CAN_SIZE - r.HW_TX_OBJ_CAN_SIZE == 4
    assert r.HW_RX_OBJ_CANFD_SIZE - r.HW_RX_OBJ_CAN_SIZE == can_dlc2len(15) - can_dlc2len(8)