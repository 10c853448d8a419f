import pytest

from canutil.bits import field_prep
from canutil.mcp251xfd import registers as R
from canutil.mcp251xfd.coredump import ChipState, DumpObjectType
from canutil.mcp251xfd.ramdump import (
    analyze_rings,
    dump,
    format_object_data,
    format_ram,
    format_ring,
    fifo_payload_size,
)
from canutil.mcp251xfd.regdump import RegisterSnapshot

UNUSED_CON = 0x00600000


def _state(rx_sta=R.REG_FIFOSTA_TFNRFNIF, rx_ua=0x18, extra_rx=False):
    state = ChipState()
    for i in range(1, 32):
        state.write_u32(R.fifocon(i), UNUSED_CON)
    state.write_u32(R.REG_TEFCON, field_prep(R.REG_TEFCON_FSIZE_MASK, 1))
    state.write_u32(R.fifocon(1), field_prep(R.REG_FIFOCON_FSIZE_MASK, 3))
    state.write_u32(R.fifosta(1), rx_sta)
    state.write_u32(R.fifoua(1), rx_ua)
    state.write_u32(R.fifocon(2), R.REG_FIFOCON_TXEN | field_prep(R.REG_FIFOCON_FSIZE_MASK, 1))
    state.write_u32(R.fifosta(2), R.REG_FIFOSTA_TFNRFNIF)
    if extra_rx:
        state.write_u32(R.fifocon(3), 0)
    return state


def _analyzed(state):
    analyze_rings(state, RegisterSnapshot.from_state(state))
    return state


def _object_line(text, prefix):
    return next(line for line in text.splitlines() if line.startswith(prefix))


@pytest.mark.parametrize(
    "plsize, expected",
    [(R.REG_FIFOCON_PLSIZE_8, 8), (R.REG_FIFOCON_PLSIZE_16, 16), (R.REG_FIFOCON_PLSIZE_64, 64)],
)
def test_fifo_payload_size(plsize, expected):
    assert fifo_payload_size(field_prep(R.REG_FIFOCON_PLSIZE_MASK, plsize)) == expected


def test_analyze_counts_and_types():
    state = _state()
    assert analyze_rings(state, RegisterSnapshot.from_state(state)) == (1, 1)
    assert state.rings[0].type == DumpObjectType.TEF
    assert state.rings[1].type == DumpObjectType.RX
    assert state.rings[2].type == DumpObjectType.TX
    assert state.rings[3].type is None


def test_analyze_layout_is_contiguous():
    state = _analyzed(_state())
    tef, rx, tx = state.rings[0], state.rings[1], state.rings[2]
    assert tef.base == R.RAM_START
    assert tef.obj_size == R.HW_TEF_OBJ_SIZE
    assert tef.obj_num == 2
    assert rx.base == tef.base + tef.obj_size * tef.obj_num
    assert tx.base == rx.base + rx.obj_size * rx.obj_num
    assert rx.obj_size == R.HW_RX_OBJ_HEADER_SIZE + 8
    assert tx.obj_size == R.HW_TX_OBJ_HEADER_SIZE + 8
    assert (rx.fifo_nr, tx.fifo_nr) == (1, 2)


def test_analyze_keeps_known_head_and_tail():
    state = _state()
    state.rings[1].head = 5
    state.rings[1].tail = 2
    _analyzed(state)
    assert (state.rings[1].head, state.rings[1].tail) == (5, 2)


def test_object_data_none():
    assert format_object_data(b"", 0) == "            data = -none-\n"


def test_object_data_eight_bytes():
    text = format_object_data(bytes(range(8)), 8)
    assert text.endswith("data = 00 01 02 03  04 05 06 07\n")
    assert text.count("\n") == 1


def test_object_data_line_count_for_fd():
    assert format_object_data(bytes(64), 15).count("\n") == 8
    twelve = format_object_data(bytes(range(12)), 9)
    assert twelve.count("\n") == 2
    assert twelve.endswith("\n")


def test_object_data_pads_missing_bytes():
    assert format_object_data(b"\xaa", 2) == format_object_data(b"\xaa\x00", 2)


def test_format_ring_overview_and_objects():
    state = _analyzed(_state())
    text = format_ring(state, state.rings[1])
    assert "RX-0 FIFO 1 Overview:" in text
    assert "head (c/ )" in text
    assert text.count("Object:") == state.rings[1].obj_num


def test_format_ring_requires_analysis():
    state = ChipState()
    with pytest.raises(ValueError):
        format_ring(state, state.rings[5])


def test_chip_head_and_tail_markers():
    sta = field_prep(R.REG_FIFOSTA_FIFOCI_MASK, 2) | R.REG_FIFOSTA_TFNRFNIF
    state = _analyzed(_state(rx_sta=sta))
    text = format_ring(state, state.rings[1])
    assert "chip-HEAD" in _object_line(text, "RX-0 Object: 0x02")
    first = _object_line(text, "RX-0 Object: 0x00")
    assert "chip-TAIL" in first
    assert "chip-FIFO" not in first


def test_chip_fifo_empty_for_rx():
    state = _analyzed(_state(rx_sta=0))
    text = format_ring(state, state.rings[1])
    assert "chip-FIFO-empty" in _object_line(text, "RX-0 Object: 0x00")


@pytest.mark.parametrize("head, tail, flag", [(4, 4, "ring-FIFO-empty"), (4, 0, "ring-FIFO-full")])
def test_ring_fifo_flags(head, tail, flag):
    state = _state()
    state.rings[1].head = head
    state.rings[1].tail = tail
    _analyzed(state)
    text = format_ring(state, state.rings[1])
    line = _object_line(text, "RX-0 Object: 0x00")
    assert flag in line
    assert "ring-HEAD" in line and "ring-TAIL" in line


def test_rx_object_content():
    state = _analyzed(_state())
    address = state.rings[1].base
    state.write_u32(address, 0x7FF)
    state.write_u32(address + 4, 3)
    state.mem[address + 12:address + 15] = b"\xaa\xbb\xcc"
    text = format_ring(state, state.rings[1])
    assert "0x000007ff" in text
    assert "data = aa bb cc\n" in text


def test_tef_sequence_field():
    state = _analyzed(_state())
    state.write_u32(state.rings[0].base + 4, field_prep(R.OBJ_FLAGS_SEQ_MASK, 5))
    text = format_ring(state, state.rings[0])
    assert "SEQ = 0x000005\t\tSequence\n" in text
    assert "head ( / )" in text


def test_format_ram_lists_used_rings():
    state = _analyzed(_state())
    text = format_ram(state)
    assert text.startswith("----------------------- RAM dump ----------------------\n")
    assert text.endswith("------------------------- end -------------------------\n")
    assert text.count("Overview:") == 3
    assert "TX-0 FIFO 2 Overview:" in text


def test_format_ram_without_analysis_is_empty():
    text = format_ram(ChipState())
    assert "Overview" not in text
    assert text.count("\n") == 2


def test_dump_summary():
    text = dump(_state())
    assert text.startswith("Found 1 RX-FIFO, 1 TX-FIFO\n\n")
    assert "register dump" in text
    assert "RAM dump" in text


def test_dump_plural_summary():
    assert dump(_state(extra_rx=True)).startswith("Found 2 RX-FIFOs, 1 TX-FIFO\n\n")