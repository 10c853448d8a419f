import struct

import pytest

from canutil.mcp251xfd.coredump import (
    DUMP_MAGIC,
    DUMP_UNKNOWN,
    MEM_SIZE,
    ChipState,
    DumpError,
    DumpObjectType,
    Ring,
    RingKey,
    object_type_name,
    parse_coredump,
    read_coredump,
    ring_key_name,
)

END = 0xFFFFFFFF


def _pairs(*pairs):
    return b"".join(struct.pack("<2I", a, b) for a, b in pairs)


def _build(objects, end=True):
    entries = list(objects) + ([(END, b"")] if end else [])
    header_size = 16 * len(entries)
    headers = b""
    body = b""
    for obj_type, payload in entries:
        offset = header_size + len(body) if payload else 0
        headers += struct.pack("<4I", DUMP_MAGIC, obj_type, offset, len(payload))
        body += payload
    return headers + body


def _ring_payload(fifo_nr, **extra):
    pairs = [(RingKey.FIFO_NR, fifo_nr)]
    pairs += [(RingKey[name.upper()], value) for name, value in extra.items()]
    return _pairs(*pairs)


def test_register_object_fills_memory():
    state = ChipState()
    parse_coredump(_build([(DumpObjectType.REG, _pairs((0x00, 0x11223344), (0xE00, 0xCAFE)))]), state)
    assert state.read_u32(0x00) == 0x11223344
    assert state.read_u32(0xE00) == 0xCAFE
    assert state.mem[0:4] == bytes.fromhex("44332211")


def test_ring_object_sets_ring():
    state = ChipState()
    payload = _ring_payload(3, head=7, tail=5, base=0x480, nr=1, obj_num=8, obj_size=20)
    parse_coredump(_build([(DumpObjectType.RX, payload)]), state)
    ring = state.rings[3]
    assert (ring.head, ring.tail, ring.base) == (7, 5, 0x480)
    assert (ring.nr, ring.fifo_nr, ring.obj_num, ring.obj_size) == (1, 3, 8, 20)
    assert ring.type is None


def test_other_rings_stay_unknown():
    state = ChipState()
    parse_coredump(_build([(DumpObjectType.TEF, _ring_payload(0, head=1))]), state)
    assert state.rings[1] == Ring()
    assert state.rings[1].head == DUMP_UNKNOWN


def test_ring_keys_missing_keep_defaults():
    state = ChipState()
    parse_coredump(_build([(DumpObjectType.TX, _ring_payload(2))]), state)
    assert state.rings[2].head == DUMP_UNKNOWN
    assert state.rings[2].tail == DUMP_UNKNOWN


def test_unknown_ring_key_is_ignored():
    state = ChipState()
    payload = _ring_payload(4) + _pairs((99, 1234))
    parse_coredump(_build([(DumpObjectType.TX, payload)]), state)
    assert state.rings[4] == Ring(fifo_nr=4)


def test_trailing_partial_object_ignored():
    state = ChipState()
    payload = _pairs((0x10, 0xAABBCCDD)) + b"\x20\x00"
    parse_coredump(_build([(DumpObjectType.REG, payload)]), state)
    assert state.read_u32(0x10) == 0xAABBCCDD
    assert state.read_u32(0x20) == 0


def test_missing_end_raises():
    with pytest.raises(DumpError):
        parse_coredump(_build([(DumpObjectType.REG, _pairs((0, 1)))], end=False), ChipState())


def test_bad_magic_raises():
    with pytest.raises(DumpError):
        parse_coredump(b"\x00" * 32, ChipState())


def test_empty_dump_raises():
    with pytest.raises(DumpError):
        parse_coredump(b"", ChipState())


def test_object_beyond_dump_raises():
    data = struct.pack("<4I", DUMP_MAGIC, DumpObjectType.REG, 16, 64)
    with pytest.raises(DumpError):
        parse_coredump(data, ChipState())


def test_unknown_object_type_raises():
    with pytest.raises(DumpError):
        parse_coredump(_build([(7, _pairs((0, 0)))]), ChipState())


def test_ring_without_fifo_number_raises():
    with pytest.raises(DumpError):
        parse_coredump(_build([(DumpObjectType.RX, _pairs((RingKey.HEAD, 1)))]), ChipState())


def test_fifo_number_out_of_range_raises():
    with pytest.raises(DumpError):
        parse_coredump(_build([(DumpObjectType.RX, _ring_payload(32))]), ChipState())


def test_register_out_of_range_raises():
    with pytest.raises(DumpError):
        parse_coredump(_build([(DumpObjectType.REG, _pairs((MEM_SIZE, 1)))]), ChipState())


def test_read_coredump_from_file(tmp_path):
    path = tmp_path / "chip.dump"
    path.write_bytes(_build([(DumpObjectType.REG, _pairs((0x40, 0x600000)))]))
    state = ChipState()
    read_coredump(path, state)
    assert state.read_u32(0x40) == 0x600000


def test_read_coredump_missing_file(tmp_path):
    with pytest.raises(OSError):
        read_coredump(tmp_path / "absent.dump", ChipState())


def test_u32_round_trip_and_bounds():
    state = ChipState()
    state.write_u32(MEM_SIZE - 4, 0xDEADBEEF)
    assert state.read_u32(MEM_SIZE - 4) == 0xDEADBEEF
    with pytest.raises(ValueError):
        state.write_u32(MEM_SIZE - 3, 0)
    with pytest.raises(ValueError):
        state.read_u32(-1)


def test_object_type_names():
    assert object_type_name(DumpObjectType.REG) == "REG"
    assert object_type_name(DumpObjectType.TEF) == "TEF"
    assert object_type_name(DumpObjectType.RX) == "RX"
    assert object_type_name(DumpObjectType.TX) == "TX"
    assert object_type_name(END) == "END"
    assert object_type_name(DumpObjectType.END) == "END"
    assert object_type_name(42) == "<unknown>"
    assert object_type_name(None) == "<unknown>"


def test_ring_key_names():
    assert ring_key_name(RingKey.HEAD) == "head"
    assert ring_key_name(RingKey.FIFO_NR) == "fifo-nr"
    assert ring_key_name(RingKey.OBJ_SIZE) == "obj-size"
    assert ring_key_name(7) == "<unknown>"


def test_state_has_32_rings():
    state = ChipState()
    assert len(state.rings) == 32
    assert len(state.mem) == MEM_SIZE