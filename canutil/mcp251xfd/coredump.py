"""Chip state and reader for MCP251xFD device coredump files."""

import enum
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

DUMP_MAGIC = 0x1825434D
DUMP_UNKNOWN = 0xFFFFFFFF
MEM_SIZE = 0x1000
NUM_RINGS = 32
RING_TEF = 0

_HEADER = struct.Struct("<4I")
_OBJECT = struct.Struct("<2I")


class DumpError(Exception):
    """Raised for a malformed or unusable dump."""


class DumpObjectType(enum.IntEnum):
    REG = 0
    TEF = 1
    RX = 2
    TX = 3
    END = -1


class RingKey(enum.IntEnum):
    HEAD = 0
    TAIL = 1
    BASE = 2
    NR = 3
    FIFO_NR = 4
    OBJ_NUM = 5
    OBJ_SIZE = 6


_TYPE_NAMES = {
    DumpObjectType.REG: "REG",
    DumpObjectType.TEF: "TEF",
    DumpObjectType.RX: "RX",
    DumpObjectType.TX: "TX",
    DumpObjectType.END: "END",
}

_KEY_NAMES = {
    RingKey.HEAD: "head",
    RingKey.TAIL: "tail",
    RingKey.BASE: "base",
    RingKey.NR: "nr",
    RingKey.FIFO_NR: "fifo-nr",
    RingKey.OBJ_NUM: "obj-num",
    RingKey.OBJ_SIZE: "obj-size",
}


def _signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def object_type_name(object_type: Optional[int]) -> str:
    """Short name of a dump object type, ``<unknown>`` if not known."""
    if object_type is None:
        return "<unknown>"
    return _TYPE_NAMES.get(_signed32(object_type), "<unknown>")


def ring_key_name(key: int) -> str:
    """Name of a ring key, ``<unknown>`` if not known."""
    return _KEY_NAMES.get(key, "<unknown>")


@dataclass
class Ring:
    """Driver-side description of one FIFO ring; unknown fields keep their defaults."""

    type: Optional[DumpObjectType] = None
    head: int = DUMP_UNKNOWN
    tail: int = DUMP_UNKNOWN
    base: int = 0
    nr: int = 0xFF
    fifo_nr: int = 0xFF
    obj_num: int = 0
    obj_size: int = 0
    fifo: Any = None


@dataclass
class ChipState:
    """Register and RAM image of the controller plus the driver's rings."""

    mem: bytearray = field(default_factory=lambda: bytearray(MEM_SIZE))
    rings: list = field(default_factory=lambda: [Ring() for _ in range(NUM_RINGS)])

    def _check(self, address: int) -> None:
        if address < 0 or address + 4 > len(self.mem):
            raise ValueError(f"register address out of range: {address:#x}")

    def read_u32(self, address: int) -> int:
        """Read a 32 bit little endian word at ``address``."""
        self._check(address)
        return int.from_bytes(self.mem[address:address + 4], "little")

    def write_u32(self, address: int, value: int) -> None:
        """Store a 32 bit little endian word at ``address``."""
        self._check(address)
        self.mem[address:address + 4] = (value & 0xFFFFFFFF).to_bytes(4, "little")


def _objects(data: bytes, start: int, end: int):
    for offset in range(start, end - _OBJECT.size + 1, _OBJECT.size):
        yield _OBJECT.unpack_from(data, offset)


def _read_regs(data: bytes, start: int, end: int, state: ChipState) -> None:
    for reg, val in _objects(data, start, end):
        try:
            state.write_u32(reg, val)
        except ValueError as exc:
            raise DumpError(str(exc)) from None


def _read_ring(data: bytes, start: int, end: int) -> Ring:
    ring = Ring()
    for key, val in _objects(data, start, end):
        if key == RingKey.HEAD:
            ring.head = val
        elif key == RingKey.TAIL:
            ring.tail = val
        elif key == RingKey.BASE:
            ring.base = val & 0xFFFF
        elif key == RingKey.NR:
            ring.nr = val & 0xFF
        elif key == RingKey.FIFO_NR:
            ring.fifo_nr = val & 0xFF
        elif key == RingKey.OBJ_NUM:
            ring.obj_num = val & 0xFF
        elif key == RingKey.OBJ_SIZE:
            ring.obj_size = val & 0xFF
    return ring


def parse_coredump(data: bytes, state: ChipState) -> None:
    """Fill ``state`` from the bytes of a device coredump.

    Raises DumpError if the dump is truncated, malformed or lacks an END object.
    """
    data = bytes(data)
    dump_len = len(data)
    header_offset = 0

    while header_offset + _HEADER.size <= dump_len:
        magic, raw_type, offset, length = _HEADER.unpack_from(data, header_offset)
        if magic != DUMP_MAGIC:
            break
        if offset + length > dump_len:
            raise DumpError(
                f"object at {offset:#x} with length {length:#x} exceeds dump of {dump_len:#x} bytes"
            )
        end = offset + length

        try:
            object_type = DumpObjectType(_signed32(raw_type))
        except ValueError:
            raise DumpError(f"unknown object type {raw_type:#x}") from None

        if object_type is DumpObjectType.END:
            return
        if object_type is DumpObjectType.REG:
            _read_regs(data, offset, end, state)
        else:
            ring = _read_ring(data, offset, end)
            if ring.fifo_nr >= len(state.rings):
                raise DumpError(f"invalid FIFO number {ring.fifo_nr}")
            state.rings[ring.fifo_nr] = ring

        header_offset += _HEADER.size

    raise DumpError("no end object found in dump")


def read_coredump(path: Union[str, Path], state: ChipState) -> None:
    """Read the coredump file at ``path`` into ``state``."""
    parse_coredump(Path(path).read_bytes(), state)