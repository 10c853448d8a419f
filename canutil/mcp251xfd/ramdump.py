"""Ring analysis and message RAM dump of the MCP251xFD."""

from ..bits import can_dlc2len, field_get, get_canfd_dlc
from . import registers as R
from .coredump import DUMP_UNKNOWN, RING_TEF, ChipState, DumpObjectType, Ring, object_type_name
from .regdump import NUM_FIFOS, FifoRegs, RegisterSnapshot, format_registers

_PAYLOAD_SIZES = {
    R.REG_FIFOCON_PLSIZE_8: 8,
    R.REG_FIFOCON_PLSIZE_12: 12,
    R.REG_FIFOCON_PLSIZE_16: 16,
    R.REG_FIFOCON_PLSIZE_20: 20,
    R.REG_FIFOCON_PLSIZE_24: 24,
    R.REG_FIFOCON_PLSIZE_32: 32,
    R.REG_FIFOCON_PLSIZE_48: 48,
    R.REG_FIFOCON_PLSIZE_64: 64,
}

_RING_TYPES = (DumpObjectType.TEF, DumpObjectType.RX, DumpObjectType.TX)


def fifo_payload_size(con: int) -> int:
    """Payload size in bytes selected by the PLSIZE field of a FIFO control value."""
    return _PAYLOAD_SIZES.get(field_get(R.REG_FIFOCON_PLSIZE_MASK, con), 0)


def _fifo_obj_num(fifo: FifoRegs) -> int:
    return (field_get(R.REG_FIFOCON_FSIZE_MASK, fifo.con) + 1) & 0xFF


def _obj_addr(ring: Ring, n: int) -> int:
    return (ring.base + ring.obj_size * n) & 0xFFFF


def _mem_u32(state: ChipState, address: int) -> int:
    chunk = bytes(state.mem[address:address + 4])
    return int.from_bytes(chunk.ljust(4, b"\0"), "little")


def analyze_rings(state: ChipState, snapshot: RegisterSnapshot) -> tuple:
    """Lay out the rings in ``state`` from the FIFO registers.

    Head and tail already known for a ring are kept. Returns the number of
    RX and TX FIFOs found as ``(rx, tx)``.
    """
    base = R.RAM_START
    ring_nr_rx = 0
    ring_nr_tx = 0

    for i, ring in enumerate(state.rings[:NUM_FIFOS]):
        if i == RING_TEF:
            # FIFO 0 is the TXQ, unused by the driver; the TEF is put here.
            fifo = snapshot.tef
            ring.type = DumpObjectType.TEF
            ring.nr = 0
            ring.obj_size = R.HW_TEF_OBJ_SIZE
        else:
            fifo = snapshot.fifo[i]
            if fifo.is_unused():
                continue
            if fifo.is_rx():
                ring.type = DumpObjectType.RX
                ring.nr = ring_nr_rx
                ring_nr_rx += 1
                ring.obj_size = R.HW_RX_OBJ_HEADER_SIZE + fifo_payload_size(fifo.con)
            else:
                ring.type = DumpObjectType.TX
                ring.nr = ring_nr_tx
                ring_nr_tx += 1
                ring.obj_size = R.HW_TX_OBJ_HEADER_SIZE + fifo_payload_size(fifo.con)

        ring.fifo = fifo
        ring.base = base
        ring.fifo_nr = i
        ring.obj_num = _fifo_obj_num(fifo)
        base = _obj_addr(ring, ring.obj_num)

    return ring_nr_rx, ring_nr_tx


def _ring_head(ring: Ring) -> int:
    return ring.head & (ring.obj_num - 1) & 0xFF


def _ring_tail(ring: Ring) -> int:
    return ring.tail & (ring.obj_num - 1) & 0xFF


def _chip_head(ring: Ring) -> int:
    return field_get(R.REG_FIFOSTA_FIFOCI_MASK, ring.fifo.sta)


def _chip_tail(ring: Ring) -> int:
    offset = (ring.fifo.ua - (ring.base - R.RAM_START)) & 0xFFFFFFFF
    return (offset // ring.obj_size) & 0xFF


def format_object_data(data: bytes, dlc: int) -> str:
    """Hex dump of an object's payload, eight bytes to a line.

    Bytes beyond the end of ``data`` are shown as zero.
    """
    length = can_dlc2len(get_canfd_dlc(dlc))
    if not length:
        return f"{'data':>16s} = -none-\n"

    payload = bytes(data[:length]).ljust(length, b"\0")
    parts = []
    for i, byte in enumerate(payload):
        if i % 8 == 0:
            if i == 0:
                parts.append(f"{'data':>16s} = {byte:02x}")
            else:
                parts.append(" " * 19 + f"{byte:02x}")
        elif i % 4 == 0:
            parts.append(f"  {byte:02x}")
        elif i % 8 == 7:
            parts.append(f" {byte:02x}\n")
        else:
            parts.append(f" {byte:02x}")
    if length % 8:
        parts.append("\n")
    return "".join(parts)


def _fifo_flags_chip(ring: Ring, n: int) -> str:
    if _chip_tail(ring) != n:
        return ""
    sta = ring.fifo.sta
    if ring.type == DumpObjectType.TX:
        if not sta & R.REG_FIFOSTA_TFNRFNIF:
            return "  chip-FIFO-full"
        if sta & R.REG_FIFOSTA_TFERFFIF:
            return "  chip-FIFO-empty"
    else:
        if sta & R.REG_FIFOSTA_TFERFFIF:
            return "  chip-FIFO-full"
        if not sta & R.REG_FIFOSTA_TFNRFNIF:
            return "  chip-FIFO-empty"
    return ""


def _fifo_flags_ring(ring: Ring, n: int) -> str:
    if (
        ring.head == DUMP_UNKNOWN
        or ring.tail == DUMP_UNKNOWN
        or _ring_tail(ring) != n
        or _ring_head(ring) != _ring_tail(ring)
    ):
        return ""
    return "  ring-FIFO-empty" if ring.head == ring.tail else "  ring-FIFO-full"


def _mask_line(value: int, name: str, mask: int, desc: str) -> str:
    return f"{name:>16s} = 0x{field_get(mask, value):06x}\t\t{desc}\n"


def _format_object(state: ChipState, ring: Ring, n: int) -> str:
    address = ring.base + ring.obj_size * n
    obj_id = _mem_u32(state, address)
    flags = _mem_u32(state, address + 4)
    ts = _mem_u32(state, address + 8)

    markers = [
        "  chip-HEAD" if ring.type != DumpObjectType.TEF and _chip_head(ring) == n else "",
        "  ring-HEAD" if ring.head != DUMP_UNKNOWN and _ring_head(ring) == n else "",
        "  chip-TAIL" if _chip_tail(ring) == n else "",
        "  ring-TAIL" if ring.tail != DUMP_UNKNOWN and _ring_tail(ring) == n else "",
        _fifo_flags_chip(ring, n),
        _fifo_flags_ring(ring, n),
    ]
    lines = [
        f"{object_type_name(ring.type)}-{ring.nr} Object: 0x{n:02x} (0x{_obj_addr(ring, n):03x})"
        + "".join(markers) + "\n",
        f"{'id':>16s} = 0x{obj_id:08x}\n",
        f"{'flags':>16s} = 0x{flags:08x}\n",
    ]

    if ring.type in (DumpObjectType.TEF, DumpObjectType.RX):
        lines.append(f"{'ts':>16s} = 0x{ts:08x}\n")

    if ring.type == DumpObjectType.TEF:
        lines.append(_mask_line(flags, "SEQ", R.OBJ_FLAGS_SEQ_MASK, "Sequence"))
    elif ring.type == DumpObjectType.TX:
        lines.append(_mask_line(flags, "SEQ_MCP2517FD", R.OBJ_FLAGS_SEQ_MCP2517FD_MASK, "Sequence (MCP2517)"))
        lines.append(_mask_line(flags, "SEQ_MCP2518FD", R.OBJ_FLAGS_SEQ_MCP2518FD_MASK, "Sequence (MCP2518)"))

    if ring.type in (DumpObjectType.RX, DumpObjectType.TX):
        header = R.HW_RX_OBJ_HEADER_SIZE if ring.type == DumpObjectType.RX else R.HW_TX_OBJ_HEADER_SIZE
        start = address + header
        data = bytes(state.mem[start:start + R.CANFD_DATA_SIZE])
        lines.append(format_object_data(data, field_get(R.OBJ_FLAGS_DLC, flags)))

    lines.append("\n")
    return "".join(lines)


def format_ring(state: ChipState, ring: Ring) -> str:
    """Overview of one analysed ring followed by all of its objects."""
    if ring.fifo is None or ring.obj_size == 0:
        raise ValueError("ring has not been analysed")

    lines = [f"\n{object_type_name(ring.type)}-{ring.nr} FIFO {ring.fifo_nr} Overview:\n"]

    if ring.type == DumpObjectType.TEF:
        if ring.head == DUMP_UNKNOWN:
            lines.append(f"{'head ( / )':>16s}\n")
        else:
            lines.append(
                f"{'head ( /r)':>16s} =         0x{_ring_head(ring):02x}    0x{ring.head:08x}\n"
            )
    else:
        if ring.head == DUMP_UNKNOWN:
            lines.append(f"{'head (c/ )':>16s} = 0x{_chip_head(ring):02x}\n")
        else:
            lines.append(
                f"{'head (c/r)':>16s} = 0x{_chip_head(ring):02x}    "
                f"0x{_ring_head(ring):02x}    0x{ring.head:08x}\n"
            )

    if ring.tail == DUMP_UNKNOWN:
        lines.append(f"{'tail (c/ )':>16s} = 0x{_chip_tail(ring):02x}\n")
    else:
        lines.append(
            f"{'tail (c/r)':>16s} = 0x{_chip_tail(ring):02x}    "
            f"0x{_ring_tail(ring):02x}    0x{ring.tail:08x}\n"
        )
    lines.append("\n")

    lines.extend(_format_object(state, ring, n) for n in range(ring.obj_num))
    return "".join(lines)


def format_ram(state: ChipState) -> str:
    """Dump every TEF, RX and TX ring in ``state``."""
    parts = ["----------------------- RAM dump ----------------------\n"]
    for ring in state.rings[:NUM_FIFOS]:
        if ring.type in _RING_TYPES and ring.fifo is not None:
            parts.append(format_ring(state, ring))
    parts.append("------------------------- end -------------------------\n")
    return "".join(parts)


def dump(state: ChipState) -> str:
    """Analyse ``state`` and return the complete register and RAM dump text."""
    snapshot = RegisterSnapshot.from_state(state)
    rx, tx = analyze_rings(state, snapshot)
    summary = (
        f"Found {rx} RX-FIFO{'s' if rx > 1 else ''}, "
        f"{tx} TX-FIFO{'s' if tx > 1 else ''}\n\n"
    )
    return summary + format_registers(snapshot) + format_ram(state)