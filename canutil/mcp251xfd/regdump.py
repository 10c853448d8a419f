"""Register snapshot and human readable register dump of the MCP251xFD."""

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

from ..bits import bit, field_get
from . import registers as R
from .coredump import ChipState

NUM_FIFOS = 32
NUM_FLTCON = 8
NUM_FILTERS = 32

_FifoField = Tuple[str, int, Optional[Callable[[int], str]], str]


def _hex2(value: int) -> str:
    return f"0x{value:02x}"


def _dec3(value: int) -> str:
    return f"{value:3d}"


def _dec_0x2(value: int) -> str:
    return f"0x{value:02d}"


@dataclass(frozen=True)
class FifoRegs:
    """Control, status and user address register of one FIFO."""

    con: int = 0
    sta: int = 0
    ua: int = 0

    def is_unused(self) -> bool:
        return self.con == 0x00600000 and self.sta == 0x00000000

    def is_rx(self) -> bool:
        return not self.con & R.REG_FIFOCON_TXEN


def _fifos() -> Tuple[FifoRegs, ...]:
    return tuple(FifoRegs() for _ in range(NUM_FIFOS))


@dataclass(frozen=True)
class RegisterSnapshot:
    """Values of the controller's special function registers."""

    con: int = 0
    nbtcfg: int = 0
    dbtcfg: int = 0
    tdc: int = 0
    tbc: int = 0
    tscon: int = 0
    vec: int = 0
    intf: int = 0
    rxif: int = 0
    txif: int = 0
    rxovif: int = 0
    txatif: int = 0
    txreq: int = 0
    trec: int = 0
    bdiag0: int = 0
    bdiag1: int = 0
    tef: FifoRegs = FifoRegs()
    reserved0: int = 0
    fifo: Tuple[FifoRegs, ...] = field(default_factory=_fifos)
    fltcon: Tuple[int, ...] = (0,) * NUM_FLTCON
    filters: Tuple[Tuple[int, int], ...] = ((0, 0),) * NUM_FILTERS
    osc: int = 0
    iocon: int = 0
    crc: int = 0
    ecccon: int = 0
    eccstat: int = 0
    devid: int = 0

    @classmethod
    def from_state(cls, state: ChipState) -> "RegisterSnapshot":
        """Read all registers from the memory image in ``state``."""
        read = state.read_u32
        return cls(
            con=read(R.REG_CON),
            nbtcfg=read(R.REG_NBTCFG),
            dbtcfg=read(R.REG_DBTCFG),
            tdc=read(R.REG_TDC),
            tbc=read(R.REG_TBC),
            tscon=read(R.REG_TSCON),
            vec=read(R.REG_VEC),
            intf=read(R.REG_INT),
            rxif=read(R.REG_RXIF),
            txif=read(R.REG_TXIF),
            rxovif=read(R.REG_RXOVIF),
            txatif=read(R.REG_TXATIF),
            txreq=read(R.REG_TXREQ),
            trec=read(R.REG_TREC),
            bdiag0=read(R.REG_BDIAG0),
            bdiag1=read(R.REG_BDIAG1),
            tef=FifoRegs(read(R.REG_TEFCON), read(R.REG_TEFSTA), read(R.REG_TEFUA)),
            reserved0=read(0x4C),
            fifo=tuple(
                FifoRegs(read(R.fifocon(i)), read(R.fifosta(i)), read(R.fifoua(i)))
                for i in range(NUM_FIFOS)
            ),
            fltcon=tuple(read(R.fltcon(i)) for i in range(NUM_FLTCON)),
            filters=tuple((read(R.fltobj(i)), read(R.fltmask(i))) for i in range(NUM_FILTERS)),
            osc=read(R.REG_OSC),
            iocon=read(R.REG_IOCON),
            crc=read(R.REG_CRC),
            ecccon=read(R.REG_ECCCON),
            eccstat=read(R.REG_ECCSTAT),
            devid=read(R.REG_DEVID),
        )


def _header(title: str, register: str, value: int, address: int) -> str:
    return f"{title}: {register}(0x{address:03x})={value:#010x}\n".replace("=0x0x", "=0x")


def _bit_line(value: int, name: str, mask: int, desc: str) -> str:
    return f"{name:>16s}   {'x' if value & mask else ' '}\t\t{desc}\n"


def _mask_line(value: int, name: str, mask: int, fmt: Callable[[int], str], desc: str) -> str:
    return f"{name:>16s} = {fmt(field_get(mask, value))}\t\t{desc}\n"


def _fields(value: int, fields: Sequence[_FifoField]) -> str:
    lines = []
    for name, mask, fmt, desc in fields:
        if fmt is None:
            lines.append(_bit_line(value, name, mask, desc))
        else:
            lines.append(_mask_line(value, name, mask, fmt, desc))
    return "".join(lines)


_CON_FIELDS = (
    ("TXBWS", R.REG_CON_TXBWS_MASK, _hex2, "Transmit Bandwidth Sharing"),
    ("ABAT", R.REG_CON_ABAT, None, "Abort All Pending Transmissions"),
    ("REQOP", R.REG_CON_REQOP_MASK, _hex2, "Request Operation Mode"),
    ("OPMOD", R.REG_CON_OPMOD_MASK, _hex2, "Operation Mode Status"),
    ("TXQEN", R.REG_CON_TXQEN, None, "Enable Transmit Queue"),
    ("STEF", R.REG_CON_STEF, None, "Store in Transmit Event FIFO"),
    ("SERR2LOM", R.REG_CON_SERR2LOM, None, "Transition to Listen Only Mode on System Error"),
    ("ESIGM", R.REG_CON_ESIGM, None, "Transmit ESI in Gateway Mode"),
    ("RTXAT", R.REG_CON_RTXAT, None, "Restrict Retransmission Attempts"),
    ("BRSDIS", R.REG_CON_BRSDIS, None, "Bit Rate Switching Disable"),
    ("BUSY", R.REG_CON_BUSY, None, "CAN Module is Busy"),
    ("WFT", R.REG_CON_WFT_MASK, _hex2, "Selectable Wake-up Filter Time"),
    ("WAKFIL", R.REG_CON_WAKFIL, None, "Enable CAN Bus Line Wake-up Filter"),
    ("PXEDIS", R.REG_CON_PXEDIS, None, "Protocol Exception Event Detection Disabled"),
    ("ISOCRCEN", R.REG_CON_ISOCRCEN, None, "Enable ISO CRC in CAN FD Frames"),
    ("DNCNT", R.REG_CON_DNCNT_MASK, _hex2, "Device Net Filter Bit Number"),
)

_NBTCFG_FIELDS = (
    ("BRP", R.REG_NBTCFG_BRP_MASK, _dec3, "Baud Rate Prescaler"),
    ("TSEG1", R.REG_NBTCFG_TSEG1_MASK, _dec3, "Time Segment 1 (Propagation Segment + Phase Segment 1)"),
    ("TSEG2", R.REG_NBTCFG_TSEG2_MASK, _dec3, "Time Segment 2 (Phase Segment 2)"),
    ("SJW", R.REG_NBTCFG_SJW_MASK, _dec3, "Synchronization Jump Width"),
)

_DBTCFG_FIELDS = (
    ("BRP", R.REG_DBTCFG_BRP_MASK, _dec3, "Baud Rate Prescaler"),
    ("TSEG1", R.REG_DBTCFG_TSEG1_MASK, _dec3, "Time Segment 1 (Propagation Segment + Phase Segment 1)"),
    ("TSEG2", R.REG_DBTCFG_TSEG2_MASK, _dec3, "Time Segment 2 (Phase Segment 2)"),
    ("SJW", R.REG_DBTCFG_SJW_MASK, _dec3, "Synchronization Jump Width"),
)

_TDC_FIELDS = (
    ("EDGFLTEN", R.REG_TDC_EDGFLTEN, None, "Enable Edge Filtering during Bus Integration state"),
    ("SID11EN", R.REG_TDC_SID11EN, None, "Enable 12-Bit SID in CAN FD Base Format Messages"),
    ("TDCMOD", R.REG_TDC_TDCMOD_MASK, _hex2, "Transmitter Delay Compensation Mode"),
    ("TDCO", R.REG_TDC_TDCO_MASK, _hex2, "Transmitter Delay Compensation Offset"),
    ("TDCV", R.REG_TDC_TDCV_MASK, _hex2, "Transmitter Delay Compensation Value"),
)

_TREC_FIELDS = (
    ("TXBO", R.REG_TREC_TXBO, None, "Transmitter in Bus Off State"),
    ("TXBP", R.REG_TREC_TXBP, None, "Transmitter in Error Passive State"),
    ("RXBP", R.REG_TREC_RXBP, None, "Receiver in Error Passive State"),
    ("TXWARN", R.REG_TREC_TXWARN, None, "Transmitter in Error Warning State"),
    ("RXWARN", R.REG_TREC_RXWARN, None, "Receiver in Error Warning State"),
    ("EWARN", R.REG_TREC_EWARN, None, "Transmitter or Receiver is in Error Warning State"),
    ("TEC", R.REG_TREC_TEC_MASK, _dec3, "Transmit Error Counter"),
    ("REC", R.REG_TREC_REC_MASK, _dec3, "Receive Error Counter"),
)

_BDIAG0_FIELDS = (
    ("DTERRCNT", R.REG_BDIAG0_DTERRCNT_MASK, _dec3, "Data Bit Rate Transmit Error Counter"),
    ("DRERRCNT", R.REG_BDIAG0_DRERRCNT_MASK, _dec3, "Data Bit Rate Receive Error Counter"),
    ("NTERRCNT", R.REG_BDIAG0_NTERRCNT_MASK, _dec3, "Nominal Bit Rate Transmit Error Counter"),
    ("NRERRCNT", R.REG_BDIAG0_NRERRCNT_MASK, _dec3, "Nominal Bit Rate Receive Error Counter"),
)

_BDIAG1_FIELDS = (
    ("DLCMM", R.REG_BDIAG1_DLCMM, None, "DLC Mismatch"),
    ("ESI", R.REG_BDIAG1_ESI, None, "ESI flag of a received CAN FD message was set"),
    ("DCRCERR", R.REG_BDIAG1_DCRCERR, None, "Data CRC Error"),
    ("DSTUFERR", R.REG_BDIAG1_DSTUFERR, None, "Data Bit Stuffing Error"),
    ("DFORMERR", R.REG_BDIAG1_DFORMERR, None, "Data Format Error"),
    ("DBIT1ERR", R.REG_BDIAG1_DBIT1ERR, None, "Data BIT1 Error"),
    ("DBIT0ERR", R.REG_BDIAG1_DBIT0ERR, None, "Data BIT0 Error"),
    ("TXBOERR", R.REG_BDIAG1_TXBOERR, None, "Device went to bus-off (and auto-recovered)"),
    ("NCRCERR", R.REG_BDIAG1_NCRCERR, None, "CRC Error"),
    ("NSTUFERR", R.REG_BDIAG1_NSTUFERR, None, "Bit Stuffing Error"),
    ("NFORMERR", R.REG_BDIAG1_NFORMERR, None, "Format Error"),
    ("NACKERR", R.REG_BDIAG1_NACKERR, None, "Transmitted message was not acknowledged"),
    ("NBIT1ERR", R.REG_BDIAG1_NBIT1ERR, None, "Bit1 Error"),
    ("NBIT0ERR", R.REG_BDIAG1_NBIT0ERR, None, "Bit0 Error"),
    ("EFMSGCNT", R.REG_BDIAG1_EFMSGCNT_MASK, _dec3, "Error Free Message Counter"),
)

_OSC_FIELDS = (
    ("SCLKRDY", R.REG_OSC_SCLKRDY, None, "Synchronized SCLKDIV"),
    ("OSCRDY", R.REG_OSC_OSCRDY, None, "Clock Ready"),
    ("PLLRDY", R.REG_OSC_PLLRDY, None, "PLL Ready"),
    ("CLKODIV", R.REG_OSC_CLKODIV_MASK, _dec_0x2, "Clock Output Divisor"),
    ("SCLKDIV", R.REG_OSC_SCLKDIV, None, "System Clock Divisor"),
    ("LPMEN", R.REG_OSC_LPMEN, None, "Low Power Mode (LPM) Enable (MCP2518FD only)"),
    ("OSCDIS", R.REG_OSC_OSCDIS, None, "Clock (Oscillator) Disable"),
    ("PLLEN", R.REG_OSC_PLLEN, None, "PLL Enable"),
)

_IOCON_FIELDS = (
    ("INTOD", R.REG_IOCON_INTOD, None, "Interrupt pins Open Drain Mode (0: Push/Pull Output, 1: Open Drain Output)"),
    ("SOF", R.REG_IOCON_SOF, None, "Start-Of-Frame signal (0: Clock on CLKO pin, 1: SOF signal on CLKO pin)"),
    ("TXCANOD", R.REG_IOCON_TXCANOD, None, "TXCAN Open Drain Mode (0: Push/Pull Output, 1: Open Drain Output)"),
    ("PM1", R.REG_IOCON_PM1, None, "GPIO Pin Mode (0: Interrupt Pin INT1 (RXIF), 1: Pin is used as GPIO1)"),
    ("PM0", R.REG_IOCON_PM0, None, "GPIO Pin Mode (0: Interrupt Pin INT0 (TXIF), 1: Pin is used as GPIO0)"),
    ("GPIO1", R.REG_IOCON_GPIO1, None, "GPIO1 Status"),
    ("GPIO0", R.REG_IOCON_GPIO0, None, "GPIO0 Status"),
    ("LAT1", R.REG_IOCON_LAT1, None, "GPIO1 Latch"),
    ("LAT0", R.REG_IOCON_LAT0, None, "GPIO0 Latch"),
    ("XSTBYEN", R.REG_IOCON_XSTBYEN, None, "Enable Transceiver Standby Pin Control"),
    ("TRIS1", R.REG_IOCON_TRIS1, None, "GPIO1 Data Direction (0: Output Pin, 1: Input Pin)"),
    ("TRIS0", R.REG_IOCON_TRIS0, None, "GPIO0 Data Direction (0: Output Pin, 1: Input Pin)"),
)

_TEFCON_FIELDS = (
    ("FSIZE", R.REG_TEFCON_FSIZE_MASK, _dec3, "FIFO Size"),
    ("FRESET", R.REG_TEFCON_FRESET, None, "FIFO Reset"),
    ("UINC", R.REG_TEFCON_UINC, None, "Increment Tail"),
    ("TEFTSEN", R.REG_TEFCON_TEFTSEN, None, "Transmit Event FIFO Time Stamp Enable"),
    ("TEFOVIE", R.REG_TEFCON_TEFOVIE, None, "Transmit Event FIFO Overflow Interrupt Enable"),
    ("TEFFIE", R.REG_TEFCON_TEFFIE, None, "Transmit Event FIFO Full Interrupt Enable"),
    ("TEFHIE", R.REG_TEFCON_TEFHIE, None, "Transmit Event FIFO Half Full Interrupt Enable"),
    ("TEFNEIE", R.REG_TEFCON_TEFNEIE, None, "Transmit Event FIFO Not Empty Interrupt Enable"),
)

_TEFSTA_FIELDS = (
    ("TEFOVIF", R.REG_TEFSTA_TEFOVIF, None, "Transmit Event FIFO Overflow Interrupt Flag"),
    ("TEFFIF", R.REG_TEFSTA_TEFFIF, None, "Transmit Event FIFO Full Interrupt Flag (0: not full)"),
    ("TEFHIF", R.REG_TEFSTA_TEFHIF, None, "Transmit Event FIFO Half Full Interrupt Flag (0: < half full)"),
    ("TEFNEIF", R.REG_TEFSTA_TEFNEIF, None, "Transmit Event FIFO Not Empty Interrupt Flag (0: empty)"),
)

_FIFOCON_FIELDS = (
    ("PLSIZE", R.REG_FIFOCON_PLSIZE_MASK, _dec3, "Payload Size"),
    ("FSIZE", R.REG_FIFOCON_FSIZE_MASK, _dec3, "FIFO Size"),
    ("TXAT", R.REG_FIFOCON_TXAT_MASK, _dec3, "Retransmission Attempts"),
    ("TXPRI", R.REG_FIFOCON_TXPRI_MASK, _dec3, "Message Transmit Priority"),
    ("FRESET", R.REG_FIFOCON_FRESET, None, "FIFO Reset"),
    ("TXREQ", R.REG_FIFOCON_TXREQ, None, "Message Send Request"),
    ("UINC", R.REG_FIFOCON_UINC, None, "Increment Head/Tail"),
    ("TXEN", R.REG_FIFOCON_TXEN, None, "TX/RX FIFO Selection (0: RX, 1: TX)"),
    ("RTREN", R.REG_FIFOCON_RTREN, None, "Auto RTR Enable"),
    ("RXTSEN", R.REG_FIFOCON_RXTSEN, None, "Received Message Time Stamp Enable"),
    ("TXATIE", R.REG_FIFOCON_TXATIE, None, "Transmit Attempts Exhausted Interrupt Enable"),
    ("RXOVIE", R.REG_FIFOCON_RXOVIE, None, "Overflow Interrupt Enable"),
    ("TFERFFIE", R.REG_FIFOCON_TFERFFIE, None, "Transmit/Receive FIFO Empty/Full Interrupt Enable"),
    ("TFHRFHIE", R.REG_FIFOCON_TFHRFHIE, None, "Transmit/Receive FIFO Half Empty/Half Full Interrupt Enable"),
    ("TFNRFNIE", R.REG_FIFOCON_TFNRFNIE, None, "Transmit/Receive FIFO Not Full/Not Empty Interrupt Enable"),
)

_FIFOSTA_FIELDS = (
    ("FIFOCI", R.REG_FIFOSTA_FIFOCI_MASK, _dec3, "FIFO Message Index"),
    ("TXABT", R.REG_FIFOSTA_TXABT, None, "Message Aborted Status (0: completed successfully, 1: aborted)"),
    ("TXLARB", R.REG_FIFOSTA_TXLARB, None, "Message Lost Arbitration Status"),
    ("TXERR", R.REG_FIFOSTA_TXERR, None, "Error Detected During Transmission"),
    ("TXATIF", R.REG_FIFOSTA_TXATIF, None, "Transmit Attempts Exhausted Interrupt Pending"),
    ("RXOVIF", R.REG_FIFOSTA_RXOVIF, None, "Receive FIFO Overflow Interrupt Flag"),
    ("TFERFFIF", R.REG_FIFOSTA_TFERFFIF, None, "Transmit/Receive FIFO Empty/Full Interrupt Flag"),
    ("TFHRFHIF", R.REG_FIFOSTA_TFHRFHIF, None, "Transmit/Receive FIFO Half Empty/Half Full Interrupt Flag"),
    ("TFNRFNIF", R.REG_FIFOSTA_TFNRFNIF, None, "Transmit/Receive FIFO Not Full/Not Empty Interrupt Flag"),
)

_INT_BITS = (
    ("IVMI", R.REG_INT_IVMIE, R.REG_INT_IVMIF, "Invalid Message Interrupt"),
    ("WAKI", R.REG_INT_WAKIE, R.REG_INT_WAKIF, "Bus Wake Up Interrupt"),
    ("CERRI", R.REG_INT_CERRIE, R.REG_INT_CERRIF, "CAN Bus Error Interrupt"),
    ("SERRI", R.REG_INT_SERRIE, R.REG_INT_SERRIF, "System Error Interrupt"),
    ("RXOVI", R.REG_INT_RXOVIE, R.REG_INT_RXOVIF, "Receive FIFO Overflow Interrupt"),
    ("TXATI", R.REG_INT_TXATIE, R.REG_INT_TXATIF, "Transmit Attempt Interrupt"),
    ("SPICRCI", R.REG_INT_SPICRCIE, R.REG_INT_SPICRCIF, "SPI CRC Error Interrupt"),
    ("ECCI", R.REG_INT_ECCIE, R.REG_INT_ECCIF, "ECC Error Interrupt"),
    ("TEFI", R.REG_INT_TEFIE, R.REG_INT_TEFIF, "Transmit Event FIFO Interrupt"),
    ("MODI", R.REG_INT_MODIE, R.REG_INT_MODIF, "Mode Change Interrupt"),
    ("TBCI", R.REG_INT_TBCIE, R.REG_INT_TBCIF, "Time Base Counter Interrupt"),
    ("RXI", R.REG_INT_RXIE, R.REG_INT_RXIF, "Receive FIFO Interrupt"),
    ("TXI", R.REG_INT_TXIE, R.REG_INT_TXIF, "Transmit FIFO Interrupt"),
)

_ICODES = {
    0x4A: "Transmit Attempt Interrupt",
    0x49: "Transmit Event FIFO Interrupt",
    0x48: "Invalid Message Occurred",
    0x47: "Operation Mode Changed",
    0x46: "TBC Overflow",
    0x45: "RX/TX MAB Overflow/Underflow",
    0x44: "Address Error Interrupt",
    0x43: "Receive FIFO Overflow Interrupt",
    0x42: "Wake-up Interrupt",
    0x41: "Error Interrupt",
    0x40: "No Interrupt",
}


def _register(title: str, register: str, fields: Sequence[_FifoField], value: int, address: int) -> str:
    return _header(title, register, value, address) + _fields(value, fields)


def _fifo_code(code: int) -> str:
    if code == 0x40:
        return "No Interrupt"
    if code < 0x20:
        return f"FIFO {code}"
    return "Reserved"


def format_vec(value: int, address: int = R.REG_VEC) -> str:
    """Describe the interrupt code register."""
    rx_code = field_get(R.REG_VEC_RXCODE_MASK, value)
    tx_code = field_get(R.REG_VEC_TXCODE_MASK, value)
    i_code = field_get(R.REG_VEC_ICODE_MASK, value)
    if i_code in _ICODES:
        i_text = _ICODES[i_code]
    elif i_code < 0x20:
        i_text = f"FIFO {i_code}"
    else:
        i_text = "Reserved"
    return (
        _header("VEC", "vec", value, address)
        + f"\trxcode: {_fifo_code(rx_code)} (0x{rx_code:02x})\n"
        + f"\ttxcode: {_fifo_code(tx_code)} (0x{tx_code:02x})\n"
        + f"\ticode: {i_text} (0x{i_code:02x})\n"
    )


def format_intf(value: int, address: int = R.REG_INT) -> str:
    """Tabulate interrupt enables and flags of the INT register."""
    pending = field_get(R.REG_INT_IF_MASK, value) & field_get(R.REG_INT_IE_MASK, value)
    lines = [_header("INT", "intf", value, address), "\t\tIE\tIF\tIE & IF\n"]
    for name, enable, flag, desc in _INT_BITS:
        ie = "x" if value & enable else ""
        if_ = "x" if value & flag else ""
        both = "x" if pending & flag else ""
        lines.append(f"\t{name}\t{ie}\t{if_}\t{both}\t{desc}\n")
    return "".join(lines)


def format_fifo_bitmask(name: str, register: str, description: str, value: int, address: int) -> str:
    """List the FIFOs flagged in a per-FIFO bitmask register."""
    text = _header(name, register, value, address) + f"{description}:\n"
    if not value:
        return text + "\t\t-none-\n"
    # only the first four FIFO bits are examined
    flagged = "".join(f"{i} " for i in range(4) if value & bit(i))
    return text + "\t\t" + flagged + "\n"


def format_registers(snapshot: RegisterSnapshot) -> str:
    """Return the full register dump text of ``snapshot``."""
    s = snapshot
    sections = [
        _register("CON", "con", _CON_FIELDS, s.con, R.REG_CON),
        _register("NBTCFG", "nbtcfg", _NBTCFG_FIELDS, s.nbtcfg, R.REG_NBTCFG),
        _register("DBTCFG", "dbtcfg", _DBTCFG_FIELDS, s.dbtcfg, R.REG_DBTCFG),
        _register("TDC", "tdc", _TDC_FIELDS, s.tdc, R.REG_TDC),
        _header("TBC", "tbc", s.tbc, R.REG_TBC),
        format_vec(s.vec, R.REG_VEC),
        format_intf(s.intf, R.REG_INT),
        format_fifo_bitmask("RXIF", "rxif", "Receive FIFO Interrupt Pending", s.rxif, R.REG_RXIF),
        format_fifo_bitmask("RXOVIF", "rxovif", "Receive FIFO Overflow Interrupt Pending", s.rxovif, R.REG_RXOVIF),
        format_fifo_bitmask("TXIF", "txif", "Transmit FIFO Interrupt Pending", s.txif, R.REG_TXIF),
        format_fifo_bitmask("TXATIF", "txatif", "Transmit FIFO Attempt Interrupt Pending", s.txatif, R.REG_TXATIF),
        format_fifo_bitmask("TXREQ", "txreq", "Message Send Request", s.txreq, R.REG_TXREQ),
        _register("TREC", "trec", _TREC_FIELDS, s.trec, R.REG_TREC),
        _register("BDIAG0", "bdiag0", _BDIAG0_FIELDS, s.bdiag0, R.REG_BDIAG0),
        _register("BDIAG1", "bdiag1", _BDIAG1_FIELDS, s.bdiag1, R.REG_BDIAG1),
        _register("OSC", "osc", _OSC_FIELDS, s.osc, R.REG_OSC),
        _register("IOCON", "iocon", _IOCON_FIELDS, s.iocon, R.REG_IOCON),
    ]

    parts = ["-------------------- register dump --------------------\n"]
    parts.extend(section + "\n" for section in sections)

    for i, fifo in enumerate(s.fifo):
        if fifo.is_unused():
            continue
        parts.append(f"----------------------- FIFO {i:2d} - ")
        if i == 0:
            parts.append("TEF -----------------\n")
            parts.append(_register("TEFCON", "tefcon", _TEFCON_FIELDS, s.tef.con, R.REG_TEFCON) + "\n")
            parts.append(_register("TEFSTA", "tefsta", _TEFSTA_FIELDS, s.tef.sta, R.REG_TEFSTA) + "\n")
            parts.append(_header("TEFUA", "tefua", s.tef.ua, R.REG_TEFUA) + "\n")
        else:
            parts.append("RX ------------------\n" if fifo.is_rx() else "TX ------------------\n")
            parts.append(_register("FIFOCON", "fifocon", _FIFOCON_FIELDS, fifo.con, R.fifocon(i)) + "\n")
            parts.append(_register("FIFOSTA", "fifosta", _FIFOSTA_FIELDS, fifo.sta, R.fifosta(i)) + "\n")
            parts.append(_header("FIFOUA", "fifoua", fifo.ua, R.fifoua(i)) + "\n")

    parts.append("----------------------- end ---------------------------\n")
    return "".join(parts)