"""CAN identifiers, frame limits and a classic / FD frame type."""

from dataclasses import dataclass

# special address description flags for the CAN id
CAN_EFF_FLAG = 0x80000000
CAN_RTR_FLAG = 0x40000000
CAN_ERR_FLAG = 0x20000000

CAN_SFF_MASK = 0x000007FF
CAN_EFF_MASK = 0x1FFFFFFF
CAN_ERR_MASK = 0x1FFFFFFF
CANXL_PRIO_MASK = CAN_SFF_MASK

CAN_SFF_ID_BITS = 11
CAN_EFF_ID_BITS = 29
CANXL_PRIO_BITS = CAN_SFF_ID_BITS

CAN_MAX_DLC = 8
CAN_MAX_RAW_DLC = 15
CAN_MAX_DLEN = 8

CANFD_MAX_DLC = 15
CANFD_MAX_DLEN = 64

CANXL_MIN_DLC = 0
CANXL_MAX_DLC = 2047
CANXL_MAX_DLC_MASK = 0x07FF
CANXL_MIN_DLEN = 1
CANXL_MAX_DLEN = 2048

CANFD_BRS = 0x01
CANFD_ESI = 0x02
CANFD_FDF = 0x04

CANXL_XLF = 0x80
CANXL_SEC = 0x01

CAN_MTU = 16
CANFD_MTU = 72
CANXL_HDR_SIZE = 12
CANXL_MTU = CANXL_HDR_SIZE + CANXL_MAX_DLEN
CANXL_MIN_MTU = CANXL_HDR_SIZE + 64
CANXL_MAX_MTU = CANXL_MTU

CAN_RAW = 1
CAN_BCM = 2
CAN_TP16 = 3
CAN_TP20 = 4
CAN_MCNET = 5
CAN_ISOTP = 6
CAN_J1939 = 7
CAN_NPROTO = 8

SOL_CAN_BASE = 100

CAN_INV_FILTER = 0x20000000
CAN_RAW_FILTER_MAX = 512

_LEN2DLC_STEPS = ((8, None), (12, 9), (16, 10), (20, 11), (24, 12), (32, 13), (48, 14), (64, 15))


def can_fd_len2dlc(length: int) -> int:
    """Return the smallest DLC whose payload holds ``length`` bytes."""
    if length < 0:
        raise ValueError(f"length must not be negative: {length}")
    for limit, dlc in _LEN2DLC_STEPS:
        if length <= limit:
            return length if dlc is None else dlc
    return CANFD_MAX_DLC


@dataclass(frozen=True)
class CanFrame:
    """A Classical CAN or CAN FD frame.

    ``data`` holds the payload; its length is the frame length. For remote
    frames the payload content is ignored but its length still gives the DLC.
    """

    can_id: int
    data: bytes = b""
    flags: int = 0
    len8_dlc: int = 0
    fd: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        if not 0 <= self.can_id <= 0xFFFFFFFF:
            raise ValueError(f"CAN id out of range: {self.can_id:#x}")
        limit = CANFD_MAX_DLEN if self.fd else CAN_MAX_DLEN
        if len(self.data) > limit:
            raise ValueError(f"payload of {len(self.data)} bytes exceeds {limit}")
        if not 0 <= self.len8_dlc <= 0xFF:
            raise ValueError(f"len8_dlc out of range: {self.len8_dlc}")

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def mtu(self) -> int:
        return CANFD_MTU if self.fd else CAN_MTU

    def is_extended(self) -> bool:
        return bool(self.can_id & CAN_EFF_FLAG)

    def is_rtr(self) -> bool:
        return bool(self.can_id & CAN_RTR_FLAG)

    def is_error(self) -> bool:
        return bool(self.can_id & CAN_ERR_FLAG)

    def arbitration_id(self) -> int:
        """The identifier without flag bits (11 or 29 bits)."""
        mask = CAN_EFF_MASK if self.is_extended() else CAN_SFF_MASK
        return self.can_id & mask