"""Bit and bit-field helpers for register-style integers."""

__all__ = [
    "DLC2LEN",
    "bit",
    "genmask",
    "field_get",
    "field_prep",
    "get_canfd_dlc",
    "can_dlc2len",
]

CANFD_MAX_DLC = 15

DLC2LEN = (0, 1, 2, 3, 4, 5, 6, 7, 8, 12, 16, 20, 24, 32, 48, 64)


def bit(nr: int) -> int:
    """Return an integer with only bit ``nr`` set."""
    if nr < 0:
        raise ValueError(f"bit number must not be negative: {nr}")
    return 1 << nr


def genmask(high: int, low: int) -> int:
    """Return a contiguous mask with bits ``low`` through ``high`` set."""
    if low < 0 or high < low:
        raise ValueError(f"invalid mask range {high}..{low}")
    return ((1 << (high + 1)) - 1) & ~((1 << low) - 1)


def _shift(mask: int) -> int:
    if mask <= 0:
        raise ValueError(f"mask must be a positive integer: {mask}")
    return (mask & -mask).bit_length() - 1


def field_get(mask: int, value: int) -> int:
    """Extract the field selected by ``mask`` from ``value``."""
    return (value & mask) >> _shift(mask)


def field_prep(mask: int, value: int) -> int:
    """Shift ``value`` into the field selected by ``mask``."""
    return (value << _shift(mask)) & mask


def get_canfd_dlc(dlc: int) -> int:
    """Clamp a DLC (taken as an unsigned byte) to the CAN FD maximum."""
    return min(dlc & 0xFF, CANFD_MAX_DLC)


def can_dlc2len(dlc: int) -> int:
    """Map a DLC to its payload length; only the low nibble is used."""
    return DLC2LEN[dlc & 0x0F]