"""SAE J1939 socket addresses: parsing and formatting."""

import socket
from dataclasses import dataclass, replace
from typing import Optional, Tuple

J1939_NO_NAME = 0
J1939_NO_ADDR = 0xFF
J1939_NO_PGN = 0x40000
J1939_PGN_MAX = 0x3FFFF
J1939_PGN_ADDRESS_CLAIMED = 0x0EE00
IFNAMSIZ = 16

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF
_SPACE = " \t\n\v\f\r"
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class J1939Address:
    """A J1939 socket address: interface index, 64 bit NAME, PGN and source address."""

    ifindex: int = 0
    name: int = J1939_NO_NAME
    pgn: int = J1939_NO_PGN
    addr: int = J1939_NO_ADDR


def _digit(ch: str) -> int:
    pos = _DIGITS.find(ch.lower()) if ch.isascii() else -1
    return pos


def _strtol(text: str, base: int) -> Tuple[int, int]:
    """Parse a leading integer like the C library does.

    Returns ``(value, end)``; ``end`` is 0 when no digits were found.
    """
    i = 0
    n = len(text)
    while i < n and text[i] in _SPACE:
        i += 1
    negative = False
    if i < n and text[i] in "+-":
        negative = text[i] == "-"
        i += 1
    if base in (0, 16) and text[i:i + 2].lower() == "0x" and i + 2 < n and 0 <= _digit(text[i + 2]) < 16:
        i += 2
        base = 16
    elif base == 0:
        base = 8 if text[i:i + 1] == "0" else 10

    start = i
    value = 0
    while i < n:
        d = _digit(text[i])
        if d < 0 or d >= base:
            break
        value = value * base + d
        i += 1
    if i == start:
        return 0, 0
    return (-value if negative else value), i


def interface_index(text: str) -> int:
    """Index of an interface given by number or by name; 0 if unknown."""
    value, end = _strtol(text, 0)
    if end == len(text):
        return value
    for index, name in socket.if_nameindex():
        if name == text:
            return index
    return 0


def interface_name(index: int) -> Optional[str]:
    """Name of the interface with ``index``, or None if there is none."""
    for idx, name in socket.if_nameindex():
        if idx == index:
            return name
    return None


def parse_canaddr(spec: str, address: J1939Address) -> J1939Address:
    """Apply ``[IFACE][:[SA][,[PGN][,NAME]]]`` to ``address`` and return the result.

    Empty parts leave the corresponding field of ``address`` unchanged.
    """
    head, sep, rest = spec.partition(":")
    if head:
        try:
            ifindex = socket.if_nametoindex(head)
        except OSError:
            ifindex = 0
        address = replace(address, ifindex=ifindex)
    if not sep:
        return address

    parts = rest.split(",")
    if len(parts) > 0 and parts[0]:
        address = replace(address, addr=_strtol(parts[0], 0)[0] & 0xFF)
    if len(parts) > 1 and parts[1]:
        address = replace(address, pgn=_strtol(parts[1], 0)[0] & _U32)
    if len(parts) > 2 and parts[2]:
        address = replace(address, name=_strtol(parts[2], 0)[0] & _U64)
    return address


def str2addr(text: str) -> J1939Address:
    """Parse ``[IFACE:]ADDR_OR_NAME[,PGN]`` with hexadecimal numbers.

    A two digit number is a source address, a longer one a NAME. Text without
    a colon that names an interface gives just that interface. Raises
    ValueError if the interface part is too long.
    """
    colon = text.find(":")
    if colon >= 0:
        if colon >= IFNAMSIZ:
            raise ValueError(f"interface name too long: {text[:colon]!r}")
        ifindex = interface_index(text[:colon])
        pstr = text[colon + 1:]
    else:
        ifindex = interface_index(text)
        if ifindex:
            return J1939Address(ifindex=ifindex)
        pstr = text

    result = J1939Address(ifindex=ifindex)
    value, end = _strtol(pstr, 16)
    if end == 0:
        return result
    if end == 2:
        result = replace(result, addr=value & 0xFF)
    else:
        result = replace(result, name=value & _U64)
    if end == len(pstr):
        return result

    pgn, pgn_end = _strtol(pstr[end + 1:], 16)
    if pgn_end > 0:
        result = replace(result, pgn=pgn & _U32)
    return result


def addr2str(address: J1939Address) -> str:
    """Format ``address`` as ``[IFACE:]ADDR_OR_NAME[,PGN]``."""
    parts = []
    if address.ifindex:
        name = interface_name(address.ifindex)
        parts.append(f"#{address.ifindex}:" if name is None else f"{name}:")
    if address.name:
        parts.append(f"{address.name:016x}")
        if address.pgn == J1939_PGN_ADDRESS_CLAIMED:
            parts.append(f".{address.addr:02x}")
    elif address.addr <= 0xFE:
        parts.append(f"{address.addr:02x}")
    else:
        parts.append("-")
    if address.pgn <= J1939_PGN_MAX:
        parts.append(f",{address.pgn:05x}")
    return "".join(parts)