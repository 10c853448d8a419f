"""Formatting of CAN frames as ASC logfile lines."""

import time

from .can import (
    CAN_EFF_FLAG,
    CAN_EFF_MASK,
    CAN_MAX_DLC,
    CAN_MAX_DLEN,
    CAN_MAX_RAW_DLC,
    CANFD_BRS,
    CANFD_ESI,
    CanFrame,
    can_fd_len2dlc,
)

ASC_F_RTR = 0x00000010
ASC_F_FDF = 0x00001000
ASC_F_BRS = 0x00002000
ASC_F_ESI = 0x00004000


def _id_text(frame: CanFrame) -> str:
    suffix = "x" if frame.can_id & CAN_EFF_FLAG else " "
    return f"{frame.can_id & CAN_EFF_MASK:X}{suffix}"


def _hex_bytes(data: bytes) -> str:
    return "".join(f" {byte:02X}" for byte in data)


def format_can_asc(frame: CanFrame, channel: int, nortrdlc: bool = False, extra_info: str = "") -> str:
    """Format a Classical CAN frame as an ASC line body (no timestamp, no newline)."""
    out = f"{channel:<2d} "
    if frame.is_error():
        return out + "ErrorFrame"

    direction = "Tx" if extra_info[:1] == "T" else "Rx"
    out += f"{_id_text(frame):<15s} {direction}   "

    if frame.length == CAN_MAX_DLC and CAN_MAX_DLC < frame.len8_dlc <= CAN_MAX_RAW_DLC:
        dlc = frame.len8_dlc
    else:
        dlc = frame.length

    if frame.is_rtr():
        return out + ("r" if nortrdlc else f"r {dlc:X}")
    return out + f"d {dlc:X}" + _hex_bytes(frame.data)


def format_canfd_asc(frame: CanFrame, channel: int, extra_info: str = "") -> str:
    """Format a frame in the CANFD ASC layout (no timestamp, no newline)."""
    dlen = frame.length
    dlc = can_fd_len2dlc(dlen)

    direction = "Tx" if extra_info[:1] == "T" else "Rx"
    out = f"CANFD {channel:3d} {direction} "
    out += f"{_id_text(frame):>11s}" + " " * 34
    out += ("1" if frame.flags & CANFD_BRS else "0") + " "
    out += ("1" if frame.flags & CANFD_ESI else "0") + " "

    if not frame.fd and dlen == CAN_MAX_DLEN and CAN_MAX_DLEN < frame.len8_dlc <= CAN_MAX_RAW_DLC:
        dlc = frame.len8_dlc
    out += f"{dlc:x} "

    flags = 0
    if not frame.fd:
        if frame.is_rtr():
            dlen = 0
            flags = ASC_F_RTR
    else:
        flags = ASC_F_FDF
        if frame.flags & CANFD_BRS:
            flags |= ASC_F_BRS
        if frame.flags & CANFD_ESI:
            flags |= ASC_F_ESI

    out += f"{dlen:2d}" + _hex_bytes(frame.data[:dlen])
    out += f" {130000:8d} {130:4d} {flags:8X} 0 0 0 0 0"
    return out


def format_timestamp(seconds: int, microseconds: int, four_digits: bool = False) -> str:
    """Format a relative timestamp with six (or four) decimal places."""
    if four_digits:
        return f"{seconds:4d}.{microseconds // 100:04d}"
    return f"{seconds:4d}.{microseconds:06d}"


def format_banner(start_seconds: int, crlf: bool = False) -> str:
    """Return the ASC file header for a log starting at ``start_seconds``."""
    newline = "\r\n" if crlf else "\n"
    return (
        f"date {time.ctime(start_seconds)}\n"
        f"base hex  timestamps absolute{newline}"
        f"no internal events logged{newline}"
    )


def relative_time(seconds: int, microseconds: int, start_seconds: int, start_microseconds: int) -> tuple[int, int]:
    """Return ``(seconds, microseconds)`` since the start, clamped at zero."""
    sec = seconds - start_seconds
    usec = microseconds - start_microseconds
    if usec < 0:
        sec -= 1
        usec += 1000000
    if sec < 0:
        return 0, 0
    return sec, usec