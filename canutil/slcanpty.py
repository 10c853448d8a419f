"""Bridge between the SLCAN ASCII protocol on a pty and a CAN network interface."""

import fcntl
import os
import re
import select
import socket
import struct
import sys
import termios
import time
from typing import List, Optional, Sequence, Tuple

from .can import (
    CAN_EFF_FLAG,
    CAN_EFF_MASK,
    CAN_MAX_DLEN,
    CAN_MTU,
    CAN_RTR_FLAG,
    CAN_SFF_MASK,
    CanFrame,
)

PROG = "slcanpty"
DEVICE_NAME_PTMX = "/dev/ptmx"

ACK = b"\r"
NACK = b"\a"

_BUF_SIZE = 200
_MAX_PENDING = _BUF_SIZE - 1

_AF_CAN = getattr(socket, "AF_CAN", 29)
_CAN_RAW = getattr(socket, "CAN_RAW", 1)
_SOL_CAN_RAW = getattr(socket, "SOL_CAN_RAW", 101)
_CAN_RAW_FILTER = getattr(socket, "CAN_RAW_FILTER", 1)

_SIOCGSTAMP = 0x8906
_TIOCGPTN = 0x80045430
_TIOCSPTLCK = 0x40045431

_FRAME = struct.Struct("=IB3x8s")
_OPEN_FILTER = struct.pack("=II", 0, 0)

_REPLIES = {
    "V": b"V1013\r",
    "v": b"v1014\r",
    "N": b"N4242\r",
    "F": b"F00\r",
}

_ID_PREFIX = re.compile(rb"[ \t\n\v\f\r]*([+-]?)(?:0[xX](?=[0-9A-Fa-f]))?([0-9A-Fa-f]*)")


def _nibble(char: int) -> int:
    if 0x30 <= char <= 0x39:
        return char - 0x30
    if 0x41 <= char <= 0x46:
        return char - 0x41 + 10
    if 0x61 <= char <= 0x66:
        return char - 0x61 + 10
    return 16


def _parse_id(text: bytes) -> int:
    match = _ID_PREFIX.match(text)
    digits = match.group(2)
    if not digits:
        return 0
    value = int(digits, 16)
    if value > 0xFFFFFFFFFFFFFFFF:
        value = 0xFFFFFFFFFFFFFFFF
    if match.group(1) == b"-":
        value = -value
    return value & 0xFFFFFFFF


class SlcanTranslator:
    """Interprets SLCAN commands arriving from an application.

    ``is_open`` follows the open/close commands and ``timestamps`` the
    timestamp on/off command.
    """

    def __init__(self) -> None:
        self.is_open = False
        self.timestamps = False
        self._pending = b""

    def _room(self) -> int:
        return _MAX_PENDING - len(self._pending)

    def feed(self, data: bytes) -> Tuple[bytes, List[CanFrame]]:
        """Process received bytes; return the reply bytes and the frames to send.

        An incomplete command is kept until its terminating carriage return
        arrives. Raises ValueError when an incomplete command fills the
        receive buffer.
        """
        buf = self._pending + bytes(data)
        self._pending = b""
        replies = []
        frames = []
        while True:
            buf = buf.lstrip(b"\r")
            if not buf:
                break
            if b"\r" not in buf:
                if len(buf) >= _MAX_PENDING:
                    raise ValueError("SLCAN message too long")
                self._pending = buf
                break
            reply, frame, end = self._command(buf)
            replies.append(reply)
            if frame is not None:
                frames.append(frame)
            buf = buf[end + 1:]
        return b"".join(replies), frames

    def _command(self, buf: bytes) -> Tuple[bytes, Optional[CanFrame], int]:
        def at(index: int) -> int:
            return buf[index] if index < len(buf) else 0

        cmd = chr(buf[0])

        if cmd in "mM":
            # acceptance filter settings are not supported by CAN sockets
            return ACK, None, 9
        if cmd == "Z":
            self.timestamps = bool(at(1) & 0x01)
            return ACK, None, 2
        if cmd == "O":
            self.is_open = True
            return ACK, None, 1
        if cmd == "C":
            self.is_open = False
            return ACK, None, 1
        if cmd in _REPLIES:
            return _REPLIES[cmd], None, 1
        if cmd in "US":
            return ACK, None, 2
        if cmd == "s":
            return ACK, None, 5
        if cmd in "PA":
            return NACK, None, 1
        if cmd == "X":
            return (ACK if at(1) & 0x01 else NACK), None, 2
        if cmd not in "tTrR":
            return NACK, None, len(buf) - 1

        standard = cmd in "tr"
        remote = cmd in "rR"
        ptr = 4 if standard else 9
        flags = (0 if standard else CAN_EFF_FLAG) | (CAN_RTR_FLAG if remote else 0)

        if remote and at(ptr) != ord("0"):
            # remote frame sent without a DLC, against the protocol
            can_id = _parse_id(buf[1:ptr]) | flags
            return ACK, CanFrame(can_id), ptr - 1

        char = at(ptr)
        if not ord("0") <= char < ord("9"):
            return NACK, None, ptr
        dlc = char - ord("0")
        can_id = _parse_id(buf[1:ptr]) | flags

        data = bytearray()
        ptr += 1
        for _ in range(dlc):
            high = _nibble(at(ptr))
            ptr += 1
            if high > 0x0F:
                return NACK, None, ptr
            low = _nibble(at(ptr))
            ptr += 1
            if low > 0x0F:
                return NACK, None, ptr
            data.append(high << 4 | low)
        if dlc:
            ptr -= 1
        return ACK, CanFrame(can_id, bytes(data)), ptr


def frame_to_slcan(frame: CanFrame, timestamp_ms: Optional[int] = None) -> bytes:
    """Encode a classic CAN frame as an SLCAN message, optionally with a timestamp."""
    cmd = "R" if frame.is_rtr() else "T"
    if frame.is_extended():
        text = f"{cmd}{frame.can_id & CAN_EFF_MASK:08X}{frame.length}"
    else:
        text = f"{cmd.lower()}{frame.can_id & CAN_SFF_MASK:03X}{frame.length}"
    text += frame.data.hex().upper()
    if timestamp_ms is not None:
        text += f"{timestamp_ms:04X}"
    return (text + "\r").encode("ascii")


def _usage(prg: str) -> str:
    return (
        f"{prg}: adapter for applications using the slcan ASCII protocol.\n"
        f"\n{prg} creates a pty for applications using the slcan ASCII protocol and\n"
        "converts the ASCII data to a CAN network interface (and vice versa)\n\n"
        f"Usage: {prg} <pty> <can interface>\n"
        "\nExamples:\n"
        f"{prg} /dev/ptyc0 can0  - creates /dev/ttyc0 for the slcan application\n\n"
        f"e.g. for pseudo-terminal '{prg} {DEVICE_NAME_PTMX} can0' creates /dev/pts/N\n"
        "\n"
    )


def _stdin_selectable() -> bool:
    try:
        readable, _, _ = select.select([0], [], [], 0)
    except (OSError, ValueError):
        return False
    if readable:
        try:
            if not os.read(0, 1):
                return False
        except OSError:
            return False
    return True


def _slave_name(fd: int) -> str:
    if hasattr(os, "unlockpt") and hasattr(os, "ptsname"):
        os.grantpt(fd)
        os.unlockpt(fd)
        return os.ptsname(fd)
    fcntl.ioctl(fd, _TIOCSPTLCK, struct.pack("i", 0))
    number = struct.unpack("I", fcntl.ioctl(fd, _TIOCGPTN, bytes(4)))[0]
    return f"/dev/pts/{number}"


def _timestamp_ms(sock: socket.socket) -> int:
    try:
        raw = fcntl.ioctl(sock.fileno(), _SIOCGSTAMP, bytes(struct.calcsize("ll")))
        sec, usec = struct.unpack("ll", raw)
    except OSError as exc:
        print(f"SIOCGSTAMP: {exc.strerror}", file=sys.stderr)
        now = time.time()
        sec, usec = int(now), int((now % 1) * 1_000_000)
    return (sec % 60) * 1000 + usec // 1000


def _set_filter(sock: socket.socket, is_open: bool) -> None:
    try:
        sock.setsockopt(_SOL_CAN_RAW, _CAN_RAW_FILTER, _OPEN_FILTER if is_open else b"")
    except OSError:
        pass


def _serve(p: int, pty_path: str, ifname: str, select_stdin: bool) -> int:
    try:
        attrs = termios.tcgetattr(p)
    except termios.error as exc:
        print(f"tcgetattr: {exc}", file=sys.stderr)
        return 1

    # disable local echo which would cause double frames
    attrs[3] &= ~(
        termios.ICANON | termios.ECHO | termios.ECHOE | termios.ECHOK
        | termios.ECHONL | getattr(termios, "ECHOPRT", 0) | getattr(termios, "ECHOKE", 0)
    )
    attrs[0] &= ~termios.ICRNL
    attrs[0] |= termios.INLCR
    try:
        termios.tcsetattr(p, termios.TCSANOW, attrs)
    except termios.error:
        pass

    if pty_path == DEVICE_NAME_PTMX:
        try:
            name_pts = _slave_name(p)
        except OSError as exc:
            print(f"ptsname: {exc.strerror}", file=sys.stderr)
            return 1
        print(f"open: {pty_path}: slave pseudo-terminal is {name_pts}", flush=True)

    try:
        sock = socket.socket(_AF_CAN, socket.SOCK_RAW, _CAN_RAW)
    except OSError as exc:
        print(f"socket: {exc.strerror}", file=sys.stderr)
        return 1

    with sock:
        try:
            socket.if_nametoindex(ifname)
        except OSError as exc:
            print(f"if_nametoindex: {exc.strerror or exc}", file=sys.stderr)
            return 1

        # no reception of CAN frames until opened by 'O'
        _set_filter(sock, False)
        try:
            sock.bind((ifname,))
        except OSError as exc:
            print(f"bind: {exc.strerror}", file=sys.stderr)
            return 1

        translator = SlcanTranslator()
        applied_open = False
        fd = sock.fileno()

        while True:
            fds = ([0] if select_stdin else []) + [p, fd]
            try:
                readable, _, _ = select.select(fds, [], [])
            except OSError as exc:
                print(f"select: {exc.strerror}", file=sys.stderr)
                return 1

            if select_stdin and 0 in readable:
                break

            if p in readable:
                room = translator._room()
                try:
                    chunk = os.read(p, room) if room > 0 else b""
                except OSError as exc:
                    print(f"read pty: {exc.strerror}", file=sys.stderr)
                    break
                if not chunk:
                    break
                try:
                    reply, frames = translator.feed(chunk)
                except ValueError:
                    break
                if translator.is_open != applied_open:
                    applied_open = translator.is_open
                    _set_filter(sock, applied_open)
                try:
                    for frame in frames:
                        sock.send(_FRAME.pack(frame.can_id, frame.length, frame.data))
                except OSError as exc:
                    print(f"write socket: {exc.strerror}", file=sys.stderr)
                    break
                if reply:
                    try:
                        os.write(p, reply)
                    except OSError as exc:
                        print(f"write pty replybuf: {exc.strerror}", file=sys.stderr)
                        break

            if fd in readable:
                try:
                    raw = sock.recv(CAN_MTU)
                except OSError as exc:
                    print(f"read socket: {exc.strerror}", file=sys.stderr)
                    break
                if len(raw) != CAN_MTU:
                    print("read socket: incomplete CAN frame", file=sys.stderr)
                    break
                can_id, dlc, payload = _FRAME.unpack(raw)
                frame = CanFrame(can_id, payload[:min(dlc, CAN_MAX_DLEN)])
                stamp = _timestamp_ms(sock) if translator.timestamps else None
                try:
                    os.write(p, frame_to_slcan(frame, stamp))
                except OSError as exc:
                    print(f"write pty: {exc.strerror}", file=sys.stderr)
                    break
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    if len(argv) != 2:
        sys.stderr.write(_usage(PROG))
        return 1
    pty_path, ifname = argv

    select_stdin = _stdin_selectable()

    try:
        p = os.open(pty_path, os.O_RDWR)
    except OSError as exc:
        print(f"open pty: {exc.strerror}", file=sys.stderr)
        return 1
    try:
        return _serve(p, pty_path, ifname, select_stdin)
    finally:
        os.close(p)


if __name__ == "__main__":
    sys.exit(main())