"""Attach the SLCAN line discipline to a serial tty and configure the adapter."""

import fcntl
import getopt
import os
import socket
import struct
import sys
import termios
from typing import List, Optional, Sequence

PROG = "slcan_attach"

N_TTY = 0
N_SLCAN = 17
IFNAMSIZ = 16
IFREQ_SIZE = 40

TIOCSETD = getattr(termios, "TIOCSETD", 0x5423)
SIOCGIFNAME = 0x8910
SIOCSIFNAME = 0x8923


class _Failure(Exception):
    pass


class _UsageError(Exception):
    pass


def _usage(prg: str) -> str:
    return (
        f"{prg} - userspace tool for serial line CAN interface driver SLCAN.\n"
        f"\nUsage: {prg} [options] tty\n\n"
        "Options:\n"
        "         -o          (send open command 'O\\r')\n"
        "         -l          (send listen only command 'L\\r', overrides -o)\n"
        "         -c          (send close command 'C\\r')\n"
        "         -f          (read status flags with 'F\\r' to reset error states)\n"
        "         -s <speed>  (set CAN speed 0..8)\n"
        "         -b <btr>    (set bit time register value)\n"
        "         -d          (only detach line discipline)\n"
        "         -w          (attach - wait for keypress - detach)\n"
        "         -n <name>   (assign created netdevice name)\n"
        "\n"
        "    <speed>          Bitrate\n"
        "          0            10 Kbit/s\n"
        "          1            20 Kbit/s\n"
        "          2            50 Kbit/s\n"
        "          3           100 Kbit/s\n"
        "          4           125 Kbit/s\n"
        "          5           250 Kbit/s\n"
        "          6           500 Kbit/s\n"
        "          7           800 Kbit/s\n"
        "          8          1000 Kbit/s\n"
        "\n"
        "\nExamples:\n"
        "slcan_attach -w -o -f -s6 -c /dev/ttyS1\n\n"
        "slcan_attach /dev/ttyS1\n\n"
        "slcan_attach -d /dev/ttyS1\n\n"
        "slcan_attach -w -n can15 /dev/ttyS1\n\n"
    )


def setup_commands(
    speed: Optional[str] = None,
    btr: Optional[str] = None,
    read_status_flags: bool = False,
    listen: bool = False,
    send_open: bool = False,
) -> List[bytes]:
    """SLCAN commands sent before attaching, in the order they are written.

    Listen-only mode takes precedence over open.
    """
    commands = []
    if speed:
        commands.append(f"C\rS{speed}\r".encode())
    if btr:
        commands.append(f"C\rs{btr}\r".encode())
    if read_status_flags:
        commands.append(b"F\r")
    if listen:
        commands.append(b"L\r")
    elif send_open:
        commands.append(b"O\r")
    return commands


def _write(fd: int, data: bytes) -> None:
    try:
        written = os.write(fd, data)
    except OSError as exc:
        raise _Failure(f"write: {exc.strerror}") from None
    if written <= 0:
        raise _Failure("write: nothing written")


def _set_ldisc(fd: int, ldisc: int, what: str) -> None:
    try:
        fcntl.ioctl(fd, TIOCSETD, struct.pack("i", ldisc))
    except OSError as exc:
        raise _Failure(f"{what}: {exc.strerror}") from None


def _netdev_name(fd: int) -> str:
    try:
        result = fcntl.ioctl(fd, SIOCGIFNAME, bytes(IFREQ_SIZE))
    except OSError as exc:
        raise _Failure(f"ioctl SIOCGIFNAME: {exc.strerror}") from None
    return result.split(b"\0", 1)[0].decode(errors="replace")


def _rename(current: str, new: str) -> None:
    print(f"rename netdevice {current} to {new} ... ", end="", flush=True)
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, 0)
    except OSError as exc:
        print(f"socket for interface rename: {exc.strerror}", file=sys.stderr)
        return
    with sock:
        ifreq = (
            current.encode()[:IFNAMSIZ - 1].ljust(IFNAMSIZ, b"\0")
            + new.encode()[:IFNAMSIZ - 1].ljust(IFNAMSIZ, b"\0")
        ).ljust(IFREQ_SIZE, b"\0")
        try:
            fcntl.ioctl(sock.fileno(), SIOCSIFNAME, ifreq)
        except OSError:
            print("failed!")
        else:
            print("ok.")


def _run(argv) -> int:
    try:
        opts, args = getopt.gnu_getopt(argv, "ldwocfs:b:n:?")
    except getopt.GetoptError as exc:
        raise _UsageError(str(exc)) from None

    detach = waitkey = send_open = send_listen = send_close = read_flags = False
    speed = btr = name = None
    for opt, value in opts:
        if opt == "-d":
            detach = True
        elif opt == "-w":
            waitkey = True
        elif opt == "-o":
            send_open = True
        elif opt == "-l":
            send_listen = True
        elif opt == "-c":
            send_close = True
        elif opt == "-f":
            read_flags = True
        elif opt == "-s":
            speed = value
            if len(speed) > 1:
                raise _UsageError("")
        elif opt == "-b":
            btr = value
            if len(btr) > 8:
                raise _UsageError("")
        elif opt == "-n":
            name = value
            if len(name) > IFNAMSIZ - 1:
                raise _UsageError("")
        else:
            raise _UsageError("")

    if len(args) != 1:
        raise _UsageError("")
    tty = args[0]

    try:
        fd = os.open(tty, os.O_WRONLY | getattr(os, "O_NOCTTY", 0))
    except OSError as exc:
        raise _Failure(f"{tty}: {exc.strerror}") from None

    try:
        if waitkey or not detach:
            for command in setup_commands(speed, btr, read_flags, send_listen, send_open):
                _write(fd, command)
            _set_ldisc(fd, N_SLCAN, "ioctl TIOCSETD")
            netdev = _netdev_name(fd)
            print(f"attached tty {tty} to netdevice {netdev}")
            if name:
                _rename(netdev, name)

        if waitkey:
            print(f"Press any key to detach {tty} ...", flush=True)
            sys.stdin.read(1)

        if waitkey or detach:
            _set_ldisc(fd, N_TTY, "ioctl")
            if send_close:
                _write(fd, b"C\r")
    finally:
        os.close(fd)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        return _run(list(argv))
    except _UsageError as exc:
        if str(exc):
            print(f"{PROG}: {exc}", file=sys.stderr)
        sys.stderr.write(_usage(PROG))
        return 1
    except _Failure as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())