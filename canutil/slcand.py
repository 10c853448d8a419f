"""Daemon that attaches the SLCAN line discipline to a serial tty."""

import fcntl
import getopt
import os
import re
import signal
import socket
import struct
import sys
import syslog
import termios
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from .slcan_attach import IFNAMSIZ, IFREQ_SIZE, N_SLCAN, N_TTY, SIOCGIFNAME, SIOCSIFNAME, TIOCSETD, setup_commands

DAEMON_NAME = "slcand"
DEV_PREFIX = "/dev/"
TTYPATH_LENGTH = 256

FLOW_NONE = 0
FLOW_HW = 1
FLOW_SW = 2

_TIOCGSERIAL = 0x541E
_TIOCSSERIAL = 0x541F
_ASYNC_LOW_LATENCY = 1 << 13
_SERIAL_FLAGS_OFFSET = 16
_SERIAL_STRUCT_SIZE = 128

_UART_SPEEDS = (
    9600, 19200, 38400, 57600, 115200, 230400, 460800, 500000, 576000, 921600,
    1000000, 1152000, 1500000, 2000000, 2500000, 3000000, 3500000, 3710000, 4000000,
)

_LONG_MIN = -(1 << 63)
_LONG_MAX = (1 << 63) - 1


class _Failure(Exception):
    pass


class _UsageError(Exception):
    pass


def uart_speed(baud: int) -> int:
    """The termios speed constant for ``baud``; ValueError if it is unsupported."""
    if baud in _UART_SPEEDS:
        constant = getattr(termios, f"B{baud}", None)
        if constant is not None:
            return constant
    raise ValueError(f"Unsupported UART speed ({baud})")


def tty_path(tty: str) -> str:
    """Full device path of ``tty``, adding ``/dev/`` when it is missing."""
    path = tty if tty.startswith(DEV_PREFIX) else DEV_PREFIX + tty
    return path[:TTYPATH_LENGTH - 1]


def _usage(prg: str) -> str:
    return (
        f"{prg} - userspace daemon for serial line CAN interface driver SLCAN.\n"
        f"\nUsage: {prg} [options] <tty> [canif-name]\n\n"
        "Options:\n"
        "         -o          (send open command 'O\\r')\n"
        "         -c          (send close command 'C\\r')\n"
        "         -f          (read status flags with 'F\\r' to reset error states)\n"
        "         -l          (send listen only command 'L\\r', overrides -o)\n"
        "         -s <speed>  (set CAN speed 0..8)\n"
        "         -S <speed>  (set UART speed in baud)\n"
        "         -t <type>   (set UART flow control type 'hw' or 'sw')\n"
        "         -b <btr>    (set bit time register value)\n"
        "         -F          (stay in foreground; no daemonize)\n"
        "         -h          (show this help page)\n"
        "\nExamples:\n"
        "slcand -o -c -f -s6 ttyUSB0\n\n"
        "slcand -o -c -f -s6 ttyUSB0 can0\n\n"
        "slcand -o -c -f -s6 /dev/ttyUSB0\n\n"
    )


def _strtol10(text: str) -> int:
    match = re.match(r"\s*[+-]?\d+", text)
    if not match:
        return 0
    value = int(match.group(0))
    if not _LONG_MIN <= value <= _LONG_MAX:
        raise _UsageError("")
    return value


@dataclass
class _Options:
    tty: str
    name: Optional[str] = None
    send_open: bool = False
    send_close: bool = False
    send_listen: bool = False
    read_flags: bool = False
    speed: Optional[str] = None
    uart: Optional[int] = None
    flow: int = FLOW_NONE
    btr: Optional[str] = None
    daemon: bool = True


class _Logger:
    def __init__(self, foreground: bool) -> None:
        self.foreground = foreground

    def __call__(self, priority: int, message: str) -> None:
        if self.foreground:
            print(f"[{priority}] {message}", flush=True)
        else:
            syslog.syslog(priority, message)


class _Control:
    def __init__(self, log: _Logger, path: str) -> None:
        self.running = False
        self.exit_code = 0
        self._log = log
        self._path = path

    def handle(self, signum, frame) -> None:
        self._log(syslog.LOG_NOTICE, f"received signal {signum} on {self._path}")
        self.exit_code = 128 + signum
        self.running = False


def _parse(argv) -> _Options:
    try:
        opts, args = getopt.gnu_getopt(argv, "ocfls:S:t:b:?hF")
    except getopt.GetoptError as exc:
        raise _UsageError(str(exc)) from None

    settings = {}
    for opt, value in opts:
        if opt == "-o":
            settings["send_open"] = True
        elif opt == "-c":
            settings["send_close"] = True
        elif opt == "-f":
            settings["read_flags"] = True
        elif opt == "-l":
            settings["send_listen"] = True
        elif opt == "-s":
            if len(value) > 1:
                raise _UsageError("")
            settings["speed"] = value
        elif opt == "-S":
            baud = _strtol10(value)
            try:
                settings["uart"] = uart_speed(baud)
            except ValueError:
                raise _Failure(f"Unsupported UART speed ({baud & 0xFFFFFFFFFFFFFFFF})") from None
        elif opt == "-t":
            if value == "hw":
                settings["flow"] = FLOW_HW
            elif value == "sw":
                settings["flow"] = FLOW_SW
            else:
                raise _Failure(f"Unsupported flow type ({value})")
        elif opt == "-b":
            if len(value) > 8:
                raise _UsageError("")
            settings["btr"] = value
        elif opt == "-F":
            settings["daemon"] = False
        else:
            raise _UsageError("")

    if not args:
        raise _UsageError("")
    name = args[1] if len(args) > 1 else None
    if name is not None and len(name) > IFNAMSIZ - 1:
        raise _UsageError("")
    return _Options(tty=args[0], name=name, **settings)


def _write(fd: int, data: bytes) -> None:
    try:
        written = os.write(fd, data)
    except OSError as exc:
        raise _Failure(f"write: {exc.strerror}") from None
    if written <= 0:
        raise _Failure("write: nothing written")


def _set_ldisc(fd: int, ldisc: int) -> None:
    try:
        fcntl.ioctl(fd, TIOCSETD, struct.pack("i", ldisc))
    except OSError as exc:
        raise _Failure(f"ioctl TIOCSETD: {exc.strerror}") from None


def _low_latency(fd: int) -> None:
    try:
        serial = bytearray(fcntl.ioctl(fd, _TIOCGSERIAL, bytes(_SERIAL_STRUCT_SIZE)))
        (flags,) = struct.unpack_from("i", serial, _SERIAL_FLAGS_OFFSET)
        struct.pack_into("i", serial, _SERIAL_FLAGS_OFFSET, flags | _ASYNC_LOW_LATENCY)
        fcntl.ioctl(fd, _TIOCSSERIAL, bytes(serial))
    except OSError:
        pass


def _make_raw(attrs: list) -> None:
    attrs[0] &= ~(
        termios.IGNBRK | termios.BRKINT | termios.PARMRK | termios.ISTRIP
        | termios.INLCR | termios.IGNCR | termios.ICRNL | termios.IXON
    )
    attrs[1] &= ~termios.OPOST
    attrs[3] &= ~(termios.ECHO | termios.ECHONL | termios.ICANON | termios.ISIG | termios.IEXTEN)
    attrs[2] &= ~(termios.CSIZE | termios.PARENB)
    attrs[2] |= termios.CS8
    attrs[6][termios.VMIN] = 1
    attrs[6][termios.VTIME] = 0


def _apply(fd: int, attrs: list, path: str, log: _Logger) -> None:
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
    except termios.error as exc:
        log(syslog.LOG_NOTICE, f'Cannot set attributes for device "{path}": {exc}!\n')


def _rename(current: str, new: str, log: _Logger) -> None:
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
        except OSError as exc:
            log(syslog.LOG_NOTICE, f"netdevice {current} rename to {new} failed\n")
            raise _Failure(f"ioctl SIOCSIFNAME rename: {exc.strerror}") from None
        log(syslog.LOG_NOTICE, f"netdevice {current} renamed to {new}\n")


def _detach() -> None:
    """Leave the terminal behind: new session where possible, root directory, null stdio."""
    try:
        os.setsid()
    except OSError:
        pass
    os.chdir("/")
    null = os.open(os.devnull, os.O_RDWR)
    for target in (0, 1, 2):
        os.dup2(null, target)
    if null > 2:
        os.close(null)


def _serve(options: _Options, log: _Logger) -> int:
    path = tty_path(options.tty)
    log(syslog.LOG_INFO, f"starting on TTY device {path}")

    try:
        fd = os.open(path, os.O_RDWR | os.O_NONBLOCK | os.O_NOCTTY)
    except OSError as exc:
        log(syslog.LOG_NOTICE, f"failed to open TTY device {path}\n")
        raise _Failure(f"{path}: {exc.strerror}") from None

    try:
        try:
            attrs = termios.tcgetattr(fd)
        except termios.error as exc:
            log(syslog.LOG_NOTICE, f"failed to get attributes for TTY device {path}: {exc}\n")
            return 1

        # low latency is needed for a proper receive latency
        _low_latency(fd)

        old_ispeed, old_ospeed = attrs[4], attrs[5]

        _make_raw(attrs)
        attrs[0] &= ~termios.IXOFF
        attrs[2] &= ~termios.CRTSCTS
        if options.uart is not None:
            attrs[4] = attrs[5] = options.uart
        if options.flow == FLOW_HW:
            attrs[2] |= termios.CRTSCTS
        elif options.flow == FLOW_SW:
            attrs[0] |= termios.IXON | termios.IXOFF
        _apply(fd, attrs, path, log)

        for command in setup_commands(
            options.speed, options.btr, options.read_flags, options.send_listen, options.send_open
        ):
            _write(fd, command)

        _set_ldisc(fd, N_SLCAN)
        try:
            raw = fcntl.ioctl(fd, SIOCGIFNAME, bytes(IFREQ_SIZE))
        except OSError as exc:
            raise _Failure(f"ioctl SIOCGIFNAME: {exc.strerror}") from None
        netdev = raw.split(b"\0", 1)[0].decode(errors="replace")
        log(syslog.LOG_NOTICE, f"attached TTY {path} to netdevice {netdev}\n")

        if options.name:
            _rename(netdev, options.name, log)

        control = _Control(log, path)
        if options.daemon:
            try:
                _detach()
            except OSError:
                log(syslog.LOG_ERR, "failed to daemonize")
                return 1
        else:
            signal.signal(signal.SIGINT, control.handle)
            signal.signal(signal.SIGTERM, control.handle)

        control.running = True
        while control.running:
            time.sleep(1)

        log(syslog.LOG_INFO, f"stopping on TTY device {path}")
        _set_ldisc(fd, N_TTY)
        if options.send_close:
            _write(fd, b"C\r")

        attrs[4], attrs[5] = old_ispeed, old_ospeed
        _apply(fd, attrs, path, log)

        log(syslog.LOG_NOTICE, f"terminated on {path}")
        return control.exit_code
    finally:
        os.close(fd)


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        options = _parse(list(argv))
        log = _Logger(foreground=not options.daemon)
        syslog.openlog(DAEMON_NAME, syslog.LOG_PID, syslog.LOG_LOCAL5)
        try:
            return _serve(options, log)
        finally:
            syslog.closelog()
    except _UsageError as exc:
        if str(exc):
            print(f"{DAEMON_NAME}: {exc}", file=sys.stderr)
        sys.stderr.write(_usage(DAEMON_NAME))
        return 1
    except _Failure as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())