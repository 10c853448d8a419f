"""Command line demonstration of J1939 socket use."""

import re
import socket
import sys
import time
from dataclasses import replace
from typing import Optional, Sequence

from .can import CAN_J1939, SOL_CAN_BASE
from .j1939 import J1939Address, addr2str, interface_name, parse_canaddr

PROG = "testj1939"
MAX_DATA = 128
SOCKADDR_CAN_SIZE = 24
INT_SIZE = 4

_AF_CAN = getattr(socket, "AF_CAN", 29)
_SOL_CAN_J1939 = getattr(socket, "SOL_CAN_J1939", SOL_CAN_BASE + CAN_J1939)
_SO_J1939_PROMISC = getattr(socket, "SO_J1939_PROMISC", 2)
_SO_J1939_SEND_PRIO = getattr(socket, "SO_J1939_SEND_PRIO", 3)

HELP = (
    "testj1939: demonstrate j1939 use\n"
    "Usage: testj1939 [OPTIONS] FROM TO\n"
    " FROM / TO\t- or [IFACE][:[SA][,[PGN][,NAME]]]\n"
    "Options:\n"
    " -v\t\tPrint relevant API calls\n"
    " -s[=LEN]\tInitial send of LEN bytes dummy data\n"
    " -r\t\tReceive (and print) data\n"
    " -e\t\tEcho incoming packets back\n"
    "\t\tThis actually receives packets\n"
    " -c\t\tIssue connect()\n"
    " -p=PRIO\tSet priority to PRIO\n"
    " -P\t\tPromiscuous mode. Allow to receive all packets\n"
    " -b\t\tDo normal bind with SA+1 and rebind with actual SA\n"
    " -B\t\tAllow to send and receive broadcast packets.\n"
    " -o\t\tOmit bind\n"
    " -n\t\tEmit 64bit NAMEs in output\n"
    " -w[TIME]\tReturn after TIME (default 1) seconds\n"
    "\n"
    "Examples:\n"
    "testj1939 can1 20\n"
    "\n"
)

_FLAGS = "?vbBPorecn"
_OPTIONAL = "sw"
_REQUIRED = "p"


class _Fatal(Exception):
    pass


class _Usage(Exception):
    pass


class _Expired(Exception):
    pass


def test_vector(length: int) -> bytes:
    """The first ``length`` bytes of the dummy send pattern (at most 128)."""
    if not 0 <= length <= MAX_DATA:
        raise ValueError(f"Unsupported size. max: {MAX_DATA}")
    return bytes((((2 * j) << 4) + ((2 * j + 1) & 0xF)) & 0xFF for j in range(length))


def format_received(peer: J1939Address, data: bytes, names: bool = False) -> str:
    """Format a received packet: sender, PGN and data, eight bytes to a line."""
    out = []
    if names and peer.name:
        out.append(f"{peer.name:016x} ")
    out.append(f"{peer.addr:02x} {peer.pgn:05x}:")
    for i, byte in enumerate(data):
        if i and i % 8 == 0:
            out.append(f"\n{i:05x}    ")
        out.append(f" {byte:02x}")
    out.append("\n")
    return "".join(out)


def _parse_args(argv):
    opts = []
    positional = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        i += 1
        if arg == "--":
            positional.extend(argv[i:])
            break
        if not arg.startswith("-") or arg == "-":
            positional.append(arg)
            continue
        j = 1
        while j < len(arg):
            ch = arg[j]
            j += 1
            if ch in _FLAGS:
                opts.append((ch, None))
            elif ch in _OPTIONAL:
                opts.append((ch, arg[j:] or None))
                break
            elif ch in _REQUIRED:
                if j < len(arg):
                    opts.append((ch, arg[j:]))
                elif i < len(argv):
                    opts.append((ch, argv[i]))
                    i += 1
                else:
                    raise _Usage(f"option requires an argument -- '{ch}'")
                break
            else:
                raise _Usage(f"invalid option -- '{ch}'")
    return opts, positional


def _strtoul(text: str) -> int:
    from .j1939 import _strtol

    return _strtol(text, 0)[0] & 0xFFFFFFFFFFFFFFFF


def _strtod(text: str) -> float:
    match = re.match(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", text)
    return float(match.group(0)) if match else 0.0


def _sockaddr(address: J1939Address) -> tuple:
    ifname = ""
    if address.ifindex:
        name = interface_name(address.ifindex)
        if name is None:
            raise _Fatal(f"no interface with index {address.ifindex}")
        ifname = name
    return (ifname, address.name, address.pgn, address.addr)


def _from_sockaddr(raw) -> J1939Address:
    ifindex = 0
    if raw[0]:
        try:
            ifindex = socket.if_nametoindex(raw[0])
        except OSError:
            ifindex = 0
    return J1939Address(ifindex=ifindex, name=raw[1], pgn=raw[2], addr=raw[3])


def _deadline_after(delay: float) -> Optional[float]:
    """Monotonic time at which the program stops; None for a disarmed timer."""
    if delay < 0:
        raise _Fatal(f"schedule itimer {delay:.3f}s: Invalid argument")
    if int(delay * 1e6) == 0:
        return None
    return time.monotonic() + delay


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    left = deadline - time.monotonic()
    if left <= 0:
        raise _Expired()
    return left


def _log(verbose: bool, text: str) -> None:
    if verbose:
        sys.stderr.write(text)


def _run(argv) -> int:
    opts, positional = _parse_args(argv)

    verbose = False
    todo_send = 0
    todo_recv = todo_echo = todo_connect = todo_names = False
    todo_wait = todo_rebind = todo_broadcast = todo_promisc = no_bind = False
    todo_prio = -1
    deadline: Optional[float] = None

    for opt, value in opts:
        if opt == "v":
            verbose = True
        elif opt == "s":
            todo_send = _strtoul(value if value is not None else "8")
            if todo_send > MAX_DATA:
                raise _Fatal(f"Unsupported size. max: {MAX_DATA}")
        elif opt == "r":
            todo_recv = True
        elif opt == "e":
            todo_echo = True
        elif opt == "p":
            todo_prio = _strtoul(value) & 0xFFFFFFFF
            if todo_prio & 0x80000000:
                todo_prio -= 1 << 32
        elif opt == "P":
            todo_promisc = True
        elif opt == "c":
            todo_connect = True
        elif opt == "n":
            todo_names = True
        elif opt == "b":
            todo_rebind = True
        elif opt == "B":
            todo_broadcast = True
        elif opt == "o":
            no_bind = True
        elif opt == "w":
            deadline = _deadline_after(_strtod(value if value is not None else "1"))
            todo_wait = True
        else:
            raise _Usage("")

    sockname = J1939Address()
    peername = J1939Address()
    valid_peername = False

    if positional:
        arg = positional.pop(0)
        if arg != "-":
            sockname = parse_canaddr(arg, sockname)
    if todo_rebind:
        sockname = replace(sockname, addr=(sockname.addr + 1) & 0xFF)
    if positional:
        arg = positional.pop(0)
        if arg != "-":
            peername = parse_canaddr(arg, peername)
            valid_peername = True

    _log(verbose, "- socket(PF_CAN, SOCK_DGRAM, CAN_J1939);\n")
    try:
        sock = socket.socket(_AF_CAN, socket.SOCK_DGRAM, CAN_J1939)
    except OSError as exc:
        raise _Fatal(f"socket(j1939): {exc.strerror}") from None

    with sock:
        if todo_promisc:
            _log(verbose, f"- setsockopt(, SOL_SOCKET, SO_J1939_PROMISC, 1, {INT_SIZE});\n")
            try:
                sock.setsockopt(_SOL_CAN_J1939, _SO_J1939_PROMISC, 1)
            except OSError as exc:
                raise _Fatal(f"setsockopt: filed to set promiscuous mode: {exc.strerror}") from None

        if todo_broadcast:
            _log(verbose, f"- setsockopt(, SOL_SOCKET, SO_BROADCAST, 1, {INT_SIZE});\n")
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            except OSError as exc:
                raise _Fatal(f"setsockopt: filed to set broadcast: {exc.strerror}") from None

        if todo_prio >= 0:
            _log(verbose, f"- setsockopt(, SOL_CAN_J1939, SO_J1939_SEND_PRIO, &{todo_prio});\n")
            try:
                sock.setsockopt(_SOL_CAN_J1939, _SO_J1939_SEND_PRIO, todo_prio)
            except OSError as exc:
                raise _Fatal(f"set priority {todo_prio}: {exc.strerror}") from None

        if not no_bind:
            _log(verbose, f"- bind(, {addr2str(sockname)}, {SOCKADDR_CAN_SIZE});\n")
            try:
                sock.bind(_sockaddr(sockname))
            except OSError as exc:
                raise _Fatal(f"bind(): {exc.strerror}") from None
            if todo_rebind:
                sockname = replace(sockname, addr=(sockname.addr - 1) & 0xFF)
                _log(verbose, f"- bind(, {addr2str(sockname)}, {SOCKADDR_CAN_SIZE});\n")
                try:
                    sock.bind(_sockaddr(sockname))
                except OSError as exc:
                    raise _Fatal(f"re-bind(): {exc.strerror}") from None

        if todo_connect:
            if not valid_peername:
                raise _Fatal("no peername supplied")
            _log(verbose, f"- connect(, {addr2str(peername)}, {SOCKADDR_CAN_SIZE});\n")
            try:
                sock.connect(_sockaddr(peername))
            except OSError as exc:
                raise _Fatal(f"connect(): {exc.strerror}") from None

        if todo_send:
            data = test_vector(todo_send)
            try:
                if valid_peername and not todo_connect:
                    _log(
                        verbose,
                        f"- sendto(, <dat>, {todo_send}, 0, {addr2str(peername)}, {SOCKADDR_CAN_SIZE});\n",
                    )
                    sock.sendto(data, _sockaddr(peername))
                else:
                    _log(verbose, f"- send(, <dat>, {todo_send}, 0);\n")
                    sock.send(data)
            except OSError as exc:
                raise _Fatal(f"sendto: {exc.strerror}") from None

        if (todo_echo or todo_recv) and verbose:
            sys.stderr.write("- while (1)\n")
        while todo_echo or todo_recv:
            _log(verbose, f"- recvfrom(, <dat>, {SOCKADDR_CAN_SIZE}, 0, &<peername>, {SOCKADDR_CAN_SIZE});\n")
            sock.settimeout(_remaining(deadline))
            try:
                data, raw_peer = sock.recvfrom(MAX_DATA)
            except InterruptedError:
                _log(verbose, "-\t<interrupted>\n")
                continue
            except TimeoutError:
                raise _Expired() from None
            except OSError as exc:
                raise _Fatal(f"recvfrom(): {exc.strerror}") from None
            peer = _from_sockaddr(raw_peer)

            if todo_echo:
                _log(
                    verbose,
                    f"- sendto(, <dat>, {len(data)}, 0, {addr2str(peer)}, {SOCKADDR_CAN_SIZE});\n",
                )
                try:
                    sock.sendto(data, raw_peer)
                except OSError as exc:
                    raise _Fatal(f"sendto: {exc.strerror}") from None
            if todo_recv:
                sys.stdout.write(format_received(peer, data, todo_names))
                sys.stdout.flush()

    if todo_wait:
        while True:
            left = _remaining(deadline)
            time.sleep(1 if left is None else min(left, 1))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        return _run(list(argv))
    except _Expired:
        print(f"{PROG}: exit as requested", file=sys.stderr)
        return 0
    except _Usage as exc:
        if str(exc):
            print(f"{PROG}: {exc}", file=sys.stderr)
        sys.stderr.write(HELP)
        return 1
    except _Fatal as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())