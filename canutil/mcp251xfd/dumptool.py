"""Command line tool that decodes the chip and driver state of an MCP251xFD."""

import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from .coredump import ChipState, DumpError, read_coredump
from .ramdump import dump
from .regmap import read_regmap

PROG = "mcp251xfd-dump"


def _usage(prg: str) -> str:
    return (
        f"{prg} - decode chip and driver state of mcp251xfd.\n"
        "\n"
        f"Usage: {prg} [options] <file>\n"
        "\n"
        "        <file>      path to dev coredump file\n"
        "                        ('/var/log/devcoredump-19700101-234200.dump')\n"
        "                    path to regmap register file\n"
        "                        ('/sys/kernel/debug/regmap/spi1.0-crc/registers')\n"
        "                    shortcut to regmap register file\n"
        "                        ('spi0.0')\n"
        "\n"
        "Options:\n"
        "        -h, --help  this help\n"
        "\n"
    )


def load_state(path: Union[str, Path]) -> ChipState:
    """Read a device coredump, or failing that a regmap file, into a new state.

    Raises DumpError if neither can be read.
    """
    state = ChipState()
    try:
        read_coredump(path, state)
        return state
    except (OSError, DumpError):
        pass
    try:
        read_regmap(path, state)
    except (OSError, DumpError) as exc:
        raise DumpError(f"Unable to read file: '{path}'") from exc
    return state


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    positional = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            positional.extend(args)
            break
        if arg.startswith("--"):
            name = arg[2:]
            if name and "=" not in name and "help".startswith(name):
                sys.stderr.write(_usage(PROG))
                return 0
            sys.stderr.write(_usage(PROG))
            return 1
        if arg.startswith("-") and arg != "-":
            sys.stderr.write(_usage(PROG))
            return 0 if arg[1] == "h" else 1
        positional.append(arg)

    if not positional:
        sys.stderr.write(_usage(PROG))
        return 1

    try:
        state = load_state(positional[0])
    except DumpError as exc:
        print(exc, file=sys.stderr)
        return 1

    sys.stdout.write(dump(state))
    return 0


if __name__ == "__main__":
    sys.exit(main())