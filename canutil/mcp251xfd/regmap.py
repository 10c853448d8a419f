"""Reader for regmap debugfs register files of the MCP251xFD."""

import errno
import re
from pathlib import Path
from typing import Iterable, Union

from .coredump import MEM_SIZE, ChipState, DumpError

REGMAP_DEBUGFS = Path("/sys/kernel/debug/regmap")

_LINE = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+):\s*(?:0[xX])?([0-9a-fA-F]+)")


def parse_regmap(lines: Iterable[str], state: ChipState) -> int:
    """Store every ``reg: value`` line in ``state``; return how many were found.

    Lines that do not have that form are skipped. A register address beyond
    the memory image raises DumpError.
    """
    count = 0
    for line in lines:
        match = _LINE.match(line)
        if not match:
            continue
        reg = int(match.group(1), 16) & 0xFFFF
        val = int(match.group(2), 16) & 0xFFFFFFFF
        if reg >= MEM_SIZE:
            raise DumpError(f"register address out of range: {reg:#x}")
        try:
            state.write_u32(reg, val)
        except ValueError as exc:
            raise DumpError(str(exc)) from None
        count += 1
    return count


def read_regmap_file(path: Union[str, Path], state: ChipState) -> int:
    """Read one regmap register file into ``state``; return the register count.

    Raises OSError if the file cannot be read and DumpError if it holds no
    usable registers.
    """
    with open(path, encoding="ascii", errors="replace") as handle:
        count = parse_regmap(handle, state)
    print(f"regmap: Found {count} registers in {path}")
    if not count:
        raise DumpError(f"no registers found in {path}")
    return count


def read_regmap(path: Union[str, Path], state: ChipState) -> int:
    """Read registers from ``path`` or from a debugfs regmap named like ``spi0.0``.

    The name is tried literally first, then as ``<name>/registers`` and
    ``<name>-crc/registers`` below the regmap debugfs directory.
    """
    path = str(path)
    try:
        return read_regmap_file(path, state)
    except (OSError, DumpError):
        is_file_path = "/" in path
    if is_file_path:
        raise FileNotFoundError(errno.ENOENT, "no usable regmap file", path)

    try:
        return read_regmap_file(REGMAP_DEBUGFS / path / "registers", state)
    except (OSError, DumpError):
        pass
    return read_regmap_file(REGMAP_DEBUGFS / f"{path}-crc" / "registers", state)