import struct

import pytest

from canutil.mcp251xfd.coredump import DUMP_MAGIC, DumpError
from canutil.mcp251xfd.dumptool import load_state, main


def _coredump(reg, val):
    headers = struct.pack("<4I", DUMP_MAGIC, 0, 32, 8)
    headers += struct.pack("<4I", DUMP_MAGIC, 0xFFFFFFFF, 0, 0)
    return headers + struct.pack("<2I", reg, val)


def test_load_state_from_coredump(tmp_path):
    path = tmp_path / "core.dump"
    path.write_bytes(_coredump(0x04, 0x12345678))
    state = load_state(path)
    assert state.read_u32(0x04) == 0x12345678


def test_load_state_falls_back_to_regmap(tmp_path, capsys):
    path = tmp_path / "registers"
    path.write_text("0004: 12345678\n0008: 0000abcd\n")
    state = load_state(path)
    assert state.read_u32(0x08) == 0xABCD
    assert "regmap: Found 2 registers" in capsys.readouterr().out


def test_load_state_missing_file(tmp_path):
    with pytest.raises(DumpError, match="Unable to read file"):
        load_state(tmp_path / "missing")


@pytest.mark.parametrize("argv", [["-h"], ["--help"], ["-h", "-v"]])
def test_help(argv, capsys):
    assert main(argv) == 0
    assert "Usage: mcp251xfd-dump [options] <file>" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [[], ["-v"], ["-i", "x"], ["--verbose"], ["-vh"]])
def test_usage_errors(argv, capsys):
    assert main(argv) == 1
    assert "Usage:" in capsys.readouterr().err


def test_unreadable_file(tmp_path, capsys):
    path = tmp_path / "missing"
    assert main([str(path)]) == 1
    assert f"Unable to read file: '{path}'" in capsys.readouterr().err


def test_full_dump_from_regmap(tmp_path, capsys):
    path = tmp_path / "registers"
    path.write_text("0004: 12345678\n")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("regmap: Found 1 registers")
    assert "-------------------- register dump --------------------" in out
    assert "RAM dump" in out
    assert "NBTCFG: nbtcfg(0x004)=0x12345678" in out


def test_full_dump_from_coredump(tmp_path, capsys):
    path = tmp_path / "core.dump"
    path.write_bytes(_coredump(0x04, 0x12345678))
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Found ")
    assert "regmap:" not in out