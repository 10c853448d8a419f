import pytest

from canutil import testj1939 as tj
from canutil.j1939 import J1939Address


def test_vector_pattern_first_bytes():
    assert tj.test_vector(8) == bytes.fromhex("0123456789abcdef")


def test_vector_repeats_every_eight_bytes():
    vec = tj.test_vector(128)
    assert len(vec) == 128
    assert all(vec[i] == vec[i % 8] for i in range(128))


def test_vector_prefix_property():
    assert tj.test_vector(20)[:5] == tj.test_vector(5)
    assert tj.test_vector(0) == b""


def test_vector_too_long():
    with pytest.raises(ValueError):
        tj.test_vector(129)


def test_format_received_short():
    peer = J1939Address(addr=0x20, pgn=0xEF00)
    text = tj.format_received(peer, bytes([1, 2, 0xAB]), False)
    assert text == f"{0x20:02x} {0xEF00:05x}: 01 02 ab\n"


def test_format_received_wraps_after_eight_bytes():
    peer = J1939Address(addr=0x20, pgn=0xEF00)
    text = tj.format_received(peer, bytes(range(10)), False)
    lines = text.split("\n")
    assert len(lines) == 3 and lines[2] == ""
    assert lines[0].endswith(" 00 01 02 03 04 05 06 07")
    assert lines[1] == "00008    " + " 08 09"


def test_format_received_with_name():
    peer = J1939Address(addr=0x20, pgn=0xEF00, name=0x1122334455667788)
    named = tj.format_received(peer, b"\x05", True)
    plain = tj.format_received(peer, b"\x05", False)
    assert named == "1122334455667788 " + plain


def test_format_received_zero_name_not_shown():
    peer = J1939Address(addr=0x20, pgn=0xEF00, name=0)
    assert tj.format_received(peer, b"", True) == tj.format_received(peer, b"", False)


def test_main_unknown_option(capsys):
    assert tj.main(["-x"]) == 1
    assert "Usage: testj1939" in capsys.readouterr().err


def test_main_question_mark_shows_help(capsys):
    assert tj.main(["-?"]) == 1
    assert "Usage: testj1939" in capsys.readouterr().err


def test_main_missing_priority_argument(capsys):
    assert tj.main(["-p"]) == 1
    assert "Usage: testj1939" in capsys.readouterr().err


def test_main_send_size_too_large(capsys):
    assert tj.main(["-s200", "-", "-"]) == 1
    assert "Unsupported size. max: 128" in capsys.readouterr().err