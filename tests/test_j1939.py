from unittest import mock

import pytest

from canutil.j1939 import (
    J1939_NO_ADDR,
    J1939_NO_NAME,
    J1939_NO_PGN,
    J1939_PGN_ADDRESS_CLAIMED,
    J1939Address,
    addr2str,
    interface_index,
    interface_name,
    parse_canaddr,
    str2addr,
)

IFACES = [(3, "vcan0"), (5, "vcan1")]


def _ifaces(entries=IFACES):
    return mock.patch("socket.if_nameindex", return_value=list(entries), create=True)


def test_default_address_fields():
    a = J1939Address()
    assert (a.ifindex, a.name, a.pgn, a.addr) == (0, J1939_NO_NAME, J1939_NO_PGN, J1939_NO_ADDR)


def test_addr2str_no_address():
    assert addr2str(J1939Address()) == "-"


def test_addr2str_address_and_pgn():
    assert addr2str(J1939Address(addr=0x20, pgn=0xEF00)) == "20,0ef00"


def test_addr2str_interface_names():
    with _ifaces():
        assert addr2str(J1939Address(ifindex=3, addr=0x20)).startswith("vcan0:")
        assert addr2str(J1939Address(ifindex=7, addr=0x20)).startswith("#7:")


def test_interface_index_numbers():
    assert interface_index("5") == 5
    assert interface_index("0x10") == 16
    assert interface_index("") == 0


def test_interface_index_by_name():
    with _ifaces():
        assert interface_index("vcan1") == 5
        assert interface_index("missing") == 0


def test_interface_name_lookup():
    with _ifaces():
        assert interface_name(3) == "vcan0"
        assert interface_name(9) is None


def test_str2addr_interface_address_and_pgn():
    with _ifaces():
        a = str2addr("vcan0:20,0ef00")
    assert a == J1939Address(ifindex=3, addr=0x20, pgn=0xEF00)


def test_str2addr_name():
    with _ifaces([]):
        a = str2addr(":1122334455667788")
    assert a.name == 0x1122334455667788
    assert a.addr == J1939_NO_ADDR
    assert a.pgn == J1939_NO_PGN


def test_str2addr_plain_number_is_interface():
    assert str2addr("7") == J1939Address(ifindex=7)


def test_str2addr_interface_too_long():
    with pytest.raises(ValueError):
        str2addr("x" * 16 + ":20")


@pytest.mark.parametrize(
    "address",
    [
        J1939Address(addr=0x20, pgn=0xEF00),
        J1939Address(addr=0x01, pgn=0x12345),
        J1939Address(addr=0xFE, pgn=0),
    ],
)
def test_round_trip(address):
    with _ifaces([]):
        assert str2addr(addr2str(address)) == address


def test_parse_canaddr_all_fields():
    with mock.patch("socket.if_nametoindex", return_value=4, create=True):
        a = parse_canaddr("can0:0x20,0x12300,0x55", J1939Address())
    assert a == J1939Address(ifindex=4, addr=0x20, pgn=0x12300, name=0x55)


def test_parse_canaddr_keeps_empty_fields():
    base = J1939Address(ifindex=2, addr=0x10, pgn=0x100, name=9)
    a = parse_canaddr(":,0x200", base)
    assert a == J1939Address(ifindex=2, addr=0x10, pgn=0x200, name=9)


def test_parse_canaddr_interface_only():
    base = J1939Address(addr=0x33)
    with mock.patch("socket.if_nametoindex", return_value=6, create=True):
        a = parse_canaddr("can1", base)
    assert a == J1939Address(ifindex=6, addr=0x33)


def test_parse_canaddr_unknown_interface():
    with mock.patch("socket.if_nametoindex", side_effect=OSError("no device"), create=True):
        a = parse_canaddr("nosuch:0x21", J1939Address(ifindex=8))
    assert a.ifindex == 0
    assert a.addr == 0x21