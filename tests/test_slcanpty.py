import pytest

from canutil.can import CAN_EFF_FLAG, CAN_RTR_FLAG, CanFrame
from canutil.slcanpty import SlcanTranslator, frame_to_slcan, main


@pytest.fixture
def translator():
    return SlcanTranslator()


def test_open_and_close(translator):
    assert translator.feed(b"O\r") == (b"\r", [])
    assert translator.is_open is True
    assert translator.feed(b"C\r") == (b"\r", [])
    assert translator.is_open is False


@pytest.mark.parametrize(
    "command, reply",
    [(b"V\r", b"V1013\r"), (b"v\r", b"v1014\r"), (b"N\r", b"N4242\r"), (b"F\r", b"F00\r")],
)
def test_information_replies(translator, command, reply):
    assert translator.feed(command) == (reply, [])


def test_standard_data_frame(translator):
    reply, frames = translator.feed(b"t1232AABB\r")
    assert reply == b"\r"
    assert frames == [CanFrame(0x123, b"\xaa\xbb")]


def test_extended_data_frame(translator):
    reply, frames = translator.feed(b"T12345678111\r")
    assert reply == b"\r"
    assert frames == [CanFrame(0x12345678 | CAN_EFF_FLAG, b"\x11")]


def test_remote_frame(translator):
    _, frames = translator.feed(b"r1230\r")
    assert frames == [CanFrame(0x123 | CAN_RTR_FLAG)]


def test_remote_frame_without_dlc(translator):
    reply, frames = translator.feed(b"r123\r")
    assert reply == b"\r"
    assert frames == [CanFrame(0x123 | CAN_RTR_FLAG)]


def test_incomplete_message_is_kept(translator):
    assert translator.feed(b"t12") == (b"", [])
    reply, frames = translator.feed(b"30\r")
    assert reply == b"\r"
    assert frames == [CanFrame(0x123)]


def test_leading_carriage_returns_ignored(translator):
    assert translator.feed(b"\r\r\rV\r") == (b"V1013\r", [])


def test_several_commands_in_one_chunk(translator):
    reply, frames = translator.feed(b"O\rV\rt1000\r")
    assert reply == b"\rV1013\r\r"
    assert frames == [CanFrame(0x100)]


def test_bad_nibble_is_refused(translator):
    reply, frames = translator.feed(b"t1231ZZ\r")
    assert reply.startswith(b"\a")
    assert frames == []


def test_bad_dlc_is_refused(translator):
    reply, frames = translator.feed(b"t1239\r")
    assert reply.startswith(b"\a")
    assert frames == []


def test_unknown_command_discards_buffer(translator):
    assert translator.feed(b"q\rV\r") == (b"\a", [])


def test_timestamp_switch(translator):
    translator.feed(b"Z1\r")
    assert translator.timestamps is True
    translator.feed(b"Z0\r")
    assert translator.timestamps is False


@pytest.mark.parametrize(
    "command, reply",
    [(b"P\r", b"\a"), (b"A\r", b"\a"), (b"X1\r", b"\r"), (b"X0\r", b"\a"), (b"S6\r", b"\r"), (b"s1234\r", b"\r")],
)
def test_unsupported_commands(translator, command, reply):
    assert translator.feed(command) == (reply, [])


def test_overlong_message_raises(translator):
    with pytest.raises(ValueError):
        translator.feed(b"t" * 199)


def test_frame_to_slcan_standard():
    assert frame_to_slcan(CanFrame(0x123, b"\x11\x22")) == b"t12321122\r"


def test_frame_to_slcan_extended_and_remote():
    assert frame_to_slcan(CanFrame(0x12345678 | CAN_EFF_FLAG)) == b"T123456780\r"
    assert frame_to_slcan(CanFrame(0x123 | CAN_RTR_FLAG)) == b"r1230\r"


def test_frame_to_slcan_timestamp():
    encoded = frame_to_slcan(CanFrame(0x7FF, b"\x01"), 0x1234)
    assert encoded.endswith(b"1234\r")
    assert encoded.startswith(b"t7FF101")


@pytest.mark.parametrize(
    "frame",
    [
        CanFrame(0x7FF, bytes(range(8))),
        CanFrame(0x1ABCDEF0 | CAN_EFF_FLAG, b"\xde\xad"),
        CanFrame(0x42 | CAN_RTR_FLAG),
        CanFrame(0x0),
    ],
)
def test_round_trip(translator, frame):
    reply, frames = translator.feed(frame_to_slcan(frame))
    assert reply == b"\r"
    assert frames == [frame]


def test_main_without_arguments(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().err