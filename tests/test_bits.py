import pytest

from canutil.bits import (
    bit,
    can_dlc2len,
    field_get,
    field_prep,
    genmask,
    get_canfd_dlc,
)


@pytest.mark.parametrize("high,low", [(0, 0), (3, 0), (31, 28), (26, 24), (14, 8), (63, 1)])
def test_genmask_is_union_of_bits(high, low):
    assert genmask(high, low) == sum(bit(i) for i in range(low, high + 1))


def test_genmask_full_word():
    assert genmask(31, 0) == 0xFFFFFFFF


def test_genmask_rejects_inverted_range():
    with pytest.raises(ValueError):
        genmask(3, 5)


def test_bit_rejects_negative():
    with pytest.raises(ValueError):
        bit(-1)


@pytest.mark.parametrize("high,low", [(31, 28), (23, 16), (6, 0), (12, 8)])
def test_field_round_trip(high, low):
    mask = genmask(high, low)
    width = high - low + 1
    for value in (0, 1, (1 << width) - 1, (1 << width) // 2):
        packed = field_prep(mask, value)
        assert packed & ~mask == 0
        assert field_get(mask, packed) == value


def test_field_prep_truncates_to_mask():
    mask = genmask(3, 0)
    assert field_prep(mask, 0x1F) == mask


def test_field_get_zero_mask_raises():
    with pytest.raises(ValueError):
        field_get(0, 5)


def test_get_canfd_dlc_clamps():
    assert get_canfd_dlc(20) == 15
    assert get_canfd_dlc(7) == 7


def test_can_dlc2len_table():
    assert can_dlc2len(8) == 8
    assert can_dlc2len(9) == 12
    assert can_dlc2len(15) == 64


def test_can_dlc2len_uses_low_nibble():
    for dlc in range(16):
        assert can_dlc2len(dlc | 0x10) == can_dlc2len(dlc)


def test_dlc2len_monotonic():
    lengths = [can_dlc2len(d) for d in range(16)]
    assert lengths == sorted(lengths)