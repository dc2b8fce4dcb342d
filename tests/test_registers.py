import functools
import operator

import pytest

from sockcan.mcp251xfd.registers import (
    REG_CON_REQOP_MASK,
    REG_CON_MODE_RESTRICTED,
    REG_FIFOCON_PLSIZE_64,
    REG_FIFOCON_PLSIZE_MASK,
    REG_INT_IE_MASK,
    REG_INT_IF_MASK,
    REG_OSC_CLKODIV_10,
    REG_OSC_CLKODIV_MASK,
    bit,
    field_get,
    genmask,
)


def test_bit_zero_is_one():
    assert bit(0) == 1


@pytest.mark.parametrize("n", range(63))
def test_bit_doubles(n):
    assert bit(n) * 2 == bit(n + 1)


@pytest.mark.parametrize("n", [-1, 64])
def test_bit_out_of_range(n):
    with pytest.raises(ValueError):
        bit(n)


@pytest.mark.parametrize("high,low", [(0, 0), (7, 4), (31, 28), (28, 11), (63, 0), (31, 0)])
def test_genmask_is_union_of_bits(high, low):
    expected = functools.reduce(operator.or_, (bit(i) for i in range(low, high + 1)))
    assert genmask(high, low) == expected


@pytest.mark.parametrize("n", [0, 5, 31, 63])
def test_genmask_single_bit(n):
    assert genmask(n, n) == bit(n)


@pytest.mark.parametrize("high", [0, 7, 15, 31, 62])
def test_genmask_from_zero_is_one_below_next_bit(high):
    assert genmask(high, 0) + 1 == bit(high + 1)


@pytest.mark.parametrize("high,low", [(3, 5), (64, 0), (5, -1)])
def test_genmask_invalid_range(high, low):
    with pytest.raises(ValueError):
        genmask(high, low)


@pytest.mark.parametrize("high,low", [(3, 0), (7, 4), (12, 8), (31, 29), (28, 11)])
def test_field_get_round_trip(high, low):
    mask = genmask(high, low)
    width = high - low + 1
    for value in {0, 1, bit(width) - 1, bit(width) // 3}:
        assert field_get(mask, value * bit(low)) == value


def test_field_get_ignores_bits_outside_mask():
    mask = genmask(7, 4)
    assert field_get(mask, ~mask & genmask(31, 0)) == 0


def test_field_get_zero_mask():
    with pytest.raises(ValueError):
        field_get(0, 1)


def test_field_get_full_fields_match_source_enumerations():
    assert field_get(REG_FIFOCON_PLSIZE_MASK, REG_FIFOCON_PLSIZE_MASK) == REG_FIFOCON_PLSIZE_64
    assert field_get(REG_CON_REQOP_MASK, REG_CON_REQOP_MASK) == REG_CON_MODE_RESTRICTED
    assert field_get(REG_OSC_CLKODIV_MASK, REG_OSC_CLKODIV_MASK) == REG_OSC_CLKODIV_10


def test_interrupt_masks_cover_register():
    assert REG_INT_IF_MASK | REG_INT_IE_MASK == genmask(31, 0)
    assert REG_INT_IF_MASK & REG_INT_IE_MASK == 0