import struct
import sys

import pytest

from sockcan.frames import (
    CAN_EFF_FLAG,
    CAN_MTU,
    CAN_RTR_FLAG,
    CanFilter,
    CanFrame,
    dlc_to_len,
)


def test_pack_has_kernel_size():
    assert len(CanFrame(0x123, b"\x01\x02").pack()) == CAN_MTU


def test_pack_layout():
    packed = CanFrame(0x123, b"\xaa\xbb").pack()
    assert int.from_bytes(packed[:4], sys.byteorder) == 0x123
    assert packed[4] == 2
    assert packed[8:10] == b"\xaa\xbb"
    assert packed[10:] == bytes(6)


@pytest.mark.parametrize(
    "frame",
    [
        CanFrame(0),
        CanFrame(0x7FF, bytes(range(8))),
        CanFrame(0x1ABCDEF | CAN_EFF_FLAG, b"\x11"),
        CanFrame(0x100 | CAN_RTR_FLAG),
    ],
)
def test_round_trip(frame):
    assert CanFrame.unpack(frame.pack()) == frame


def test_flag_properties():
    frame = CanFrame(0x12345 | CAN_EFF_FLAG | CAN_RTR_FLAG)
    assert frame.is_extended
    assert frame.is_remote
    assert not frame.is_error
    assert frame.arbitration_id == 0x12345


def test_dlc_follows_data():
    assert CanFrame(1, b"abc").dlc == 3


def test_too_long_payload_rejected():
    with pytest.raises(ValueError):
        CanFrame(1, bytes(9))


def test_id_out_of_range_rejected():
    with pytest.raises(ValueError):
        CanFrame(1 << 32)


def test_unpack_wrong_size_rejected():
    with pytest.raises(ValueError):
        CanFrame.unpack(bytes(15))


def test_unpack_bad_length_rejected():
    raw = bytearray(CanFrame(1).pack())
    raw[4] = 9
    with pytest.raises(ValueError):
        CanFrame.unpack(bytes(raw))


@pytest.mark.parametrize(
    "dlc, length",
    [(0, 0), (8, 8), (9, 12), (10, 16), (11, 20), (12, 24), (13, 32), (14, 48), (15, 64)],
)
def test_dlc_to_len(dlc, length):
    assert dlc_to_len(dlc) == length


def test_dlc_to_len_masks_high_bits():
    assert dlc_to_len(0x1F) == dlc_to_len(0x0F)


def test_filter_pack_round_trip():
    packed = CanFilter(0x123, 0x7FF).pack()
    assert len(packed) == 8
    assert struct.unpack("=II", packed) == (0x123, 0x7FF)


def test_filter_default_is_open():
    assert CanFilter().pack() == bytes(8)