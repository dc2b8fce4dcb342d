import pytest

from sockcan.frames import CAN_EFF_FLAG, CAN_RTR_FLAG, CanFrame
from sockcan.slcan import (
    ACK,
    NACK,
    EventKind,
    SlcanSession,
    asc2nibble,
    encode_frame,
)


def replies(events):
    return [e.reply for e in events if e.kind is EventKind.REPLY]


def frames(events):
    return [e.frame for e in events if e.kind is EventKind.FRAME]


@pytest.mark.parametrize("char, value", [("0", 0), ("9", 9), ("A", 10), ("f", 15)])
def test_asc2nibble_digits(char, value):
    assert asc2nibble(char) == value
    assert asc2nibble(ord(char)) == value


@pytest.mark.parametrize("char", ["g", "G", " ", "\r"])
def test_asc2nibble_error(char):
    assert asc2nibble(char) == 16


def test_encode_standard_frame():
    assert encode_frame(CanFrame(0x123, b"\xaa\xbb")) == b"t1232AABB\r"


def test_encode_extended_with_timestamp():
    frame = CanFrame(0x11112222 | CAN_EFF_FLAG, bytes.fromhex("1122334455667788"))
    assert encode_frame(frame, 0xEA5F) == b"T1111222281122334455667788EA5F\r"


def test_encode_remote_frame_is_lower_case():
    assert encode_frame(CanFrame(0x7FF | CAN_RTR_FLAG)).startswith(b"r7FF0")


def test_open_and_close():
    session = SlcanSession()
    events = session.feed(b"O\r")
    assert [e.kind for e in events] == [EventKind.OPEN, EventKind.REPLY]
    assert session.is_open
    events = session.feed(b"C\r")
    assert [e.kind for e in events] == [EventKind.CLOSE, EventKind.REPLY]
    assert replies(events) == [ACK]
    assert not session.is_open


def test_fixed_replies_in_one_buffer():
    events = SlcanSession().feed(b"V\rv\rN\rF\r")
    assert replies(events) == [b"V1013\r", b"v1014\r", b"N4242\r", b"F00\r"]


def test_leading_carriage_returns_are_ignored():
    assert replies(SlcanSession().feed(b"\r\r\rF\r")) == [b"F00\r"]


def test_frame_round_trip_through_session():
    frame = CanFrame(0x1ABCDE | CAN_EFF_FLAG, b"\x01\x02\x03")
    events = SlcanSession().feed(encode_frame(frame))
    assert frames(events) == [frame]
    assert replies(events) == [ACK]


def test_incomplete_message_is_kept():
    session = SlcanSession()
    assert session.feed(b"t12") == []
    assert session.pending == b"t12"
    assert session.read_size == 196
    events = session.feed(b"31AB\r")
    assert frames(events) == [CanFrame(0x123, b"\xab")]
    assert session.pending == b""


def test_invalid_dlc_is_rejected():
    events = SlcanSession().feed(b"t1239\r")
    assert frames(events) == []
    assert replies(events) == [NACK]


def test_invalid_hex_data_is_rejected():
    events = SlcanSession().feed(b"t1231GG\r")
    assert frames(events) == []
    assert replies(events) == [NACK]


def test_remote_frame_without_dlc():
    events = SlcanSession().feed(b"r123\r")
    assert frames(events) == [CanFrame(0x123 | CAN_RTR_FLAG)]
    assert replies(events) == [ACK]


def test_extended_remote_frame():
    events = SlcanSession().feed(b"R123456780\r")
    assert frames(events) == [CanFrame(0x12345678 | CAN_EFF_FLAG | CAN_RTR_FLAG)]


def test_unknown_command_discards_rest():
    assert replies(SlcanSession().feed(b"Q\rV\r")) == [NACK]


def test_timestamp_switch():
    session = SlcanSession()
    session.feed(b"Z1\r")
    assert session.timestamps
    session.feed(b"Z0\r")
    assert not session.timestamps


@pytest.mark.parametrize("command, answer", [(b"X1\r", ACK), (b"X0\r", NACK), (b"P\r", NACK), (b"S6\r", ACK)])
def test_unsupported_commands(command, answer):
    assert replies(SlcanSession().feed(command)) == [answer]


def test_filter_command_is_acknowledged_and_followed():
    events = SlcanSession().feed(b"m00000000\rV\r")
    assert replies(events) == [ACK, b"V1013\r"]
    assert frames(events) == []


def test_session_state_does_not_change_on_frames():
    session = SlcanSession()
    session.feed(b"t0010\r")
    assert not session.is_open
    assert not session.timestamps