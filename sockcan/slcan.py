"""The slcan ASCII protocol as spoken by a serial-line CAN adapter."""

from __future__ import annotations

import enum
import logging
import string
from dataclasses import dataclass, field

from sockcan.frames import (
    CAN_EFF_FLAG,
    CAN_EFF_MASK,
    CAN_RTR_FLAG,
    CAN_SFF_MASK,
    CanFrame,
)

_log = logging.getLogger(__name__)

ACK = b"\r"
NACK = b"\a"

# receive buffer of 200 bytes, one kept for the terminating NUL
BUFFER_SIZE = 199

_HEXDIGITS = frozenset(string.hexdigits.encode())
_SPACE = frozenset(b" \t\n\v\f\r")
_ULONG_MAX = 2**64 - 1


def asc2nibble(char: str | int) -> int:
    """Return the value of a hex digit, or 16 if it is not one."""
    c = ord(char) if isinstance(char, str) else char
    if ord("0") <= c <= ord("9"):
        return c - ord("0")
    if ord("A") <= c <= ord("F"):
        return c - ord("A") + 10
    if ord("a") <= c <= ord("f"):
        return c - ord("a") + 10
    return 16


def _strtoul_hex(text: bytes) -> int:
    """Parse a leading hex number like strtoul(..., 16), truncated to 32 bits."""
    n = len(text)
    i = 0
    while i < n and text[i] in _SPACE:
        i += 1
    negative = False
    if i < n and text[i] in b"+-":
        negative = text[i] == ord("-")
        i += 1
    if text[i:i + 2].lower() == b"0x" and i + 2 < n and text[i + 2] in _HEXDIGITS:
        i += 2
    j = i
    while j < n and text[j] in _HEXDIGITS:
        j += 1
    value = int(text[i:j], 16) if j > i else 0
    if value > _ULONG_MAX:
        value = _ULONG_MAX
    elif negative:
        value = -value % (_ULONG_MAX + 1)
    return value & 0xFFFFFFFF


def encode_frame(frame: CanFrame, timestamp_ms: int | None = None) -> bytes:
    """Render a CAN frame as an slcan message, with an optional timestamp."""
    cmd = "R" if frame.can_id & CAN_RTR_FLAG else "T"
    if frame.can_id & CAN_EFF_FLAG:
        text = f"{cmd}{frame.can_id & CAN_EFF_MASK:08X}{frame.dlc}"
    else:
        text = f"{cmd.lower()}{frame.can_id & CAN_SFF_MASK:03X}{frame.dlc}"
    text += frame.data.hex().upper()
    if timestamp_ms is not None:
        text += f"{timestamp_ms:04X}"
    return (text + "\r").encode("ascii")


class EventKind(enum.Enum):
    """What the owner of a session has to do."""

    OPEN = "open"
    CLOSE = "close"
    FRAME = "frame"
    REPLY = "reply"


@dataclass(frozen=True)
class SlcanEvent:
    """An action produced by an slcan command: open, close, send a frame, reply."""

    kind: EventKind
    reply: bytes = b""
    frame: CanFrame | None = None


@dataclass
class SlcanSession:
    """Parses slcan commands from a byte stream and tracks the adapter state."""

    is_open: bool = False
    timestamps: bool = False
    _pending: bytes = field(default=b"", repr=False)

    @property
    def pending(self) -> bytes:
        """Bytes of an incomplete message waiting for its '\\r'."""
        return self._pending

    @property
    def read_size(self) -> int:
        """How many bytes the receive buffer still takes."""
        return BUFFER_SIZE - len(self._pending)

    def feed(self, data: bytes) -> list[SlcanEvent]:
        """Consume received bytes and return the resulting events in order."""
        buf = self._pending + bytes(data)
        self._pending = b""
        events: list[SlcanEvent] = []
        while True:
            buf = buf.lstrip(b"\r")
            if not buf:
                break
            if b"\r" not in buf:
                self._pending = buf
                break
            _log.debug("%s", buf.replace(b"\r", b"@").decode("latin-1"))
            ptr = self._command(buf, events)
            if len(buf) > ptr + 1:
                buf = buf[ptr + 1:]
            else:
                break
        return events

    def _command(self, buf: bytes, events: list[SlcanEvent]) -> int:
        """Handle the command at the start of buf; return the last index consumed."""

        def at(i: int) -> int:
            return buf[i] if i < len(buf) else 0

        def reply(text: bytes) -> None:
            events.append(SlcanEvent(EventKind.REPLY, reply=text))

        cmd = chr(buf[0])

        if cmd in "mM":
            # acceptance code/mask: not mappable to a socket filter
            reply(ACK)
            return 9
        if cmd == "Z":
            self.timestamps = bool(at(1) & 0x01)
            reply(ACK)
            return 2
        if cmd == "O":
            events.append(SlcanEvent(EventKind.OPEN))
            self.is_open = True
            reply(ACK)
            return 1
        if cmd == "C":
            events.append(SlcanEvent(EventKind.CLOSE))
            self.is_open = False
            reply(ACK)
            return 1
        fixed_replies = {"V": b"V1013\r", "v": b"v1014\r", "N": b"N4242\r", "F": b"F00\r"}
        if cmd in fixed_replies:
            reply(fixed_replies[cmd])
            return 1
        if cmd in "US":
            reply(ACK)
            return 2
        if cmd == "s":
            reply(ACK)
            return 5
        if cmd in "PA":
            reply(NACK)
            return 1
        if cmd == "X":
            reply(ACK if at(1) & 0x01 else NACK)
            return 2
        if cmd not in "tTrR":
            reply(NACK)
            return len(buf) - 1

        extended = cmd in "TR"
        remote = cmd in "rR"
        ptr = 9 if extended else 4
        flags = (CAN_EFF_FLAG if extended else 0) | (CAN_RTR_FLAG if remote else 0)

        if remote and at(ptr) != ord("0"):
            # remote frame without a DLC digit: tolerated protocol violation
            frame = CanFrame(_strtoul_hex(buf[1:ptr]) | flags)
            ptr -= 1
        else:
            digit = at(ptr)
            if not ord("0") <= digit < ord("9"):
                reply(NACK)
                return ptr
            dlc = digit - ord("0")
            can_id = _strtoul_hex(buf[1:ptr]) | flags
            payload = bytearray()
            ptr += 1
            for _ in range(dlc):
                high = asc2nibble(at(ptr))
                ptr += 1
                if high > 0x0F:
                    reply(NACK)
                    return ptr
                low = asc2nibble(at(ptr))
                ptr += 1
                if low > 0x0F:
                    reply(NACK)
                    return ptr
                payload.append(high << 4 | low)
            if dlc:
                ptr -= 1
            frame = CanFrame(can_id, bytes(payload))

        events.append(SlcanEvent(EventKind.FRAME, frame=frame))
        reply(ACK)
        return ptr