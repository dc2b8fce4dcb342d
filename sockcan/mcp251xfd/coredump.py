"""Reading the device coredump written by the mcp251xfd CAN controller driver."""

from __future__ import annotations

import enum
import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path

_log = logging.getLogger(__name__)

DUMP_MAGIC = 0x1825434D
MEM_SIZE = 0x1000

TX_FIFO = 1
RX_FIFO = TX_FIFO + 1

_HEADER = struct.Struct("<IIII")
_OBJECT = struct.Struct("<II")
_VALUE = struct.Struct("<I")


class DumpObjectType(enum.IntEnum):
    """Type of an object in the coredump."""

    REG = 0
    TEF = 1
    RX = 2
    TX = 3
    END = -1


class RingKey(enum.IntEnum):
    """Which ring field a ring object entry sets."""

    HEAD = 0
    TAIL = 1
    BASE = 2
    NR = 3
    FIFO_NR = 4
    OBJ_NUM = 5
    OBJ_SIZE = 6


# ring field and its width in bits
_RING_FIELDS = {
    RingKey.HEAD: ("head", 32),
    RingKey.TAIL: ("tail", 32),
    RingKey.BASE: ("base", 16),
    RingKey.NR: ("nr", 8),
    RingKey.FIFO_NR: ("fifo_nr", 8),
    RingKey.OBJ_NUM: ("obj_num", 8),
    RingKey.OBJ_SIZE: ("obj_size", 8),
}


class CoredumpError(Exception):
    """The coredump is malformed."""


@dataclass
class Ring:
    """The driver's view of one FIFO ring."""

    head: int = 0
    tail: int = 0
    base: int = 0
    nr: int = 0
    fifo_nr: int = 0
    obj_num: int = 0
    obj_size: int = 0

    def head_index(self) -> int:
        """The head position inside the ring."""
        return (self.head & (self.obj_num - 1)) & 0xFF

    def tail_index(self) -> int:
        """The tail position inside the ring."""
        return (self.tail & (self.obj_num - 1)) & 0xFF


@dataclass
class Chip:
    """Driver state of one controller: its TEF, TX and RX rings."""

    tef: Ring = field(default_factory=Ring)
    tx: Ring = field(default_factory=Ring)
    rx: Ring = field(default_factory=Ring)
    rx_ring_num: int = 0


def _objects(data: bytes, start: int, length: int):
    end = start + length
    for pos in range(start, end - _OBJECT.size + 1, _OBJECT.size):
        yield pos, *_OBJECT.unpack_from(data, pos)


def _read_reg(data: bytes, start: int, length: int, mem: bytearray) -> None:
    for pos, reg, val in _objects(data, start, length):
        _log.debug("object=0x%04x reg=0x%04x - val=0x%08x", pos, reg, val)
        if reg + _VALUE.size > len(mem):
            raise CoredumpError(f"register 0x{reg:04x} outside of memory")
        _VALUE.pack_into(mem, reg, val)


def _read_ring(data: bytes, start: int, length: int, ring: Ring) -> None:
    for pos, key, val in _objects(data, start, length):
        try:
            ring_key = RingKey(key)
        except ValueError:
            raise CoredumpError(f"unknown ring key 0x{key:02x}") from None
        _log.debug("reg=0x%04x key=0x%02x: %8s - val=0x%08x", pos, key, ring_key.name, val)
        name, width = _RING_FIELDS[ring_key]
        setattr(ring, name, val & ((1 << width) - 1))


def parse_coredump(data: bytes, chip: Chip, mem: bytearray) -> None:
    """Fill chip rings and register memory from a coredump; raises CoredumpError."""
    data = bytes(data)
    rings = {
        DumpObjectType.TEF: chip.tef,
        DumpObjectType.RX: chip.rx,
        DumpObjectType.TX: chip.tx,
    }
    pos = 0
    while pos + _HEADER.size <= len(data):
        magic, raw_type, offset, length = _HEADER.unpack_from(data, pos)
        if magic != DUMP_MAGIC:
            break
        if offset + length > len(data):
            raise CoredumpError(f"object at 0x{offset:04x} exceeds the dump")

        signed_type = raw_type - (1 << 32) if raw_type & 0x80000000 else raw_type
        try:
            object_type = DumpObjectType(signed_type)
        except ValueError:
            raise CoredumpError(f"unknown object type 0x{raw_type:08x}") from None

        _log.debug(
            "hdr=0x%04x type=0x%08x: %8s - offset=0x%04x len=0x%04x",
            pos, raw_type, object_type.name, offset, length,
        )

        if object_type is DumpObjectType.END:
            return
        if object_type is DumpObjectType.REG:
            _read_reg(data, offset, length, mem)
        else:
            _read_ring(data, offset, length, rings[object_type])
        pos += _HEADER.size

    raise CoredumpError("no end marker in dump")


def read_coredump(path: str | Path, chip: Chip, mem: bytearray) -> None:
    """Read a coredump file; raises OSError or CoredumpError."""
    parse_coredump(Path(path).read_bytes(), chip, mem)