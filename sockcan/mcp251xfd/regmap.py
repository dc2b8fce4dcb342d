"""Reading register values from a regmap debugfs "registers" file."""

from __future__ import annotations

import errno
import os
import re
import struct
from pathlib import Path

REGMAP_DEBUGFS = "/sys/kernel/debug/regmap"

_VALUE = struct.Struct("<I")

# one "reg: value" entry with the whitespace rules of scanf("%hx: %x\n")
_ENTRY = re.compile(
    rb"\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+):\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)\s*"
)


def _number(sign: bytes, digits: bytes, bits: int) -> int:
    value = int(digits, 16)
    if sign == b"-":
        value = -value
    return value % (1 << bits)


def parse_regmap(text: str | bytes, mem: bytearray) -> int:
    """Store the "reg: value" entries of a regmap dump into mem.

    Parsing stops at the first line that does not fit the format. Returns the
    number of entries stored; raises ValueError for a register outside mem.
    """
    data = text.encode("latin-1") if isinstance(text, str) else bytes(text)
    count = 0
    pos = 0
    while True:
        match = _ENTRY.match(data, pos)
        if match is None:
            break
        reg = _number(match.group(1), match.group(2), 16)
        val = _number(match.group(3), match.group(4), 32)
        if reg + _VALUE.size > len(mem):
            raise ValueError(f"register 0x{reg:04x} outside of memory")
        _VALUE.pack_into(mem, reg, val)
        count += 1
        pos = match.end()
    return count


def regmap_candidates(path: str) -> list[str]:
    """The files tried for a path: itself, then debugfs for a bare device name."""
    if "/" in path:
        return [path]
    return [
        path,
        f"{REGMAP_DEBUGFS}/{path}/registers",
        f"{REGMAP_DEBUGFS}/{path}-crc/registers",
    ]


def _read_one(path: str, mem: bytearray) -> int:
    return parse_regmap(Path(path).read_bytes(), mem)


def read_regmap(path: str, mem: bytearray) -> int:
    """Read a regmap register file, or the debugfs file of a device like "spi0.0".

    Returns the number of entries stored. Raises OSError or ValueError from
    the last file tried.
    """
    candidates = regmap_candidates(path)
    last_error: Exception | None = None
    for index, candidate in enumerate(candidates):
        try:
            return _read_one(candidate, mem)
        except (OSError, ValueError) as err:
            last_error = err
            if index == 0 and len(candidates) == 1:
                raise FileNotFoundError(
                    errno.ENOENT, os.strerror(errno.ENOENT), path
                ) from err
    assert last_error is not None
    raise last_error