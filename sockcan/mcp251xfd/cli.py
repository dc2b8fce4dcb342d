"""Command line tool that decodes chip and driver state of an mcp251xfd."""

from __future__ import annotations

import getopt
import sys

from sockcan.mcp251xfd.coredump import MEM_SIZE, Chip, CoredumpError, read_coredump
from sockcan.mcp251xfd.ramdump import format_ram
from sockcan.mcp251xfd.regdump import format_registers
from sockcan.mcp251xfd.regmap import read_regmap

_PROG = "mcp251xfd-dump"

_USAGE = f"""{_PROG} - decode chip and driver state of mcp251xfd.

Usage: {_PROG} [options] <file>

        <file>      path to dev coredump file
                        ('/var/log/devcoredump-19700101-234200.dump')
                    path to regmap register file
                        ('/sys/kernel/debug/regmap/spi1.0-crc/registers')
                    shortcut to regmap register file
                        ('spi0.0')

Options:
        -h, --help  this help

"""


def load(path: str) -> tuple[Chip, bytearray]:
    """Read a coredump, or failing that a regmap file, into chip state and memory.

    Raises the error of the regmap reader when neither can be read.
    """
    chip = Chip()
    mem = bytearray(MEM_SIZE)
    try:
        read_coredump(path, chip, mem)
    except (OSError, CoredumpError):
        read_regmap(path, mem)
    return chip, mem


def main(argv: list[str] | None = None) -> int:
    """Command line entry: mcp251xfd-dump [options] <file>."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        opts, rest = getopt.gnu_getopt(args, "ei:pqrvh", ["help"])
    except getopt.GetoptError:
        sys.stderr.write(_USAGE)
        return 1

    for opt, _arg in opts:
        sys.stderr.write(_USAGE)
        return 0 if opt in ("-h", "--help") else 1

    if not rest:
        sys.stderr.write(_USAGE)
        return 1
    path = rest[0]

    try:
        chip, mem = load(path)
    except (OSError, ValueError):
        sys.stderr.write(f"Unable to read file: '{path}'\n")
        return 1

    sys.stdout.write(format_registers(mem))
    sys.stdout.write(format_ram(chip, mem))
    return 0


if __name__ == "__main__":
    sys.exit(main())