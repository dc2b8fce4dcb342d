import struct

import pytest

from sockcan.mcp251xfd.cli import load, main
from sockcan.mcp251xfd.coredump import DUMP_MAGIC, DumpObjectType, RingKey
from sockcan.mcp251xfd.ramdump import HEADER as RAM_HEADER
from sockcan.mcp251xfd.regdump import HEADER as REG_HEADER


def _coredump():
    header = struct.Struct("<IIII")
    obj = struct.Struct("<II")
    reg_offset = header.size * 3
    ring_offset = reg_offset + obj.size
    return b"".join(
        (
            header.pack(DUMP_MAGIC, DumpObjectType.REG, reg_offset, obj.size),
            header.pack(DUMP_MAGIC, DumpObjectType.TEF, ring_offset, obj.size),
            header.pack(DUMP_MAGIC, 0xFFFFFFFF, 0, 0),
            obj.pack(0x4, 0xDEADBEEF),
            obj.pack(RingKey.HEAD, 5),
        )
    )


def test_load_coredump(tmp_path):
    path = tmp_path / "dev.dump"
    path.write_bytes(_coredump())
    chip, mem = load(str(path))
    assert struct.unpack_from("<I", mem, 4)[0] == 0xDEADBEEF
    assert chip.tef.head == 5


def test_load_regmap_fallback(tmp_path):
    path = tmp_path / "registers"
    path.write_text("0004: 00000abc\n")
    chip, mem = load(str(path))
    assert struct.unpack_from("<I", mem, 4)[0] == 0xABC
    assert chip.tef.head == 0


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load(str(tmp_path / "missing"))


def test_main_dumps_registers_and_ram(tmp_path, capsys):
    path = tmp_path / "registers"
    path.write_text("0000: 00000001\n")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert REG_HEADER in out
    assert RAM_HEADER in out
    assert out.index(REG_HEADER) < out.index(RAM_HEADER)


def test_main_without_file_prints_usage(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().err


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_main_help(flag, capsys):
    assert main([flag]) == 0
    assert "Usage:" in capsys.readouterr().err


@pytest.mark.parametrize("flag", ["-v", "-x"])
def test_main_other_options_fail(flag, capsys):
    assert main([flag]) == 1
    assert "Usage:" in capsys.readouterr().err


def test_main_unreadable_file(tmp_path, capsys):
    path = str(tmp_path / "missing")
    assert main([path]) == 1
    assert f"Unable to read file: '{path}'" in capsys.readouterr().err