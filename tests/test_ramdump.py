import struct

import pytest

from sockcan.mcp251xfd import registers as r
from sockcan.mcp251xfd.coredump import MEM_SIZE, RX_FIFO, TX_FIFO, Chip
from sockcan.mcp251xfd.ramdump import FOOTER, HEADER, format_data, format_ram


def _mem():
    return bytearray(MEM_SIZE)


def _put(mem, addr, *words):
    struct.pack_into(f"<{len(words)}I", mem, addr, *words)


def _line(text, prefix):
    return next(line for line in text.splitlines() if line.startswith(prefix))


def _data_bytes(text):
    tokens = []
    for line in text.splitlines():
        part = line.split("=", 1)[1] if "=" in line else line
        tokens.extend(part.split())
    return bytes(int(t, 16) for t in tokens)


def test_format_data_without_payload():
    assert format_data(b"", 0) == f"{'data':>16} = -none-\n"


def test_format_data_eight_bytes():
    assert format_data(bytes(range(8)), 8) == f"{'data':>16} = 00 01 02 03  04 05 06 07\n"


@pytest.mark.parametrize("dlc, length", [(1, 1), (8, 8), (9, 12), (13, 32), (15, 64)])
def test_format_data_round_trip(dlc, length):
    data = bytes((i * 7) & 0xFF for i in range(64))
    text = format_data(data, dlc)
    assert _data_bytes(text) == data[:length]
    assert text.endswith("\n")
    assert len(text.splitlines()) == (length + 7) // 8


def test_format_data_clamps_large_dlc():
    data = bytes(range(64))
    assert format_data(data, 20) == format_data(data, 15)


def test_format_ram_header_and_footer():
    text = format_ram(Chip(), _mem())
    assert text.startswith(HEADER)
    assert text.endswith(FOOTER)


def test_format_ram_rejects_small_memory():
    with pytest.raises(ValueError):
        format_ram(Chip(), bytearray(r.RAM_START))


@pytest.mark.parametrize("fsize", [0, 3, 7])
def test_object_counts_follow_fifo_sizes(fsize):
    mem = _mem()
    con = fsize << 24
    _put(mem, r.REG_TEFCON, con)
    _put(mem, r.REG_FIFOCON_BASE + r.FIFO_STRIDE * TX_FIFO, con)
    _put(mem, r.REG_FIFOCON_BASE + r.FIFO_STRIDE * RX_FIFO, con)
    text = format_ram(Chip(), mem)
    assert text.count("TEF Object:") == fsize + 1
    assert text.count("TX Object:") == fsize + 1
    assert text.count("RX Object:") == fsize + 1


def test_tef_object_contents():
    mem = _mem()
    _put(mem, r.RAM_START, 0x12345678, 0x0, 0xCAFE)
    text = format_ram(Chip(), mem)
    assert f"{'id':>16} = 0x12345678" in text
    assert f"{'ts':>16} = 0x0000cafe" in text
    assert _line(text, "TEF Object: 0x00").startswith(f"TEF Object: 0x00 (0x{r.RAM_START:03x})")


def test_tef_markers():
    mem = _mem()
    _put(mem, r.REG_TEFCON, 3 << 24)
    _put(mem, r.REG_TEFUA, 2 * r.HW_TEF_OBJ_SIZE)
    chip = Chip()
    chip.tef.head = 1
    chip.tef.tail = 0
    chip.tef.obj_num = 4
    text = format_ram(chip, mem)
    first = _line(text, "TEF Object: 0x00")
    second = _line(text, "TEF Object: 0x01")
    third = _line(text, "TEF Object: 0x02")
    assert "priv-TAIL" in first and "priv-HEAD" not in first
    assert "priv-HEAD" in second
    assert "chip-TAIL" in third and "chip-FIFO-empty" in third


def test_tef_chip_fifo_full():
    mem = _mem()
    _put(mem, r.REG_TEFSTA, r.REG_TEFSTA_TEFFIF)
    line = _line(format_ram(Chip(), mem), "TEF Object: 0x00")
    assert "chip-FIFO-full" in line


def test_priv_fifo_empty_and_full():
    chip = Chip()
    text = format_ram(chip, _mem())
    assert "priv-FIFO-empty" in _line(text, "TEF Object: 0x00")
    chip.tef.head = 4
    chip.tef.obj_num = 4
    text = format_ram(chip, _mem())
    assert "priv-FIFO-full" in _line(text, "TEF Object: 0x00")


def test_tx_object_address_and_data():
    mem = _mem()
    tx_addr = r.RAM_START + r.HW_TEF_OBJ_SIZE
    _put(mem, tx_addr, 0x7FF, 2)
    mem[tx_addr + 8:tx_addr + 10] = b"\xab\xcd"
    text = format_ram(Chip(), mem)
    assert _line(text, "TX Object: 0x00").startswith(f"TX Object: 0x00 (0x{tx_addr:03x})")
    assert f"{'id':>16} = 0x000007ff" in text
    assert format_data(b"\xab\xcd", 2) in text


def test_rx_object_data():
    mem = _mem()
    rx_addr = r.RAM_START + r.HW_TEF_OBJ_SIZE + r.HW_TX_OBJ_CAN_SIZE
    _put(mem, rx_addr, 0x100, 3, 0x42)
    mem[rx_addr + 12:rx_addr + 15] = b"\x01\x02\x03"
    text = format_ram(Chip(), mem)
    assert _line(text, "RX Object: 0x00").startswith(f"RX Object: 0x00 (0x{rx_addr:03x})")
    assert format_data(b"\x01\x02\x03", 3) in text