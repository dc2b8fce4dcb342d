"""Human readable decoding of the MCP251xFD message RAM: TEF, TX and RX FIFOs."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from sockcan.mcp251xfd import registers as r
from sockcan.mcp251xfd.coredump import RX_FIFO, TX_FIFO, Chip, Ring
from sockcan.mcp251xfd.registers import field_get

_WORD = struct.Struct("<I")

HEADER = "----------------------- RAM dump ----------------------\n"
FOOTER = "------------------------- end -------------------------\n"

_DLC2LEN = (0, 1, 2, 3, 4, 5, 6, 7, 8, 12, 16, 20, 24, 32, 48, 64)
_CANFD_MAX_DLC = 15
_CANFD_MAX_DLEN = 64

_PAYLOAD_SIZES = {
    r.REG_FIFOCON_PLSIZE_8: 8,
    r.REG_FIFOCON_PLSIZE_12: 12,
    r.REG_FIFOCON_PLSIZE_16: 16,
    r.REG_FIFOCON_PLSIZE_20: 20,
    r.REG_FIFOCON_PLSIZE_24: 24,
    r.REG_FIFOCON_PLSIZE_32: 32,
    r.REG_FIFOCON_PLSIZE_48: 48,
    r.REG_FIFOCON_PLSIZE_64: 64,
}

# bytes in front of the payload of a TX and an RX object
_TX_HEADER_SIZE = r.HW_TX_OBJ_CAN_SIZE - 8
_RX_HEADER_SIZE = r.HW_RX_OBJ_CAN_SIZE - 8


def _u8(value: int) -> int:
    return value & 0xFF


def _u16(value: int) -> int:
    return value & 0xFFFF


def _word(mem: bytes | bytearray, addr: int) -> int:
    return _WORD.unpack_from(mem, addr)[0]


def _fifo_addr(base: int, fifo: int) -> int:
    return base + r.FIFO_STRIDE * fifo


def _payload_size(fifo_con: int) -> int:
    return _PAYLOAD_SIZES.get(field_get(r.REG_FIFOCON_PLSIZE_MASK, fifo_con), 0)


def _obj_num(fifo_con: int) -> int:
    return _u8(_u8(field_get(r.REG_FIFOCON_FSIZE_MASK, fifo_con)) + 1)


def _mask_line(name: str, mask: int, val: int, desc: str) -> str:
    return f"{name:>16} = 0x{field_get(mask, val):06x}\t\t{desc}\n"


def _value_line(name: str, val: int) -> str:
    return f"{name:>16} = 0x{val:08x}\n"


def format_data(data: bytes | bytearray, dlc: int) -> str:
    """Render the payload of a message object for the given DLC."""
    length = _DLC2LEN[min(dlc, _CANFD_MAX_DLC) & 0x0F]
    if not length:
        return f"{'data':>16} = -none-\n"

    payload = bytes(data[:length]).ljust(length, b"\0")
    out = []
    for i, byte in enumerate(payload):
        if i % 8 == 0:
            if i == 0:
                out.append(f"{'data':>16} = {byte:02x}")
            else:
                out.append(f"                   {byte:02x}")
        elif i % 4 == 0:
            out.append(f"  {byte:02x}")
        elif i % 8 == 7:
            out.append(f" {byte:02x}\n")
        else:
            out.append(f" {byte:02x}")
    if length % 8:
        out.append("\n")
    return "".join(out)


@dataclass(frozen=True)
class _Layout:
    """Where the FIFOs live in RAM and what the chip reports about them."""

    tef_sta: int
    tef_num: int
    tef_tail: int
    tx_sta: int
    tx_num: int
    tx_size: int
    tx_base: int
    tx_head: int
    tx_tail: int
    rx_sta: int
    rx_num: int
    rx_size: int
    rx_base: int
    rx_head: int
    rx_tail: int

    @classmethod
    def from_mem(cls, mem: bytes | bytearray) -> _Layout:
        tef_con = _word(mem, r.REG_TEFCON)
        tef_ua = _word(mem, r.REG_TEFUA)
        tef_num = _obj_num(tef_con)

        tx_con = _word(mem, _fifo_addr(r.REG_FIFOCON_BASE, TX_FIFO))
        tx_sta = _word(mem, _fifo_addr(r.REG_FIFOSTA_BASE, TX_FIFO))
        tx_ua = _word(mem, _fifo_addr(r.REG_FIFOUA_BASE, TX_FIFO))
        tx_num = _obj_num(tx_con)
        tx_size = _u8(_TX_HEADER_SIZE + _payload_size(tx_con))
        tx_base = _u16(r.HW_TEF_OBJ_SIZE * tef_num)

        rx_con = _word(mem, _fifo_addr(r.REG_FIFOCON_BASE, RX_FIFO))
        rx_sta = _word(mem, _fifo_addr(r.REG_FIFOSTA_BASE, RX_FIFO))
        rx_ua = _word(mem, _fifo_addr(r.REG_FIFOUA_BASE, RX_FIFO))
        rx_num = _obj_num(rx_con)
        rx_size = _u8(_RX_HEADER_SIZE + _payload_size(rx_con))
        rx_base = _u16(tx_base + tx_size * tx_num)

        return cls(
            tef_sta=_word(mem, r.REG_TEFSTA),
            tef_num=tef_num,
            tef_tail=_u8(tef_ua // r.HW_TEF_OBJ_SIZE),
            tx_sta=tx_sta,
            tx_num=tx_num,
            tx_size=tx_size,
            tx_base=tx_base,
            tx_head=field_get(r.REG_FIFOSTA_FIFOCI_MASK, tx_sta),
            tx_tail=_u8(((tx_ua - tx_base) & 0xFFFFFFFF) // tx_size),
            rx_sta=rx_sta,
            rx_num=rx_num,
            rx_size=rx_size,
            rx_base=rx_base,
            rx_head=field_get(r.REG_FIFOSTA_FIFOCI_MASK, rx_sta),
            rx_tail=_u8(((rx_ua - rx_base) & 0xFFFFFFFF) // rx_size),
        )

    def tef_rel(self, n: int) -> int:
        return _u16(r.HW_TEF_OBJ_SIZE * n)

    def tx_rel(self, n: int) -> int:
        return _u16(self.tx_base + self.tx_size * n)

    def rx_rel(self, n: int) -> int:
        return _u16(self.rx_base + self.rx_size * n)


def _object(mem: bytes | bytearray, rel: int, length: int) -> bytes:
    """The bytes of an object in RAM, zero beyond the end of RAM."""
    start = r.RAM_START + rel
    end = min(start + length, r.RAM_START + r.RAM_SIZE)
    return bytes(mem[start:end]).ljust(length, b"\0")


def _priv_fifo(ring: Ring, n: int) -> str:
    if ring.head_index() == ring.tail_index() == n:
        return "  priv-FIFO-empty" if ring.head == ring.tail else "  priv-FIFO-full"
    return ""


def _mark(condition: bool, text: str) -> str:
    return text if condition else ""


def _addr(rel: int) -> int:
    return _u16(rel + r.RAM_START)


def _tef(layout: _Layout, mem: bytes | bytearray, ring: Ring) -> str:
    out = [
        "\nTEF Overview:\n",
        f"{'head (p)':>16} =        0x{ring.head_index():02x}    0x{ring.head:08x}\n",
        f"{'tail (c/p)':>16} = 0x{layout.tef_tail:02x}   "
        f"0x{ring.tail_index():02x}    0x{ring.tail:08x}\n",
        "\n",
    ]
    for n in range(layout.tef_num):
        rel = layout.tef_rel(n)
        obj_id, flags, ts = struct.unpack("<III", _object(mem, rel, r.HW_TEF_OBJ_SIZE))
        chip_fifo = ""
        if layout.tef_tail == n:
            if layout.tef_sta & r.REG_TEFSTA_TEFFIF:
                chip_fifo = "  chip-FIFO-full"
            elif not layout.tef_sta & r.REG_TEFSTA_TEFNEIF:
                chip_fifo = "  chip-FIFO-empty"
        out.append(
            f"TEF Object: 0x{n:02x} (0x{_addr(rel):03x})"
            f"{_mark(ring.head_index() == n, '  priv-HEAD')}"
            f"{_mark(layout.tef_tail == n, '  chip-TAIL')}"
            f"{_mark(ring.tail_index() == n, '  priv-TAIL')}"
            f"{chip_fifo}{_priv_fifo(ring, n)}\n"
        )
        out.append(_value_line("id", obj_id))
        out.append(_value_line("flags", flags))
        out.append(_value_line("ts", ts))
        out.append(_mask_line("SEQ", r.OBJ_FLAGS_SEQ_MASK, flags, "Sequence"))
        out.append("\n")
    return "".join(out)


def _tx(layout: _Layout, mem: bytes | bytearray, ring: Ring) -> str:
    out = [
        "\nTX Overview:\n",
        f"{'head (c/p)':>16} = 0x{layout.tx_head:02x}    "
        f"0x{ring.head_index():02x}    0x{ring.head:08x}\n",
        f"{'tail (c/p)':>16} = 0x{layout.tx_tail:02x}    "
        f"0x{ring.tail_index():02x}    0x{ring.tail:08x}\n",
        "\n",
    ]
    for n in range(layout.tx_num):
        rel = layout.tx_rel(n)
        raw = _object(mem, rel, r.HW_TX_OBJ_CANFD_SIZE)
        obj_id, flags = struct.unpack_from("<II", raw)
        chip_fifo = ""
        if layout.tx_tail == n:
            if not layout.tx_sta & r.REG_FIFOSTA_TFNRFNIF:
                chip_fifo = "  chip-FIFO-full"
            elif layout.tx_sta & r.REG_FIFOSTA_TFERFFIF:
                chip_fifo = "  chip-FIFO-empty"
        out.append(
            f"TX Object: 0x{n:02x} (0x{_addr(rel):03x})"
            f"{_mark(layout.tx_head == n, '  chip-HEAD')}"
            f"{_mark(ring.head_index() == n, '  priv-HEAD')}"
            f"{_mark(layout.tx_tail == n, '  chip-TAIL')}"
            f"{_mark(ring.tail_index() == n, '  priv-TAIL')}"
            f"{chip_fifo}{_priv_fifo(ring, n)}\n"
        )
        out.append(_value_line("id", obj_id))
        out.append(_value_line("flags", flags))
        out.append(_mask_line("SEQ_MCP2517FD", r.OBJ_FLAGS_SEQ_MCP2517FD_MASK, flags,
                              "Sequence (MCP2517)"))
        out.append(_mask_line("SEQ_MCP2518FD", r.OBJ_FLAGS_SEQ_MCP2518FD_MASK, flags,
                              "Sequence (MCP2518)"))
        out.append(format_data(raw[8:], field_get(r.OBJ_FLAGS_DLC, flags)))
        out.append("\n")
    return "".join(out)


def _rx(layout: _Layout, mem: bytes | bytearray, ring: Ring) -> str:
    out = [
        "\nRX Overview:\n",
        f"{'head (c/p)':>16} = 0x{layout.rx_head:02x}    "
        f"0x{ring.head_index():02x}    0x{ring.head:08x}\n",
        f"{'tail (c/p)':>16} = 0x{layout.rx_tail:02x}    "
        f"0x{ring.tail_index():02x}    0x{ring.tail:08x}\n",
        "\n",
    ]
    for n in range(layout.rx_num):
        rel = layout.rx_rel(n)
        raw = _object(mem, rel, r.HW_RX_OBJ_CANFD_SIZE)
        obj_id, flags, ts = struct.unpack_from("<III", raw)
        chip_fifo = ""
        if layout.rx_tail == n:
            if layout.rx_sta & r.REG_FIFOSTA_TFERFFIF:
                chip_fifo = "  chip-FIFO-full"
            elif not layout.rx_sta & r.REG_FIFOSTA_TFNRFNIF:
                chip_fifo = "  chip-FIFO-empty"
        out.append(
            f"RX Object: 0x{n:02x} (0x{_addr(rel):03x})"
            f"{_mark(layout.rx_head == n, '  chip-HEAD')}"
            f"{_mark(ring.head_index() == n, '  priv-HEAD')}"
            f"{_mark(layout.rx_tail == n, '  chip-TAIL')}"
            f"{_mark(ring.tail_index() == n, '  priv-TAIL')}"
            f"{chip_fifo}{_priv_fifo(ring, n)}\n"
        )
        out.append(_value_line("id", obj_id))
        out.append(_value_line("flags", flags))
        out.append(_value_line("ts", ts))
        out.append(format_data(raw[12:], field_get(r.OBJ_FLAGS_DLC, flags)))
        out.append("\n")
    return "".join(out)


def format_ram(chip: Chip, mem: bytes | bytearray) -> str:
    """Render the TEF, TX and RX objects held in the controller's RAM image."""
    needed = r.RAM_START + r.RAM_SIZE
    if len(mem) < needed:
        raise ValueError(f"memory image too small: {len(mem)} < {needed} bytes")
    layout = _Layout.from_mem(mem)
    return "".join(
        (
            HEADER,
            _tef(layout, mem, chip.tef),
            _tx(layout, mem, chip.tx),
            _rx(layout, mem, chip.rx),
            FOOTER,
        )
    )