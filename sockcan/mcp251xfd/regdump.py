"""Human readable decoding of the MCP251xFD register set."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from functools import partial
from typing import Callable, Sequence, Union

from sockcan.mcp251xfd import registers as r
from sockcan.mcp251xfd.coredump import RX_FIFO, TX_FIFO
from sockcan.mcp251xfd.registers import field_get

_VALUE = struct.Struct("<I")

_HEX = "0x{:02x}"
_DEC = "{:3d}"
_HEX_AS_DEC = "0x{:02d}"

HEADER = "-------------------- register dump --------------------\n"
FOOTER = "------------------------- end -------------------------\n"


@dataclass(frozen=True)
class _Bit:
    name: str
    mask: int
    desc: str

    def render(self, val: int) -> str:
        mark = "x" if val & self.mask else " "
        return f"{self.name:>16}   {mark}\t\t{self.desc}\n"


@dataclass(frozen=True)
class _Field:
    name: str
    mask: int
    fmt: str
    desc: str

    def render(self, val: int) -> str:
        value = self.fmt.format(field_get(self.mask, val))
        return f"{self.name:>16} = {value}\t\t{self.desc}\n"


_Spec = Union[_Bit, _Field]

_CON = (
    _Field("TXBWS", r.REG_CON_TXBWS_MASK, _HEX, "Transmit Bandwidth Sharing"),
    _Bit("ABAT", r.REG_CON_ABAT, "Abort All Pending Transmissions"),
    _Field("REQOP", r.REG_CON_REQOP_MASK, _HEX, "Request Operation Mode"),
    _Field("OPMOD", r.REG_CON_OPMOD_MASK, _HEX, "Operation Mode Status"),
    _Bit("TXQEN", r.REG_CON_TXQEN, "Enable Transmit Queue"),
    _Bit("STEF", r.REG_CON_STEF, "Store in Transmit Event FIFO"),
    _Bit("SERR2LOM", r.REG_CON_SERR2LOM, "Transition to Listen Only Mode on System Error"),
    _Bit("ESIGM", r.REG_CON_ESIGM, "Transmit ESI in Gateway Mode"),
    _Bit("RTXAT", r.REG_CON_RTXAT, "Restrict Retransmission Attempts"),
    _Bit("BRSDIS", r.REG_CON_BRSDIS, "Bit Rate Switching Disable"),
    _Bit("BUSY", r.REG_CON_BUSY, "CAN Module is Busy"),
    _Field("WFT", r.REG_CON_WFT_MASK, _HEX, "Selectable Wake-up Filter Time"),
    _Bit("WAKFIL", r.REG_CON_WAKFIL, "Enable CAN Bus Line Wake-up Filter"),
    _Bit("PXEDIS", r.REG_CON_PXEDIS, "Protocol Exception Event Detection Disabled"),
    _Bit("ISOCRCEN", r.REG_CON_ISOCRCEN, "Enable ISO CRC in CAN FD Frames"),
    _Field("DNCNT", r.REG_CON_DNCNT_MASK, _HEX, "Device Net Filter Bit Number"),
)


def _bit_timing(brp: int, tseg1: int, tseg2: int, sjw: int) -> tuple[_Spec, ...]:
    return (
        _Field("BRP", brp, _DEC, "Baud Rate Prescaler"),
        _Field("TSEG1", tseg1, _DEC, "Time Segment 1 (Propagation Segment + Phase Segment 1)"),
        _Field("TSEG2", tseg2, _DEC, "Time Segment 2 (Phase Segment 2)"),
        _Field("SJW", sjw, _DEC, "Synchronization Jump Width"),
    )


_NBTCFG = _bit_timing(
    r.REG_NBTCFG_BRP_MASK, r.REG_NBTCFG_TSEG1_MASK,
    r.REG_NBTCFG_TSEG2_MASK, r.REG_NBTCFG_SJW_MASK,
)
_DBTCFG = _bit_timing(
    r.REG_DBTCFG_BRP_MASK, r.REG_DBTCFG_TSEG1_MASK,
    r.REG_DBTCFG_TSEG2_MASK, r.REG_DBTCFG_SJW_MASK,
)

_TDC = (
    _Bit("EDGFLTEN", r.REG_TDC_EDGFLTEN, "Enable Edge Filtering during Bus Integration state"),
    _Bit("SID11EN", r.REG_TDC_SID11EN, "Enable 12-Bit SID in CAN FD Base Format Messages"),
    _Field("TDCMOD", r.REG_TDC_TDCMOD_MASK, _HEX, "Transmitter Delay Compensation Mode"),
    _Field("TDCO", r.REG_TDC_TDCO_MASK, _HEX, "Transmitter Delay Compensation Offset"),
    _Field("TDCV", r.REG_TDC_TDCV_MASK, _HEX, "Transmitter Delay Compensation Value"),
)

_TREC = (
    _Bit("TXBO", r.REG_TREC_TXBO, "Transmitter in Bus Off State"),
    _Bit("TXBP", r.REG_TREC_TXBP, "Transmitter in Error Passive State"),
    _Bit("RXBP", r.REG_TREC_RXBP, "Receiver in Error Passive State"),
    _Bit("TXWARN", r.REG_TREC_TXWARN, "Transmitter in Error Warning State"),
    _Bit("RXWARN", r.REG_TREC_RXWARN, "Receiver in Error Warning State"),
    _Bit("EWARN", r.REG_TREC_EWARN, "Transmitter or Receiver is in Error Warning State"),
    _Field("TEC", r.REG_TREC_TEC_MASK, _DEC, "Transmit Error Counter"),
    _Field("REC", r.REG_TREC_REC_MASK, _DEC, "Receive Error Counter"),
)

_BDIAG0 = (
    _Field("DTERRCNT", r.REG_BDIAG0_DTERRCNT_MASK, _DEC, "Data Bit Rate Transmit Error Counter"),
    _Field("DRERRCNT", r.REG_BDIAG0_DRERRCNT_MASK, _DEC, "Data Bit Rate Receive Error Counter"),
    _Field("NTERRCNT", r.REG_BDIAG0_NTERRCNT_MASK, _DEC, "Nominal Bit Rate Transmit Error Counter"),
    _Field("NRERRCNT", r.REG_BDIAG0_NRERRCNT_MASK, _DEC, "Nominal Bit Rate Receive Error Counter"),
)

_BDIAG1 = (
    _Bit("DLCMM", r.REG_BDIAG1_DLCMM, "DLC Mismatch"),
    _Bit("ESI", r.REG_BDIAG1_ESI, "ESI flag of a received CAN FD message was set"),
    _Bit("DCRCERR", r.REG_BDIAG1_DCRCERR, "Data CRC Error"),
    _Bit("DSTUFERR", r.REG_BDIAG1_DSTUFERR, "Data Bit Stuffing Error"),
    _Bit("DFORMERR", r.REG_BDIAG1_DFORMERR, "Data Format Error"),
    _Bit("DBIT1ERR", r.REG_BDIAG1_DBIT1ERR, "Data BIT1 Error"),
    _Bit("DBIT0ERR", r.REG_BDIAG1_DBIT0ERR, "Data BIT0 Error"),
    _Bit("TXBOERR", r.REG_BDIAG1_TXBOERR, "Device went to bus-off (and auto-recovered)"),
    _Bit("NCRCERR", r.REG_BDIAG1_NCRCERR, "CRC Error"),
    _Bit("NSTUFERR", r.REG_BDIAG1_NSTUFERR, "Bit Stuffing Error"),
    _Bit("NFORMERR", r.REG_BDIAG1_NFORMERR, "Format Error"),
    _Bit("NACKERR", r.REG_BDIAG1_NACKERR, "Transmitted message was not acknowledged"),
    _Bit("NBIT1ERR", r.REG_BDIAG1_NBIT1ERR, "Bit1 Error"),
    _Bit("NBIT0ERR", r.REG_BDIAG1_NBIT0ERR, "Bit0 Error"),
    _Field("EFMSGCNT", r.REG_BDIAG1_EFMSGCNT_MASK, _DEC, "Error Free Message Counter"),
)

_OSC = (
    _Bit("SCLKRDY", r.REG_OSC_SCLKRDY, "Synchronized SCLKDIV"),
    _Bit("OSCRDY", r.REG_OSC_OSCRDY, "Clock Ready"),
    _Bit("PLLRDY", r.REG_OSC_PLLRDY, "PLL Ready"),
    _Field("CLKODIV", r.REG_OSC_CLKODIV_MASK, _HEX_AS_DEC, "Clock Output Divisor"),
    _Bit("SCLKDIV", r.REG_OSC_SCLKDIV, "System Clock Divisor"),
    _Bit("LPMEN", r.REG_OSC_LPMEN, "Low Power Mode (LPM) Enable (MCP2518FD only)"),
    _Bit("OSCDIS", r.REG_OSC_OSCDIS, "Clock (Oscillator) Disable"),
    _Bit("PLLEN", r.REG_OSC_PLLEN, "PLL Enable"),
)

_TEFCON = (
    _Field("FSIZE", r.REG_TEFCON_FSIZE_MASK, _DEC, "FIFO Size"),
    _Bit("FRESET", r.REG_TEFCON_FRESET, "FIFO Reset"),
    _Bit("UINC", r.REG_TEFCON_UINC, "Increment Tail"),
    _Bit("TEFTSEN", r.REG_TEFCON_TEFTSEN, "Transmit Event FIFO Time Stamp Enable"),
    _Bit("TEFOVIE", r.REG_TEFCON_TEFOVIE, "Transmit Event FIFO Overflow Interrupt Enable"),
    _Bit("TEFFIE", r.REG_TEFCON_TEFFIE, "Transmit Event FIFO Full Interrupt Enable"),
    _Bit("TEFHIE", r.REG_TEFCON_TEFHIE, "Transmit Event FIFO Half Full Interrupt Enable"),
    _Bit("TEFNEIE", r.REG_TEFCON_TEFNEIE, "Transmit Event FIFO Not Empty Interrupt Enable"),
)

_TEFSTA = (
    _Bit("TEFOVIF", r.REG_TEFSTA_TEFOVIF, "Transmit Event FIFO Overflow Interrupt Flag"),
    _Bit("TEFFIF", r.REG_TEFSTA_TEFFIF, "Transmit Event FIFO Full Interrupt Flag (0: not full)"),
    _Bit("TEFHIF", r.REG_TEFSTA_TEFHIF,
         "Transmit Event FIFO Half Full Interrupt Flag (0: < half full)"),
    _Bit("TEFNEIF", r.REG_TEFSTA_TEFNEIF,
         "Transmit Event FIFO Not Empty Interrupt Flag (0: empty)"),
)

_FIFOCON = (
    _Field("PLSIZE", r.REG_FIFOCON_PLSIZE_MASK, _DEC, "Payload Size"),
    _Field("FSIZE", r.REG_FIFOCON_FSIZE_MASK, _DEC, "FIFO Size"),
    _Field("TXAT", r.REG_FIFOCON_TXAT_MASK, _DEC, "Retransmission Attempts"),
    _Field("TXPRI", r.REG_FIFOCON_TXPRI_MASK, _DEC, "Message Transmit Priority"),
    _Bit("FRESET", r.REG_FIFOCON_FRESET, "FIFO Reset"),
    _Bit("TXREQ", r.REG_FIFOCON_TXREQ, "Message Send Request"),
    _Bit("UINC", r.REG_FIFOCON_UINC, "Increment Head/Tail"),
    _Bit("TXEN", r.REG_FIFOCON_TXEN, "TX/RX FIFO Selection (0: RX, 1: TX)"),
    _Bit("RTREN", r.REG_FIFOCON_RTREN, "Auto RTR Enable"),
    _Bit("RXTSEN", r.REG_FIFOCON_RXTSEN, "Received Message Time Stamp Enable"),
    _Bit("TXATIE", r.REG_FIFOCON_TXATIE, "Transmit Attempts Exhausted Interrupt Enable"),
    _Bit("RXOVIE", r.REG_FIFOCON_RXOVIE, "Overflow Interrupt Enable"),
    _Bit("TFERFFIE", r.REG_FIFOCON_TFERFFIE, "Transmit/Receive FIFO Empty/Full Interrupt Enable"),
    _Bit("TFHRFHIE", r.REG_FIFOCON_TFHRFHIE,
         "Transmit/Receive FIFO Half Empty/Half Full Interrupt Enable"),
    _Bit("TFNRFNIE", r.REG_FIFOCON_TFNRFNIE,
         "Transmit/Receive FIFO Not Full/Not Empty Interrupt Enable"),
)

_FIFOSTA = (
    _Field("FIFOCI", r.REG_FIFOSTA_FIFOCI_MASK, _DEC, "FIFO Message Index"),
    _Bit("TXABT", r.REG_FIFOSTA_TXABT,
         "Message Aborted Status (0: completed successfully, 1: aborted)"),
    _Bit("TXLARB", r.REG_FIFOSTA_TXLARB, "Message Lost Arbitration Status"),
    _Bit("TXERR", r.REG_FIFOSTA_TXERR, "Error Detected During Transmission"),
    _Bit("TXATIF", r.REG_FIFOSTA_TXATIF, "Transmit Attempts Exhausted Interrupt Pending"),
    _Bit("RXOVIF", r.REG_FIFOSTA_RXOVIF, "Receive FIFO Overflow Interrupt Flag"),
    _Bit("TFERFFIF", r.REG_FIFOSTA_TFERFFIF, "Transmit/Receive FIFO Empty/Full Interrupt Flag"),
    _Bit("TFHRFHIF", r.REG_FIFOSTA_TFHRFHIF,
         "Transmit/Receive FIFO Half Empty/Half Full Interrupt Flag"),
    _Bit("TFNRFNIF", r.REG_FIFOSTA_TFNRFNIF,
         "Transmit/Receive FIFO Not Full/Not Empty Interrupt Flag"),
)

# interrupt name, enable bit, flag bit, description
_INTERRUPTS = (
    ("IVMI", r.REG_INT_IVMIE, r.REG_INT_IVMIF, "Invalid Message Interrupt"),
    ("WAKI", r.REG_INT_WAKIE, r.REG_INT_WAKIF, "Bus Wake Up Interrupt"),
    ("CERRI", r.REG_INT_CERRIE, r.REG_INT_CERRIF, "CAN Bus Error Interrupt"),
    ("SERRI", r.REG_INT_SERRIE, r.REG_INT_SERRIF, "System Error Interrupt"),
    ("RXOVI", r.REG_INT_RXOVIE, r.REG_INT_RXOVIF, "Receive FIFO Overflow Interrupt"),
    ("TXATI", r.REG_INT_TXATIE, r.REG_INT_TXATIF, "Transmit Attempt Interrupt"),
    ("SPICRCI", r.REG_INT_SPICRCIE, r.REG_INT_SPICRCIF, "SPI CRC Error Interrupt"),
    ("ECCI", r.REG_INT_ECCIE, r.REG_INT_ECCIF, "ECC Error Interrupt"),
    ("TEFI", r.REG_INT_TEFIE, r.REG_INT_TEFIF, "Transmit Event FIFO Interrupt"),
    ("MODI", r.REG_INT_MODIE, r.REG_INT_MODIF, "Mode Change Interrupt"),
    ("TBCI", r.REG_INT_TBCIE, r.REG_INT_TBCIF, "Time Base Counter Interrupt"),
    ("RXI", r.REG_INT_RXIE, r.REG_INT_RXIF, "Receive FIFO Interrupt"),
    ("TXI", r.REG_INT_TXIE, r.REG_INT_TXIF, "Transmit FIFO Interrupt"),
)

_ICODES = {
    0x4A: "Transmit Attempt Interrupt",
    0x49: "Transmit Event FIFO Interrupt",
    0x48: "Invalid Message Occurred",
    0x47: "Operation Mode Changed",
    0x46: "TBC Overflow",
    0x45: "RX/TX MAB Overflow/Underflow",
    0x44: "Address Error Interrupt",
    0x43: "Receive FIFO Overflow Interrupt",
    0x42: "Wake-up Interrupt",
    0x41: "Error Interrupt",
    0x40: "No Interrupt",
}

# the bitmask decoder only looks at as many bits as a register has bytes
_BITMASK_WIDTH = _VALUE.size


def _header(title: str, name: str, val: int, addr: int) -> str:
    return f"{title}: {name}(0x{addr:03x})=0x{val:08x}\n"


def _plain(title: str, name: str, specs: Sequence[_Spec], val: int, addr: int) -> str:
    return _header(title, name, val, addr) + "".join(spec.render(val) for spec in specs)


def _code_text(code: int, names: dict[int, str]) -> str:
    if code in names:
        return names[code]
    if code < 0x20:
        return f"FIFO {code}"
    return "Reserved"


def _vec(val: int, addr: int) -> str:
    codes = (
        ("rxcode", field_get(r.REG_VEC_RXCODE_MASK, val), {0x40: "No Interrupt"}),
        ("txcode", field_get(r.REG_VEC_TXCODE_MASK, val), {0x40: "No Interrupt"}),
        ("icode", field_get(r.REG_VEC_ICODE_MASK, val), _ICODES),
    )
    lines = [_header("VEC", "vec", val, addr)]
    for label, code, names in codes:
        lines.append(f"\t{label}: {_code_text(code, names)} (0x{code:02x})\n")
    return "".join(lines)


def _intf(val: int, addr: int) -> str:
    pending = field_get(r.REG_INT_IF_MASK, val) & field_get(r.REG_INT_IE_MASK, val)

    def mark(flag: int) -> str:
        return "x" if flag else ""

    lines = [_header("INT", "intf", val, addr), "\t\tIE\tIF\tIE & IF\n"]
    for name, enable, flag, desc in _INTERRUPTS:
        lines.append(
            f"\t{name}\t{mark(val & enable)}\t{mark(val & flag)}"
            f"\t{mark(pending & flag)}\t{desc}\n"
        )
    return "".join(lines)


def _fifo_bitmask(title: str, name: str, desc: str, val: int, addr: int) -> str:
    text = _header(title, name, val, addr) + f"{desc}:\n"
    if not val:
        return text + "\t\t-none-\n"
    fifos = "".join(f"{i} " for i in range(_BITMASK_WIDTH) if val & (1 << i))
    return text + f"\t\t{fifos}\n"


_Renderer = Callable[[int, int], str]

_MAIN: tuple[tuple[int, _Renderer], ...] = (
    (r.REG_CON, partial(_plain, "CON", "con", _CON)),
    (r.REG_NBTCFG, partial(_plain, "NBTCFG", "nbtcfg", _NBTCFG)),
    (r.REG_DBTCFG, partial(_plain, "DBTCFG", "dbtcfg", _DBTCFG)),
    (r.REG_TDC, partial(_plain, "TDC", "tdc", _TDC)),
    (r.REG_TBC, partial(_plain, "TBC", "tbc", ())),
    (r.REG_VEC, _vec),
    (r.REG_INT, _intf),
    (r.REG_RXIF, partial(_fifo_bitmask, "RXIF", "rxif", "Receive FIFO Interrupt Pending")),
    (r.REG_RXOVIF, partial(_fifo_bitmask, "RXOVIF", "rxovif",
                           "Receive FIFO Overflow Interrupt Pending")),
    (r.REG_TXIF, partial(_fifo_bitmask, "TXIF", "txif", "Transmit FIFO Interrupt Pending")),
    (r.REG_TXATIF, partial(_fifo_bitmask, "TXATIF", "txatif",
                           "Transmit FIFO Attempt Interrupt Pending")),
    (r.REG_TXREQ, partial(_fifo_bitmask, "TXREQ", "txreq", "Message Send Request")),
    (r.REG_TREC, partial(_plain, "TREC", "trec", _TREC)),
    (r.REG_BDIAG0, partial(_plain, "BDIAG0", "bdiag0", _BDIAG0)),
    (r.REG_BDIAG1, partial(_plain, "BDIAG1", "bdiag1", _BDIAG1)),
    (r.REG_OSC, partial(_plain, "OSC", "osc", _OSC)),
)

_TEF: tuple[tuple[int, _Renderer], ...] = (
    (r.REG_TEFCON, partial(_plain, "TEFCON", "tefcon", _TEFCON)),
    (r.REG_TEFSTA, partial(_plain, "TEFSTA", "tefsta", _TEFSTA)),
    (r.REG_TEFUA, partial(_plain, "TEFUA", "tefua", ())),
)


def _fifo_section(fifo: int) -> tuple[tuple[int, _Renderer], ...]:
    offset = r.FIFO_STRIDE * fifo
    return (
        (r.REG_FIFOCON_BASE + offset, partial(_plain, "FIFOCON", "fifocon", _FIFOCON)),
        (r.REG_FIFOSTA_BASE + offset, partial(_plain, "FIFOSTA", "fifosta", _FIFOSTA)),
        (r.REG_FIFOUA_BASE + offset, partial(_plain, "FIFOUA", "fifoua", ())),
    )


_SECTIONS: tuple[tuple[str, tuple[tuple[int, _Renderer], ...]], ...] = (
    ("", _MAIN),
    ("-------------------- TEF --------------------\n", _TEF),
    ("-------------------- TX_FIFO --------------------\n", _fifo_section(TX_FIFO)),
    (" -------------------- RX_FIFO --------------------\n", _fifo_section(RX_FIFO)),
)


def format_registers(mem: bytes | bytearray) -> str:
    """Render the register dump of a controller's register memory image."""
    needed = r.REG_OSC + _VALUE.size
    if len(mem) < needed:
        raise ValueError(f"register memory too small: {len(mem)} < {needed} bytes")

    out = [HEADER]
    for title, section in _SECTIONS:
        out.append(title)
        for addr, render in section:
            (val,) = _VALUE.unpack_from(mem, addr)
            out.append(render(val, addr))
            out.append("\n")
    out.append(FOOTER)
    return "".join(out)