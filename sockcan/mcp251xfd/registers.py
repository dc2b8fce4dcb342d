"""Register layout of the MCP251xFD CAN FD controller and bit-field helpers."""

from __future__ import annotations

_BITS = 64


def bit(n: int) -> int:
    """Return the value with only bit n set."""
    if not 0 <= n < _BITS:
        raise ValueError(f"bit number out of range: {n}")
    return 1 << n


def genmask(high: int, low: int) -> int:
    """Return a mask with bits low..high (inclusive) set."""
    if not 0 <= low <= high < _BITS:
        raise ValueError(f"invalid mask range {high}..{low}")
    all_ones = (1 << _BITS) - 1
    return ((all_ones - (1 << low) + 1) & (all_ones >> (_BITS - 1 - high))) & all_ones


def field_get(mask: int, value: int) -> int:
    """Extract the field selected by mask from value, shifted down to bit 0."""
    if mask <= 0:
        raise ValueError(f"invalid field mask {mask:#x}")
    shift = (mask & -mask).bit_length() - 1
    return (value & mask) >> shift


# CAN FD controller module SFR
REG_CON = 0x00
REG_CON_TXBWS_MASK = genmask(31, 28)
REG_CON_ABAT = bit(27)
REG_CON_REQOP_MASK = genmask(26, 24)
REG_CON_MODE_MIXED = 0
REG_CON_MODE_SLEEP = 1
REG_CON_MODE_INT_LOOPBACK = 2
REG_CON_MODE_LISTENONLY = 3
REG_CON_MODE_CONFIG = 4
REG_CON_MODE_EXT_LOOPBACK = 5
REG_CON_MODE_CAN2_0 = 6
REG_CON_MODE_RESTRICTED = 7
REG_CON_OPMOD_MASK = genmask(23, 21)
REG_CON_TXQEN = bit(20)
REG_CON_STEF = bit(19)
REG_CON_SERR2LOM = bit(18)
REG_CON_ESIGM = bit(17)
REG_CON_RTXAT = bit(16)
REG_CON_BRSDIS = bit(12)
REG_CON_BUSY = bit(11)
REG_CON_WFT_MASK = genmask(10, 9)
REG_CON_WFT_T00FILTER = 0x0
REG_CON_WFT_T01FILTER = 0x1
REG_CON_WFT_T10FILTER = 0x2
REG_CON_WFT_T11FILTER = 0x3
REG_CON_WAKFIL = bit(8)
REG_CON_PXEDIS = bit(6)
REG_CON_ISOCRCEN = bit(5)
REG_CON_DNCNT_MASK = genmask(4, 0)

REG_NBTCFG = 0x04
REG_NBTCFG_BRP_MASK = genmask(31, 24)
REG_NBTCFG_TSEG1_MASK = genmask(23, 16)
REG_NBTCFG_TSEG2_MASK = genmask(14, 8)
REG_NBTCFG_SJW_MASK = genmask(6, 0)

REG_DBTCFG = 0x08
REG_DBTCFG_BRP_MASK = genmask(31, 24)
REG_DBTCFG_TSEG1_MASK = genmask(20, 16)
REG_DBTCFG_TSEG2_MASK = genmask(11, 8)
REG_DBTCFG_SJW_MASK = genmask(3, 0)

REG_TDC = 0x0C
REG_TDC_EDGFLTEN = bit(25)
REG_TDC_SID11EN = bit(24)
REG_TDC_TDCMOD_MASK = genmask(17, 16)
REG_TDC_TDCMOD_AUTO = 2
REG_TDC_TDCMOD_MANUAL = 1
REG_TDC_TDCMOD_DISABLED = 0
REG_TDC_TDCO_MASK = genmask(14, 8)
REG_TDC_TDCV_MASK = genmask(5, 0)

REG_TBC = 0x10

REG_TSCON = 0x14
REG_TSCON_TSRES = bit(18)
REG_TSCON_TSEOF = bit(17)
REG_TSCON_TBCEN = bit(16)
REG_TSCON_TBCPRE_MASK = genmask(9, 0)

REG_VEC = 0x18
REG_VEC_RXCODE_MASK = genmask(30, 24)
REG_VEC_TXCODE_MASK = genmask(22, 16)
REG_VEC_FILHIT_MASK = genmask(12, 8)
REG_VEC_ICODE_MASK = genmask(6, 0)

REG_INT = 0x1C
REG_INT_IF_MASK = genmask(15, 0)
REG_INT_IE_MASK = genmask(31, 16)
REG_INT_IVMIE = bit(31)
REG_INT_WAKIE = bit(30)
REG_INT_CERRIE = bit(29)
REG_INT_SERRIE = bit(28)
REG_INT_RXOVIE = bit(27)
REG_INT_TXATIE = bit(26)
REG_INT_SPICRCIE = bit(25)
REG_INT_ECCIE = bit(24)
REG_INT_TEFIE = bit(20)
REG_INT_MODIE = bit(19)
REG_INT_TBCIE = bit(18)
REG_INT_RXIE = bit(17)
REG_INT_TXIE = bit(16)
REG_INT_IVMIF = bit(15)
REG_INT_WAKIF = bit(14)
REG_INT_CERRIF = bit(13)
REG_INT_SERRIF = bit(12)
REG_INT_RXOVIF = bit(11)
REG_INT_TXATIF = bit(10)
REG_INT_SPICRCIF = bit(9)
REG_INT_ECCIF = bit(8)
REG_INT_TEFIF = bit(4)
REG_INT_MODIF = bit(3)
REG_INT_TBCIF = bit(2)
REG_INT_RXIF = bit(1)
REG_INT_TXIF = bit(0)
# these interrupt flags must be cleared by software
REG_INT_IF_CLEARABLE_MASK = (
    REG_INT_IVMIF | REG_INT_WAKIF | REG_INT_CERRIF | REG_INT_SERRIF | REG_INT_MODIF
)

REG_RXIF = 0x20
REG_TXIF = 0x24
REG_RXOVIF = 0x28
REG_TXATIF = 0x2C
REG_TXREQ = 0x30

REG_TREC = 0x34
REG_TREC_TXBO = bit(21)
REG_TREC_TXBP = bit(20)
REG_TREC_RXBP = bit(19)
REG_TREC_TXWARN = bit(18)
REG_TREC_RXWARN = bit(17)
REG_TREC_EWARN = bit(16)
REG_TREC_TEC_MASK = genmask(15, 8)
REG_TREC_REC_MASK = genmask(7, 0)

REG_BDIAG0 = 0x38
REG_BDIAG0_DTERRCNT_MASK = genmask(31, 24)
REG_BDIAG0_DRERRCNT_MASK = genmask(23, 16)
REG_BDIAG0_NTERRCNT_MASK = genmask(15, 8)
REG_BDIAG0_NRERRCNT_MASK = genmask(7, 0)

REG_BDIAG1 = 0x3C
REG_BDIAG1_DLCMM = bit(31)
REG_BDIAG1_ESI = bit(30)
REG_BDIAG1_DCRCERR = bit(29)
REG_BDIAG1_DSTUFERR = bit(28)
REG_BDIAG1_DFORMERR = bit(27)
REG_BDIAG1_DBIT1ERR = bit(25)
REG_BDIAG1_DBIT0ERR = bit(24)
REG_BDIAG1_TXBOERR = bit(23)
REG_BDIAG1_NCRCERR = bit(21)
REG_BDIAG1_NSTUFERR = bit(20)
REG_BDIAG1_NFORMERR = bit(19)
REG_BDIAG1_NACKERR = bit(18)
REG_BDIAG1_NBIT1ERR = bit(17)
REG_BDIAG1_NBIT0ERR = bit(16)
REG_BDIAG1_BERR_MASK = (
    REG_BDIAG1_DLCMM | REG_BDIAG1_ESI | REG_BDIAG1_DCRCERR | REG_BDIAG1_DSTUFERR
    | REG_BDIAG1_DFORMERR | REG_BDIAG1_DBIT1ERR | REG_BDIAG1_DBIT0ERR
    | REG_BDIAG1_TXBOERR | REG_BDIAG1_NCRCERR | REG_BDIAG1_NSTUFERR
    | REG_BDIAG1_NFORMERR | REG_BDIAG1_NACKERR | REG_BDIAG1_NBIT1ERR
    | REG_BDIAG1_NBIT0ERR
)
REG_BDIAG1_EFMSGCNT_MASK = genmask(15, 0)

REG_TEFCON = 0x40
REG_TEFCON_FSIZE_MASK = genmask(28, 24)
REG_TEFCON_FRESET = bit(10)
REG_TEFCON_UINC = bit(8)
REG_TEFCON_TEFTSEN = bit(5)
REG_TEFCON_TEFOVIE = bit(3)
REG_TEFCON_TEFFIE = bit(2)
REG_TEFCON_TEFHIE = bit(1)
REG_TEFCON_TEFNEIE = bit(0)

REG_TEFSTA = 0x44
REG_TEFSTA_TEFOVIF = bit(3)
REG_TEFSTA_TEFFIF = bit(2)
REG_TEFSTA_TEFHIF = bit(1)
REG_TEFSTA_TEFNEIF = bit(0)

REG_TEFUA = 0x48

REG_TXQCON = 0x50
REG_TXQCON_PLSIZE_MASK = genmask(31, 29)
REG_TXQCON_PLSIZE_8 = 0
REG_TXQCON_PLSIZE_12 = 1
REG_TXQCON_PLSIZE_16 = 2
REG_TXQCON_PLSIZE_20 = 3
REG_TXQCON_PLSIZE_24 = 4
REG_TXQCON_PLSIZE_32 = 5
REG_TXQCON_PLSIZE_48 = 6
REG_TXQCON_PLSIZE_64 = 7
REG_TXQCON_FSIZE_MASK = genmask(28, 24)
REG_TXQCON_TXAT_UNLIMITED = 3
REG_TXQCON_TXAT_THREE_SHOT = 1
REG_TXQCON_TXAT_ONE_SHOT = 0
REG_TXQCON_TXAT_MASK = genmask(22, 21)
REG_TXQCON_TXPRI_MASK = genmask(20, 16)
REG_TXQCON_FRESET = bit(10)
REG_TXQCON_TXREQ = bit(9)
REG_TXQCON_UINC = bit(8)
REG_TXQCON_TXEN = bit(7)
REG_TXQCON_TXATIE = bit(4)
REG_TXQCON_TXQEIE = bit(2)
REG_TXQCON_TXQNIE = bit(0)

REG_TXQSTA = 0x54
REG_TXQSTA_TXQCI_MASK = genmask(12, 8)
REG_TXQSTA_TXABT = bit(7)
REG_TXQSTA_TXLARB = bit(6)
REG_TXQSTA_TXERR = bit(5)
REG_TXQSTA_TXATIF = bit(4)
REG_TXQSTA_TXQEIF = bit(2)
REG_TXQSTA_TXQNIF = bit(0)

REG_TXQUA = 0x58

# FIFO x registers live at base + FIFO_STRIDE * x
FIFO_STRIDE = 0x0C

REG_FIFOCON_BASE = 0x50
REG_FIFOCON_PLSIZE_MASK = genmask(31, 29)
REG_FIFOCON_PLSIZE_8 = 0
REG_FIFOCON_PLSIZE_12 = 1
REG_FIFOCON_PLSIZE_16 = 2
REG_FIFOCON_PLSIZE_20 = 3
REG_FIFOCON_PLSIZE_24 = 4
REG_FIFOCON_PLSIZE_32 = 5
REG_FIFOCON_PLSIZE_48 = 6
REG_FIFOCON_PLSIZE_64 = 7
REG_FIFOCON_FSIZE_MASK = genmask(28, 24)
REG_FIFOCON_TXAT_MASK = genmask(22, 21)
REG_FIFOCON_TXAT_ONE_SHOT = 0
REG_FIFOCON_TXAT_THREE_SHOT = 1
REG_FIFOCON_TXAT_UNLIMITED = 3
REG_FIFOCON_TXPRI_MASK = genmask(20, 16)
REG_FIFOCON_FRESET = bit(10)
REG_FIFOCON_TXREQ = bit(9)
REG_FIFOCON_UINC = bit(8)
REG_FIFOCON_TXEN = bit(7)
REG_FIFOCON_RTREN = bit(6)
REG_FIFOCON_RXTSEN = bit(5)
REG_FIFOCON_TXATIE = bit(4)
REG_FIFOCON_RXOVIE = bit(3)
REG_FIFOCON_TFERFFIE = bit(2)
REG_FIFOCON_TFHRFHIE = bit(1)
REG_FIFOCON_TFNRFNIE = bit(0)

REG_FIFOSTA_BASE = 0x54
REG_FIFOSTA_FIFOCI_MASK = genmask(12, 8)
REG_FIFOSTA_TXABT = bit(7)
REG_FIFOSTA_TXLARB = bit(6)
REG_FIFOSTA_TXERR = bit(5)
REG_FIFOSTA_TXATIF = bit(4)
REG_FIFOSTA_RXOVIF = bit(3)
REG_FIFOSTA_TFERFFIF = bit(2)
REG_FIFOSTA_TFHRFHIF = bit(1)
REG_FIFOSTA_TFNRFNIF = bit(0)

REG_FIFOUA_BASE = 0x58

# filter x control: base + 4 * x
REG_FLTCON_BASE = 0x1D0
REG_FLTCON_FLTEN3 = bit(31)
REG_FLTCON_F3BP_MASK = genmask(28, 24)
REG_FLTCON_FLTEN2 = bit(23)
REG_FLTCON_F2BP_MASK = genmask(20, 16)
REG_FLTCON_FLTEN1 = bit(15)
REG_FLTCON_F1BP_MASK = genmask(12, 8)
REG_FLTCON_FLTEN0 = bit(7)
REG_FLTCON_F0BP_MASK = genmask(4, 0)

# filter x object / mask: base + 8 * x
REG_FLTOBJ_BASE = 0x1F0
REG_FLTOBJ_EXIDE = bit(30)
REG_FLTOBJ_SID11 = bit(29)
REG_FLTOBJ_EID_MASK = genmask(28, 11)
REG_FLTOBJ_SID_MASK = genmask(10, 0)

REG_FLTMASK_BASE = 0x1F4
REG_MASK_MIDE = bit(30)
REG_MASK_MSID11 = bit(29)
REG_MASK_MEID_MASK = genmask(28, 11)
REG_MASK_MSID_MASK = genmask(10, 0)

# RAM
RAM_START = 0x400
RAM_SIZE = 0x800

# message object
OBJ_ID_SID11 = bit(29)
OBJ_ID_EID_MASK = genmask(28, 11)
OBJ_ID_SID_MASK = genmask(10, 0)
OBJ_FLAGS_SEQ_MCP2518FD_MASK = genmask(31, 9)
OBJ_FLAGS_SEQ_MCP2517FD_MASK = genmask(15, 9)
OBJ_FLAGS_SEQ_MASK = OBJ_FLAGS_SEQ_MCP2518FD_MASK
OBJ_FLAGS_ESI = bit(8)
OBJ_FLAGS_FDF = bit(7)
OBJ_FLAGS_BRS = bit(6)
OBJ_FLAGS_RTR = bit(5)
OBJ_FLAGS_IDE = bit(4)
OBJ_FLAGS_DLC = genmask(3, 0)

REG_FRAME_EFF_SID_MASK = genmask(28, 18)
REG_FRAME_EFF_EID_MASK = genmask(17, 0)

# MCP2517/18FD SFR
REG_OSC = 0xE00
REG_OSC_SCLKRDY = bit(12)
REG_OSC_OSCRDY = bit(10)
REG_OSC_PLLRDY = bit(8)
REG_OSC_CLKODIV_10 = 3
REG_OSC_CLKODIV_4 = 2
REG_OSC_CLKODIV_2 = 1
REG_OSC_CLKODIV_1 = 0
REG_OSC_CLKODIV_MASK = genmask(6, 5)
REG_OSC_SCLKDIV = bit(4)
REG_OSC_LPMEN = bit(3)  # MCP2518FD only
REG_OSC_OSCDIS = bit(2)
REG_OSC_PLLEN = bit(0)

REG_IOCON = 0xE04
REG_IOCON_INTOD = bit(30)
REG_IOCON_SOF = bit(29)
REG_IOCON_TXCANOD = bit(28)
REG_IOCON_PM1 = bit(25)
REG_IOCON_PM0 = bit(24)
REG_IOCON_GPIO1 = bit(17)
REG_IOCON_GPIO0 = bit(16)
REG_IOCON_LAT1 = bit(9)
REG_IOCON_LAT0 = bit(8)
REG_IOCON_XSTBYEN = bit(6)
REG_IOCON_TRIS1 = bit(1)
REG_IOCON_TRIS0 = bit(0)

REG_CRC = 0xE08
REG_CRC_FERRIE = bit(25)
REG_CRC_CRCERRIE = bit(24)
REG_CRC_FERRIF = bit(17)
REG_CRC_CRCERRIF = bit(16)
REG_CRC_IF_MASK = genmask(17, 16)
REG_CRC_MASK = genmask(15, 0)

REG_ECCCON = 0xE0C
REG_ECCCON_PARITY_MASK = genmask(14, 8)
REG_ECCCON_DEDIE = bit(2)
REG_ECCCON_SECIE = bit(1)
REG_ECCCON_ECCEN = bit(0)

REG_ECCSTAT = 0xE10
REG_ECCSTAT_ERRADDR_MASK = genmask(27, 16)
REG_ECCSTAT_IF_MASK = genmask(2, 1)
REG_ECCSTAT_DEDIF = bit(2)
REG_ECCSTAT_SECIF = bit(1)

REG_DEVID = 0xE14  # MCP2518FD only
REG_DEVID_ID_MASK = genmask(7, 4)
REG_DEVID_REV_MASK = genmask(3, 0)

# sizes in bytes of the objects in controller RAM
HW_TEF_OBJ_SIZE = 12
HW_TX_OBJ_CAN_SIZE = 8 + 8
HW_TX_OBJ_CANFD_SIZE = 8 + 64
HW_RX_OBJ_CAN_SIZE = 12 + 8
HW_RX_OBJ_CANFD_SIZE = 12 + 64