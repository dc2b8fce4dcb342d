"""Classical CAN frames, filters and the raw-socket constants that go with them."""

from __future__ import annotations

import struct
from dataclasses import dataclass

# special address description flags for the CAN identifier
CAN_EFF_FLAG = 0x80000000
CAN_RTR_FLAG = 0x40000000
CAN_ERR_FLAG = 0x20000000

# valid bits in the CAN identifier for the frame formats
CAN_SFF_MASK = 0x000007FF
CAN_EFF_MASK = 0x1FFFFFFF
CAN_ERR_MASK = 0x1FFFFFFF

CAN_SFF_ID_BITS = 11
CAN_EFF_ID_BITS = 29

# payload length and DLC limits (ISO 11898-1 / ISO 11898-7)
CAN_MAX_DLC = 8
CAN_MAX_RAW_DLC = 15
CAN_MAX_DLEN = 8
CANFD_MAX_DLC = 15
CANFD_MAX_DLEN = 64

CANFD_BRS = 0x01
CANFD_ESI = 0x02

CAN_MTU = 16
CANFD_MTU = 72

# protocols of the CAN protocol family
CAN_RAW = 1
CAN_BCM = 2
CAN_TP16 = 3
CAN_TP20 = 4
CAN_MCNET = 5
CAN_ISOTP = 6
CAN_J1939 = 7
CAN_NPROTO = 8

SOL_CAN_BASE = 100
SOL_CAN_RAW = SOL_CAN_BASE + CAN_RAW

SCM_CAN_RAW_ERRQUEUE = 1

# raw socket options
CAN_RAW_FILTER = 1
CAN_RAW_ERR_FILTER = 2
CAN_RAW_LOOPBACK = 3
CAN_RAW_RECV_OWN_MSGS = 4
CAN_RAW_FD_FRAMES = 5
CAN_RAW_JOIN_FILTERS = 6

CAN_INV_FILTER = 0x20000000
CAN_RAW_FILTER_MAX = 512

_DLC2LEN = (0, 1, 2, 3, 4, 5, 6, 7, 8, 12, 16, 20, 24, 32, 48, 64)

_FRAME_STRUCT = struct.Struct("=IBBBB8s")
_FILTER_STRUCT = struct.Struct("=II")
_U32_MAX = 0xFFFFFFFF


def dlc_to_len(dlc: int) -> int:
    """Return the payload length for a (CAN FD) data length code."""
    return _DLC2LEN[dlc & 0x0F]


@dataclass(frozen=True)
class CanFrame:
    """A classical CAN frame: identifier with flags and up to 8 data bytes."""

    can_id: int
    data: bytes = b""
    len8_dlc: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        if not 0 <= self.can_id <= _U32_MAX:
            raise ValueError(f"CAN id out of range: {self.can_id:#x}")
        if len(self.data) > CAN_MAX_DLEN:
            raise ValueError(f"CAN payload too long: {len(self.data)} bytes")
        if not 0 <= self.len8_dlc <= CAN_MAX_RAW_DLC:
            raise ValueError(f"len8_dlc out of range: {self.len8_dlc}")

    @property
    def dlc(self) -> int:
        return len(self.data)

    @property
    def is_extended(self) -> bool:
        return bool(self.can_id & CAN_EFF_FLAG)

    @property
    def is_remote(self) -> bool:
        return bool(self.can_id & CAN_RTR_FLAG)

    @property
    def is_error(self) -> bool:
        return bool(self.can_id & CAN_ERR_FLAG)

    @property
    def arbitration_id(self) -> int:
        """The identifier without flag bits."""
        mask = CAN_EFF_MASK if self.is_extended else CAN_SFF_MASK
        return self.can_id & mask

    def pack(self) -> bytes:
        """Serialise into the 16-byte kernel layout."""
        return _FRAME_STRUCT.pack(
            self.can_id, len(self.data), 0, 0, self.len8_dlc, self.data
        )

    @classmethod
    def unpack(cls, data: bytes) -> CanFrame:
        """Build a frame from the 16-byte kernel layout."""
        if len(data) != CAN_MTU:
            raise ValueError(f"expected {CAN_MTU} bytes, got {len(data)}")
        can_id, length, _pad, _res0, len8_dlc, payload = _FRAME_STRUCT.unpack(data)
        if length > CAN_MAX_DLEN:
            raise ValueError(f"invalid CAN frame length {length}")
        return cls(can_id, payload[:length], len8_dlc)


@dataclass(frozen=True)
class CanFilter:
    """A raw socket receive filter: matches when id & mask == can_id & mask."""

    can_id: int = 0
    can_mask: int = 0

    def __post_init__(self) -> None:
        for value in (self.can_id, self.can_mask):
            if not 0 <= value <= _U32_MAX:
                raise ValueError(f"filter value out of range: {value:#x}")

    def pack(self) -> bytes:
        """Serialise into the 8-byte kernel layout."""
        return _FILTER_STRUCT.pack(self.can_id, self.can_mask)