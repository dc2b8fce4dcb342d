# sockcan

Pure Python helpers for Controller Area Network work:

- `sockcan.frames`: classical CAN frames and raw-socket filters in the
  kernel's binary layout, with the usual identifier flags and masks.
- `sockcan.slcan`: a parser for the slcan ASCII protocol spoken by
  serial-line CAN adapters, and an encoder from frames to slcan messages.
- `sockcan.mcp251xfd`: a decoder for register and RAM dumps of Microchip
  MCP2517FD/MCP2518FD (MCP251xFD) CAN FD controllers, with the
  `mcp251xfd-dump` command.

No third-party libraries are needed.

## Install

```
pip install .
```

## CAN frames

```python
from sockcan.frames import CanFrame, CanFilter, CAN_EFF_FLAG, dlc_to_len

frame = CanFrame(0x123, b"\x11\x22")
raw = frame.pack()                 # 16 bytes, struct can_frame layout
assert CanFrame.unpack(raw) == frame

ext = CanFrame(CAN_EFF_FLAG | 0x1ABCDE, b"\x01")
print(ext.is_extended, hex(ext.arbitration_id))

CanFilter(can_id=0x100, can_mask=0x700).pack()   # 8 bytes
dlc_to_len(13)                                   # 32
```

`CanFrame` checks that the identifier fits in 32 bits and that the payload
is at most 8 bytes; `unpack` raises `ValueError` for input that is not 16
bytes or carries a length above 8.

## slcan protocol

`SlcanSession.feed()` takes bytes as they arrive from an slcan
application and returns a list of `SlcanEvent`s in order. Each event has a
`kind` (`EventKind.OPEN`, `CLOSE`, `FRAME` or `REPLY`); frame events carry
the parsed `CanFrame`, reply events the bytes to send back (`\r` for an
acknowledgement, `\a` for a refusal, or an answer such as `V1013\r`).
Incomplete messages are kept until their terminating `\r` arrives; the
session also tracks whether the channel is open and whether timestamps
were requested with `Z`.

```python
from sockcan.slcan import SlcanSession, EventKind, encode_frame

session = SlcanSession()
for event in session.feed(b"t12321122\r"):
    if event.kind is EventKind.FRAME:
        print(event.frame)
    elif event.kind is EventKind.REPLY:
        print(event.reply)

print(encode_frame(frame))          # b't12321122\r'
print(encode_frame(frame, 0x1234))  # with a millisecond timestamp
```

`asc2nibble()` returns the value of a hex digit, or 16 for anything else.

## MCP251xFD dumps

### mcp251xfd-dump

```
mcp251xfd-dump /var/log/devcoredump-19700101-234200.dump
mcp251xfd-dump /sys/kernel/debug/regmap/spi1.0-crc/registers
mcp251xfd-dump spi0.0
```

The argument is tried first as a device coredump written by the driver,
then as a regmap `registers` file. A bare name without `/`, such as
`spi0.0`, is also looked up as `/sys/kernel/debug/regmap/<name>/registers`
and `/sys/kernel/debug/regmap/<name>-crc/registers`. The decoded register
set and the TEF, TX and RX objects in controller RAM are printed to
standard output. `-h` / `--help` prints the usage. It exits with status 1
if the file cannot be read.

### Library use

```python
from sockcan.mcp251xfd.cli import load
from sockcan.mcp251xfd.regdump import format_registers
from sockcan.mcp251xfd.ramdump import format_ram

chip, mem = load("spi0.0")
print(format_registers(mem))
print(format_ram(chip, mem))
```

The pieces can be used on their own:

- `sockcan.mcp251xfd.coredump`: `parse_coredump()` / `read_coredump()`
  fill a `Chip` (its `tef`, `tx` and `rx` `Ring`s) and a register memory
  image; malformed dumps raise `CoredumpError`.
- `sockcan.mcp251xfd.regmap`: `parse_regmap()`, `regmap_candidates()` and
  `read_regmap()` for `reg: value` text files.
- `sockcan.mcp251xfd.registers`: register addresses and bit fields, with
  `bit()`, `genmask()` and `field_get()`.
- `sockcan.mcp251xfd.ramdump.format_data()` renders one object's payload
  for a given DLC.

## What this package does not do

It does not open serial ports or CAN sockets. There is no command to
attach the slcan line discipline to a tty, no daemon that keeps an slcan
interface up, and no bridge between a pseudo-terminal and a CAN
interface: `SlcanSession` only turns bytes into events, and the caller
has to do the reading, writing and socket handling. The MCP251xFD decoder
works on dump files only and never talks to a controller.

## Tests

```
pip install .[test]
pytest
```