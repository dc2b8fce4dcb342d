"""CAN frame helpers, an slcan protocol parser and MCP251xFD dump decoding."""

__version__ = "0.1.0"