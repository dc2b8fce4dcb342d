"""Decoding of MCP251xFD CAN controller coredumps, regmap files and register and RAM images."""