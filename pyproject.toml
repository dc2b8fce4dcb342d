[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sockcan"
version = "0.1.0"
description = "CAN frame helpers, an slcan protocol parser and an MCP251xFD register and RAM dump decoder"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "socketcan", "slcan", "lawicel", "mcp2517fd", "mcp2518fd", "mcp251xfd", "coredump"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mcp251xfd-dump = "sockcan.mcp251xfd.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sockcan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
