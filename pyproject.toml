[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canutil"
version = "0.1.0"
description = "CAN bus utilities: ASC log formatting, SAE J1939 addressing, SLCAN tools and an MCP251xFD state decoder"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "can",
    "can-bus",
    "can-fd",
    "socketcan",
    "j1939",
    "slcan",
    "mcp2517fd",
    "mcp2518fd",
    "mcp251xfd",
    "asc",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mcp251xfd-dump = "canutil.mcp251xfd.dumptool:main"
testj1939 = "canutil.testj1939:main"
slcan_attach = "canutil.slcan_attach:main"
slcand = "canutil.slcand:main"
slcanpty = "canutil.slcanpty:main"

[tool.hatch.build.targets.wheel]
packages = ["canutil"]

[tool.hatch.build.targets.sdist]
include = ["canutil", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
