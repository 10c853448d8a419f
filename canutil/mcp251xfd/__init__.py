"""Reading and decoding of MCP2517FD/MCP2518FD chip and driver state."""

__version__ = "0.1.0"