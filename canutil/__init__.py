"""CAN bus utilities: ASC formatting, J1939 addressing, SLCAN tools and MCP251xFD decoding."""

__version__ = "0.1.0"