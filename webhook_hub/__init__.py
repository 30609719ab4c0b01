"""MCP server that relays messages to webhooks and tracks their outcome."""

__version__ = "0.4.0"
