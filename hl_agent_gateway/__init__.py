"""Agent-signed order gateway for Hyperliquid."""

__version__ = "0.1.0"
