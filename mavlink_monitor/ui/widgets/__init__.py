"""Dashboard widgets for the MAVLink monitor TUI."""

from .message_table import MessageTable

__all__ = ["MessageTable"]
