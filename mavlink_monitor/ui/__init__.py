"""Terminal UI components for the MAVLink monitor."""

from .dashboard import MonitorDashboard
from .widgets.message_table import MessageTable

__all__ = ["MonitorDashboard", "MessageTable"]
