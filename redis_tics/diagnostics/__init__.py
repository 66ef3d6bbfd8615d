"""Diagnostics built on the connection registry."""

from .dispatcher import CommandDispatcher
from .monitor import MonitorManager, MonitorStream

__all__ = ["CommandDispatcher", "MonitorManager", "MonitorStream"]
