"""Notification views."""
from .console import ConsoleView, format_status, format_view

__all__ = ["ConsoleView", "format_status", "format_view"]
