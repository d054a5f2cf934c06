"""Database models."""
from .website import Website
from .uptime_log import UptimeLog

__all__ = ["Website", "UptimeLog"]
