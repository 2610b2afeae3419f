"""Storage package.

This package provides sinks for the records produced by the clustering
engine. The default implementation appends JSON lines to a file; a SQLite
backend is available for structured queries.
"""

from .event_logger import EventLogger
from .database_logger import DatabaseEventLogger

__all__ = ["EventLogger", "DatabaseEventLogger"]
