"""Frame source adapters.

This package contains modules that provide a uniform interface for receiving
per-frame detection records from different sources. Each adapter exposes
`open`, `read` and `release` methods.
"""

from .jsonl_source import JsonlFrameSource

__all__ = ["JsonlFrameSource"]
