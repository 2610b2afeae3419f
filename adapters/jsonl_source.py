"""JSONL frame source.

This adapter reads per-frame detection records from a file containing one
JSON object per line, as produced by recording a message-queue topic. It is
useful for development and replay when no live publisher is available.
Lines are returned undecoded so the engine can report malformed ones. The
path ``-`` reads from standard input.
"""

from __future__ import annotations

import sys
from typing import IO, Iterator, Optional


class JsonlFrameSource:
    """Adapter for recorded frame streams."""

    def __init__(self, filepath: str) -> None:
        self.filepath = filepath
        self.handle: Optional[IO[str]] = None

    def open(self) -> None:
        """Open the recording for reading."""
        if self.handle is not None:
            return
        if self.filepath == "-":
            self.handle = sys.stdin
            return
        try:
            self.handle = open(self.filepath, "r", encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(f"Failed to open frame source: {self.filepath}") from exc

    def read(self) -> Iterator[str]:
        """Yield non-blank lines from the recording."""
        if self.handle is None:
            raise RuntimeError("JsonlFrameSource: source not opened. Call open() first.")
        for line in self.handle:
            line = line.strip()
            if line:
                yield line

    def release(self) -> None:
        """Close the recording."""
        if self.handle is not None and self.handle is not sys.stdin:
            self.handle.close()
        self.handle = None

    def __enter__(self) -> "JsonlFrameSource":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
