"""JSONL event logger.

Each output record (a hotspot record or a crowd summary) is appended as one
JSON object per line to ``<log_dir>/events.jsonl``. The file can be tailed
by downstream consumers or loaded later for offline statistics.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional


class EventLogger:
    """Append output records to a JSONL file."""

    def __init__(self, log_dir: Optional[str | Path] = None, filename: str = "events.jsonl") -> None:
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / filename
        self._lock = threading.Lock()

    def log(self, event: Dict[str, Any], camera_id: Optional[str] = None) -> None:
        """Append ``event`` to the log, tagged with ``camera_id`` if given."""
        record = dict(event)
        if camera_id is not None:
            record.setdefault("camera_id", camera_id)
        line = json.dumps(record) + "\n"
        with self._lock:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(line)
