"""SQLite event logger.

This logger persists output records in a SQLite database. It complements
the JSONL logger by enabling structured queries on historical hotspots and
crowd summaries. When initialized, it creates a table if it doesn't exist.

Usage
-----
```
from storage.database_logger import DatabaseEventLogger
logger = DatabaseEventLogger(db_path="events.db")
logger.log({"hotspot_id": "hotspot_12_40", "vehicle_count": 2}, camera_id="north-gate")
```
"""

from __future__ import annotations

import datetime
import json
import sqlite3
import threading
from typing import Any, Dict, List, Optional


def _event_type(event: Dict[str, Any]) -> str:
    if "hotspot_id" in event:
        return "hotspot"
    if "status" in event and "clusters" in event:
        return "crowd_summary"
    return str(event.get("type", "event"))


class DatabaseEventLogger:
    """Persist output records to a SQLite database."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.Lock()
        self._create_table()

    def _create_table(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                type TEXT,
                cluster_id TEXT,
                camera_id TEXT,
                data TEXT
            )
            """
        )
        self.conn.commit()

    def log(self, event: Dict[str, Any], camera_id: Optional[str] = None) -> None:
        timestamp = event.get("timestamp") or datetime.datetime.now(datetime.timezone.utc).isoformat()
        cluster_id = event.get("hotspot_id", event.get("crowd_id"))
        with self._lock:
            cur = self.conn.cursor()
            cur.execute(
                "INSERT INTO events (timestamp, type, cluster_id, camera_id, data) VALUES (?, ?, ?, ?, ?)",
                (timestamp, _event_type(event), cluster_id, camera_id, json.dumps(event)),
            )
            self.conn.commit()

    def fetch(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return stored records, oldest first, optionally filtered by type."""
        query = "SELECT data FROM events"
        params: tuple = ()
        if event_type is not None:
            query += " WHERE type = ?"
            params = (event_type,)
        query += " ORDER BY id"
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [json.loads(row[0]) for row in rows]

    def close(self) -> None:
        self.conn.close()
