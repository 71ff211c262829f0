"""Local fallback store: a key -> JSON string map kept in DuckDB."""

from __future__ import annotations

import json
import logging
from typing import Any

import duckdb

from apptrack.errors import MalformedLocalCacheError

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, con: duckdb.DuckDBPyConnection) -> None:
        self._con = con

    def get(self, key: str) -> str | None:
        row = self._con.execute("SELECT value FROM local_cache WHERE key = ?", [key]).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._con.execute("INSERT OR REPLACE INTO local_cache VALUES (?, ?)", [key, value])

    def remove(self, key: str) -> None:
        self._con.execute("DELETE FROM local_cache WHERE key = ?", [key])

    def read_array(self, key: str) -> list[dict[str, Any]]:
        """Read the whole JSON array stored under ``key`` (empty if absent)."""
        raw = self.get(key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedLocalCacheError(key) from e
        if not isinstance(data, list):
            raise MalformedLocalCacheError(key)
        return [item for item in data if isinstance(item, dict)]

    def write_array(self, key: str, items: list[dict[str, Any]]) -> None:
        """Replace the whole array stored under ``key``."""
        self.set(key, json.dumps(items))
