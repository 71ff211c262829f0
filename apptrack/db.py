"""DuckDB setup for the local fallback cache."""
from __future__ import annotations

import logging

import duckdb

from apptrack.config import settings

logger = logging.getLogger(__name__)

_con: duckdb.DuckDBPyConnection | None = None


def get_connection() -> duckdb.DuckDBPyConnection:
    global _con
    if _con is None:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        _con = duckdb.connect(str(settings.db_path))
        initialize_tables(_con)
        logger.info("DuckDB connected at %s", settings.db_path)
    return _con


def initialize_tables(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("""
        CREATE TABLE IF NOT EXISTS local_cache (
            key VARCHAR PRIMARY KEY,
            value VARCHAR
        )
    """)


def close() -> None:
    global _con
    if _con:
        _con.close()
        _con = None
