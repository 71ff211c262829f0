from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Paths
    base_dir: Path = Path(__file__).resolve().parent.parent
    data_dir: Path = base_dir / "data"
    db_path: Path = data_dir / "local_cache.duckdb"

    # Server
    host: str = "127.0.0.1"
    port: int = 8765
    log_level: str = "INFO"

    # Remote store (PostgREST / Supabase)
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    applications_table: str = "applications"
    profiles_table: str = "user_profiles"
    remote_timeout: float = 10.0  # seconds per request

    # Local fallback store
    local_cache_key: str = "demoApplications"

    # Writing suggestions
    suggestion_mode: Literal["canned", "proxy"] = "canned"
    suggestion_url: str = ""

    # Explore
    search_match_threshold: int = 90  # rapidfuzz score 0-100
    leaderboard_size: int = 10

    model_config = {"env_prefix": "APPTRACK_"}

    @property
    def rest_url(self) -> str:
        return self.supabase_url.rstrip("/") + "/rest/v1"


settings = Settings()
