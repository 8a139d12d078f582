from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SOUNDBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # app
    log_level: str = "INFO"
    app_env: str = "dev"

    # client
    server_url: str = "http://127.0.0.1:14181"
    request_timeout_s: float = 5.0
    stream_reconnect_delay_s: float = 1.0

    # off by default: the server is the only source of truth and a stuck
    # Pending / missed event is left as-is unless explicitly enabled
    resync_on_reconnect: bool = False
    pending_timeout_s: Optional[float] = None

    # server library (one directory per collection)
    fx: List[str] = []
    drops: List[str] = []
    battle_music: List[str] = []
    ambience: List[str] = []
    bgm: List[str] = []

    # server push stream
    keepalive_s: float = 15.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
