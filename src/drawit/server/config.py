from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_WORDS = [
    "apple",
    "bridge",
    "camera",
    "dragon",
    "mountain",
    "rocket",
    "pizza",
    "guitar",
    "island",
    "forest",
    "castle",
    "helmet",
    "turtle",
    "coffee",
    "flower",
]


class Settings(BaseSettings):
    """
    Runtime config.

    - Loaded from environment variables (prefix `DRAWIT_`)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    - `DRAWIT_WORDS` takes a JSON list
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DRAWIT_", extra="ignore")

    # Lobby
    max_players: int = Field(default=10, ge=2)
    min_players: int = Field(default=2, ge=2)
    words: list[str] = Field(default_factory=lambda: list(DEFAULT_WORDS), min_length=1)

    # Push channels
    # Pings keep intermediary proxies from timing out the stream; 0 disables.
    keepalive_interval_s: float = Field(default=25.0, ge=0.0)
    # Frames buffered per slow client before the channel is considered dead.
    channel_max_pending: int = Field(default=512, ge=1)

    # HTTP
    host: str = "127.0.0.1"
    port: int = 3000
    max_body_bytes: int = 1_000_000

    # Debugging
    debug_log_msgs: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
