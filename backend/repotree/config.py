import logging
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load env from a root .env if present
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_log_level(name: str, default: str = "INFO") -> str:
    level = os.getenv(name, "").strip().upper()
    # getLevelName maps known names to their number, anything else to a string
    if level and isinstance(logging.getLevelName(level), int):
        return level
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Settings(BaseModel):
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 30.0
    user_agent: str = "repotree-dashboard"
    tree_cache_ttl: float = 60.0
    tree_cache_max_entries: int = 256
    tree_max_branches: int = 5
    tree_fetch_workers: int = 5
    allow_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        # FRONTEND_ORIGIN supports a comma-separated list; wildcard otherwise.
        origins_env = os.getenv("FRONTEND_ORIGIN", "").strip()
        if origins_env:
            allow_origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        else:
            allow_origins = ["*"]
        return cls(
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
            github_timeout=_env_float("GITHUB_TIMEOUT", 30.0),
            tree_cache_ttl=_env_float("TREE_CACHE_TTL", 60.0),
            tree_cache_max_entries=_env_int("TREE_CACHE_MAX_ENTRIES", 256),
            tree_max_branches=_env_int("TREE_MAX_BRANCHES", 5),
            tree_fetch_workers=_env_int("TREE_FETCH_WORKERS", 5),
            allow_origins=allow_origins,
            log_level=_env_log_level("LOG_LEVEL"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
