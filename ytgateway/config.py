"""
Environment-driven configuration
"""

import os
from typing import List, Optional

DEFAULT_RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Service settings, read once from the environment"""

    def __init__(self):
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = _env_int("PORT", 3000)
        # NODE_ENV is honoured for deployments carried over from the Express server
        self.environment: str = (os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development").lower()
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.allowed_origins: List[str] = [
            o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
        ]
        self.static_dir: str = os.getenv("STATIC_DIR", "public")

        self.info_timeout_seconds: int = _env_int("INFO_TIMEOUT_SECONDS", 10)

        self.rate_limit_window_seconds: int = _env_int("RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
        self.rate_limit_max: int = _env_int("RATE_LIMIT_MAX", 100)
        self.rate_limit_message: str = os.getenv("RATE_LIMIT_MESSAGE", DEFAULT_RATE_LIMIT_MESSAGE)

        self.proxy: Optional[str] = os.getenv("YTDLP_PROXY") or None
        self.cookies_b64: str = os.getenv("YTDLP_COOKIES_B64", "").strip()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
