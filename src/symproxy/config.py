"""Service configuration using pydantic-settings."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_UPSTREAM_URL = "https://msdl.microsoft.com/download/symbols"


class Settings(BaseSettings):
    """Symbol proxy configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, env_prefix="SYMPROXY_", extra="ignore"
    )

    # Storage
    CACHE_DIR: Path = Path("./symbols")

    # Upstream symbol server
    UPSTREAM_URL: str = DEFAULT_UPSTREAM_URL
    UPSTREAM_TIMEOUT: float = 30.0  # Seconds without progress before a fetch is aborted
    UPSTREAM_DEADLINE: Optional[float] = None  # Overall cap on one fetch, disabled by default
    CHUNK_SIZE: int = 64 * 1024
    USER_AGENT: str = "Microsoft-Symbol-Server/10.0.0.0"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"


settings = Settings()
