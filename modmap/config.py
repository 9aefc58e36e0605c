"""Runtime settings, read from MODMAP_* environment variables or a .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MODMAP_", env_file=".env", extra="ignore")

    # Registry
    registry_url: str = "https://registry.npmjs.org"
    request_timeout: float = 10.0
    cache_ttl: float = 300.0
    max_concurrency: int = 6

    # Staleness pass
    batch_size: int = 10
    batch_delay: float = 0.1

    # Default scan options
    max_depth: int = 3
    include_dev_dependencies: bool = True
    include_peer_dependencies: bool = True
    include_optional_dependencies: bool = True
    enable_version_checking: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # console, json


@lru_cache
def get_settings() -> Settings:
    return Settings()
