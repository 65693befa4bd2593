"""Application configuration using Pydantic settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(
        "0.0.0.0", alias="HOST",
        description="Host address to bind the aiohttp server to.",
    )
    port: int = Field(
        3011, alias="PORT",
        description="Port number for the aiohttp server.",
    )
    public_root_url: str = Field(
        "http://localhost:3011/", alias="PUBLIC_ROOT_URL",
        description="Externally visible root URL, used to build ACL locations in search results.",
    )

    # Concept store (metadata-db)
    metadata_db_url: str = Field(
        "", alias="METADATA_DB_URL",
        description="Base URL of the metadata-db concept store. Empty = in-memory store.",
    )
    metadata_db_timeout: float = Field(
        30.0, alias="METADATA_DB_TIMEOUT",
        description="HTTP request timeout in seconds for metadata-db calls.",
    )
    system_provider_id: str = Field(
        "CMR", alias="SYSTEM_PROVIDER_ID",
        description="Provider id under which system-level groups and ACLs are stored.",
    )

    # Token service
    token_service_url: str = Field(
        "", alias="TOKEN_SERVICE_URL",
        description="Base URL of the token service resolving tokens to users. Empty = tokens from the seed file.",
    )
    token_service_system_token: str = Field(
        "", alias="TOKEN_SERVICE_SYSTEM_TOKEN",
        description="Token this service presents to the token service.",
    )
    token_cache_ttl: int = Field(
        300, alias="TOKEN_CACHE_TTL",
        description="TTL in seconds for cached token-to-user lookups.",
    )
    token_cache_maxsize: int = Field(
        1000, alias="TOKEN_CACHE_MAXSIZE",
        description="Max number of cached token lookups. LRU eviction when exceeded.",
    )

    # Seed data
    seed_path: str = Field(
        "", alias="SEED_PATH",
        description="YAML file of providers, collections, tokens, groups and ACLs loaded at startup. Empty = none.",
    )

    # Logging
    log_level: str = Field(
        "INFO", alias="LOG_LEVEL",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL.",
    )
    log_file: str = Field(
        "", alias="LOG_FILE",
        description="Path to log file for file-based logging with rotation. Empty = console only.",
    )
    log_file_max_bytes: int = Field(
        10_485_760, alias="LOG_FILE_MAX_BYTES",
        description="Max size in bytes per log file before rotation. Default: 10 MB.",
    )
    log_file_backup_count: int = Field(
        5, alias="LOG_FILE_BACKUP_COUNT",
        description="Number of rotated backup log files to keep.",
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
