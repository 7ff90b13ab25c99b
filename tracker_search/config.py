"""Configuration management using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings (host tracker database, read by the searchable scopes)
    db_server: str = "localhost"
    db_name: str = "tracker"
    db_user: str = "tracker"
    db_password: str = ""
    db_port: int = 5432
    db_pool_size: int = 10
    db_max_overflow: int = 20
    sql_echo: bool = False

    # JWT settings
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Redis settings (arq queue, permission scope cache, rate limiting)
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 20
    redis_socket_timeout: float = 5.0
    redis_retry_on_timeout: bool = True

    # Elasticsearch settings
    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_username: str = ""
    elasticsearch_password: str = ""
    elasticsearch_timeout: float = 30.0

    # Index settings. Changing shards/replicas requires a full reindex.
    search_index_name: str = "tracker_search"
    search_number_of_shards: int = 1
    search_number_of_replicas: int = 0
    search_batch_size: int = 300

    # Allowed-project cache for search permission filtering
    search_scope_cache_ttl: int = 30  # seconds

    # Consistency check: runs at these minutes (comma-separated, 0-59)
    # Default "0,30" = twice an hour
    arq_consistency_check_minutes: str = "0,30"

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def elasticsearch_basic_auth(self) -> tuple[str, str] | None:
        """Credentials tuple for the Elasticsearch client, if configured."""
        if self.elasticsearch_username and self.elasticsearch_password:
            return (self.elasticsearch_username, self.elasticsearch_password)
        return None


# Global settings instance
settings = Settings()
