"""Application settings and configuration.

This module defines all configuration options for the News On Africa API.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="News On Africa API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./noa.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Supabase-issued access tokens
    supabase_jwt_secret: str = Field(default="dev-supabase-jwt-secret", alias="SUPABASE_JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str = Field(default="authenticated", alias="SUPABASE_JWT_AUDIENCE")

    # Redis (Upstash) cache; leaving it unset disables the edge cache entirely
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Home feed cache
    home_feed_cache_key: str = Field(default="home-feed:v1", alias="HOME_FEED_CACHE_KEY")
    home_feed_ttl_ms: int = Field(default=45_000, alias="HOME_FEED_TTL_MS")
    home_feed_refresh_threshold_ms: int = Field(
        default=10_000,
        alias="HOME_FEED_REFRESH_THRESHOLD_MS",
    )
    home_feed_stale_retention_ms: int = Field(
        default=300_000,
        alias="HOME_FEED_STALE_RETENTION_MS",
    )
    background_refresh_concurrency: int = Field(
        default=2,
        alias="BACKGROUND_REFRESH_CONCURRENCY",
    )
    background_refresh_max_pending: int = Field(
        default=16,
        alias="BACKGROUND_REFRESH_MAX_PENDING",
    )

    # WordPress content source; "{edition}" is replaced with the edition code
    wordpress_api_url: str = Field(
        default="https://newsonafrica.com/{edition}/wp-json/wp/v2",
        alias="WORDPRESS_API_URL",
    )
    wordpress_auth_header: str | None = Field(default=None, alias="WORDPRESS_AUTH_HEADER")
    wordpress_timeout_seconds: float = Field(default=10.0, alias="WORDPRESS_TIMEOUT_SECONDS")
    home_frontpage_timeout_ms: int = Field(default=2_500, alias="HOME_FRONTPAGE_TIMEOUT_MS")
    home_recent_timeout_ms: int = Field(default=1_200, alias="HOME_RECENT_TIMEOUT_MS")
    home_tag_timeout_ms: int = Field(default=1_500, alias="HOME_TAG_TIMEOUT_MS")
    home_feed_request_concurrency: int = Field(
        default=6,
        alias="HOME_FEED_REQUEST_CONCURRENCY",
    )

    # Editions
    supported_editions: list[str] = Field(
        default=["african", "sz", "ng", "za", "ke", "gh"],
        alias="SUPPORTED_EDITIONS",
    )
    default_edition: str = Field(default="african", alias="DEFAULT_EDITION")
    home_feed_editions: list[str] = Field(
        default=["sz", "ng"],
        alias="HOME_FEED_EDITIONS",
    )
    home_feed_default_tags: dict[str, str] = Field(
        default={"sz": "fp", "ng": "fp"},
        alias="HOME_FEED_DEFAULT_TAGS",
    )

    # Comments
    comment_rate_limit: int = Field(default=5, alias="COMMENT_RATE_LIMIT")
    comment_rate_window_seconds: int = Field(default=60, alias="COMMENT_RATE_WINDOW_SECONDS")
    comment_max_length: int = Field(default=2_000, alias="COMMENT_MAX_LENGTH")
    comments_max_page_size: int = Field(default=50, alias="COMMENTS_MAX_PAGE_SIZE")

    # In-process stores
    suggestion_index_ttl_seconds: int = Field(
        default=12 * 60 * 60,
        alias="SUGGESTION_INDEX_TTL_SECONDS",
    )
    suggestion_query_ttl_seconds: int = Field(
        default=60 * 60,
        alias="SUGGESTION_QUERY_TTL_SECONDS",
    )
    ttl_store_sweep_seconds: float = Field(default=60.0, alias="TTL_STORE_SWEEP_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def home_feed_ttl_seconds(self) -> float:
        """Return the home feed TTL in seconds for Cache-Control headers."""
        return self.home_feed_ttl_ms / 1000


settings = Settings()
