from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Server configuration, read from `DEALROOM_*` environment variables
    or a `.env` file.
    """

    secret_key: str = "change-me"
    """Key used to verify (and, for the `token` command, sign) bearer JWTs."""

    algorithm: str = "HS256"
    """JWT signing algorithm."""

    token_ttl_seconds: int = 3600
    """Lifetime of tokens minted by `dealroom auth token`."""

    database_url: str = "sqlite+aiosqlite:///./dealroom.db"
    """SQLAlchemy async URL of the relational store."""

    redis_url: Optional[str] = None
    """Redis URL for the message cache. Unset means an in-process cache."""

    cache_ttl_seconds: int = 3600
    """Expiry window of a cached room, refreshed on every write."""

    max_rooms_per_connection: int = 50
    """Upper bound on concurrent room memberships of a single connection."""

    cors_origins: str = "*"
    """Comma-separated list of allowed origins for HTTP and Socket.IO."""

    host: str = "0.0.0.0"
    port: int = 8080

    model_config = SettingsConfigDict(env_prefix="DEALROOM_", env_file=".env", extra="ignore")

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]
