from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    db_echo: bool = Field(False, alias="DB_ECHO")
    db_pool_recycle_seconds: int = Field(300, alias="DB_POOL_RECYCLE_SECONDS")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Resolved tenant contexts are cached per token for this many seconds (0 disables)
    context_cache_ttl_seconds: int = Field(30, alias="CONTEXT_CACHE_TTL_SECONDS")

    audit_query_default_limit: int = Field(100, alias="AUDIT_QUERY_DEFAULT_LIMIT")
    audit_query_max_limit: int = Field(500, alias="AUDIT_QUERY_MAX_LIMIT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(8000, alias="APP_PORT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
