from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    DATABASE_URL: str
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis configuration for caching
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 300  # 5 minutes default for health summary cache

    # CORS configuration, comma-separated origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RECALCULATE_RATE_LIMIT: str = "30/minute"

    # Health score weights (relative, need not sum to 1)
    HEALTH_WEIGHT_ENGAGEMENT: float = 0.2
    HEALTH_WEIGHT_SUPPORT: float = 0.2
    HEALTH_WEIGHT_RELATIONSHIP: float = 0.2
    HEALTH_WEIGHT_FINANCIAL: float = 0.2
    HEALTH_WEIGHT_ADOPTION: float = 0.2

    # Scores strictly below this are CRITICAL rather than HIGH
    HEALTH_CRITICAL_BELOW: int = 30

    # Background recalculation of every tenant
    HEALTH_AUTO_RECALC_ENABLED: bool = False
    HEALTH_RECALC_INTERVAL_SECONDS: int = 86400


settings = Settings()
