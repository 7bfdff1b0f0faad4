"""Application configuration"""

from typing import Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    PROJECT_NAME: str = "LexShield Security API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    DEFAULT_API_VERSION: str = "v2"
    SUPPORTED_API_VERSIONS: list[str] = ["v1", "v2"]

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours
    ENCRYPTION_KEY: Optional[str] = None  # Fernet key for field-level encryption
    ACCESS_TOKEN_COOKIE: str = "accessToken"

    # Database
    DATABASE_URL: str = "sqlite:///./lexshield.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    # WHY: Store calls must never hang a request; each call is bounded and the
    # caller's failure policy (open or closed) decides the outcome.
    STORE_TIMEOUT_SECONDS: float = 2.0

    # Session policy (milliseconds)
    SESSION_IDLE_TIMEOUT_MS: int = 30 * 60 * 1000
    SESSION_ABSOLUTE_TIMEOUT_MS: int = 24 * 60 * 60 * 1000
    SESSION_REMEMBER_ME_TIMEOUT_MS: int = 7 * 24 * 60 * 60 * 1000
    SESSION_WARNING_BEFORE_MS: int = 5 * 60 * 1000
    SESSION_ACTIVITY_TTL_SECONDS: int = 24 * 60 * 60

    # API deprecation
    # Maps deprecated version -> HTTP-date sunset
    DEPRECATED_API_VERSIONS: Dict[str, str] = {"v1": "Mon, 01 Jun 2026 00:00:00 GMT"}

    # Webhooks
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    # Provider name -> shared HMAC secret for non-Stripe providers
    WEBHOOK_SECRETS: Dict[str, str] = {}

    # Input sanitization
    SANITIZE_STRICT_MODE: bool = False

    # Security monitoring
    SECURITY_MONITOR_THRESHOLD: int = 10
    SECURITY_MONITOR_WINDOW_SECONDS: int = 300

    # Client IP: proxies (IPs or CIDRs) whose X-Real-IP / X-Forwarded-For
    # headers are believed. Empty means the socket peer is always the client.
    TRUSTED_PROXIES: list[str] = []

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        if self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


settings = Settings()
