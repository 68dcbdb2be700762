import os
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(val: str | None) -> list[str]:
    return [v.strip() for v in (val or "").split(",") if v.strip()]


class Settings(BaseSettings):
    # App
    APP_NAME: str = "AdRewards Backend"
    ENV: str = os.getenv("ENV", "production")
    LOG_LEVEL: str = "INFO"

    # Frontend URL used for CORS
    NEXT_PUBLIC_URL: str = "http://localhost:3000"

    # CORS (schemed origins like https://app.example.com)
    ALLOW_ORIGINS: list[str] = Field(default_factory=list)  # override via ALLOWED_ORIGINS (CSV)
    ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    ALLOW_HEADERS: list[str] = ["Content-Type", "Authorization"]
    ALLOW_CREDENTIALS: bool = True

    # DB
    DATABASE_URL: str = "sqlite:///./adrewards.db"

    # Auth / sessions
    JWT_SECRET: str = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALG: str = "HS256"
    SESSION_TTL_MINUTES: int = 10080  # 7 days, absolute
    SESSION_IDLE_TIMEOUT_MINUTES: int = 60
    SESSION_COOKIE_NAME: str = "session_token"

    # Wallets granted admin on login (CSV, case-insensitive)
    ADMIN_WALLETS: str = ""

    # Post views
    BASE_POINTS_PER_VIEW: int = 1
    VIEW_DURATION_REQUIRED: int = 10  # seconds
    VIEW_COOLDOWN_HOURS: int = 24
    MAX_POSTS_PER_PUBLISHER: int = 3
    ADMIN_POST_DURATION_DAYS: int = 30

    # X (Twitter) read-only API
    X_API_BASE_URL: str = "https://api.twitter.com/2"
    X_API_BEARER_TOKEN: str = ""
    X_API_TIMEOUT_SECONDS: float = 10.0
    # Treat "verification backend unreachable/misconfigured" as verified
    X_VERIFY_FAIL_OPEN: bool = True

    # Social tasks
    SOCIAL_ACTION_POINTS: int = 1
    SOCIAL_ACTION_BONUS_POINTS: int = 1

    # Referrals
    REFERRAL_QUALIFYING_ACTION: str = "retweet"
    REFERRAL_ACTION_BONUS: int = 1
    REFERRAL_CLAIM_BONUS: int = 10
    REFERRAL_CODE_LENGTH: int = 8
    REFERRAL_CODE_MAX_ATTEMPTS: int = 10

    # Featured assets
    ASSET_VERIFY_COOLDOWN_HOURS: int = 24

    DEFAULT_PAGE_LIMIT: int = 20

    # Load .env file
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ---------- Helpers ----------

    def admin_wallets(self) -> set[str]:
        return {w.lower() for w in _split_csv(self.ADMIN_WALLETS)}

    def frontend_origins(self) -> list[str]:
        if self.ALLOW_ORIGINS:
            return self.ALLOW_ORIGINS

        parsed = urlparse(self.NEXT_PUBLIC_URL)
        scheme = parsed.scheme or "https"
        dom = parsed.netloc or "localhost:3000"
        return list({
            f"{scheme}://{dom}",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        })


def build_settings() -> Settings:
    s = Settings()

    # Heroku-style URLs
    if s.DATABASE_URL.startswith("postgres://"):
        s.DATABASE_URL = s.DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # Load CORS overrides
    env_origins = _split_csv(os.getenv("ALLOWED_ORIGINS"))
    if env_origins:
        s.ALLOW_ORIGINS = env_origins
    else:
        s.ALLOW_ORIGINS = s.frontend_origins()

    return s


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance, also used as a FastAPI dependency."""
    return build_settings()
