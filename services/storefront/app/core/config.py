"""
Storefront — Configuration
All settings are read from environment variables (or .env file).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "storefront"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # ── JWT ──────────────────────────────────────────────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # ── Super admin (plaintext, passed through as-is) ────────
    SUPER_ADMIN_USERNAME: str = "admin"
    SUPER_ADMIN_PASSWORD: str = "CHANGE_ME_IN_PRODUCTION"

    # ── Login rate limit ─────────────────────────────────────
    RATE_LIMIT_MAX_ATTEMPTS: int = 5
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # ── Redis (local cache) ───────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    CACHE_KEY_PREFIX: str = "cache"
    NOTIFICATION_CHANNEL_PREFIX: str = "notifications"

    # ── Spreadsheet gateway ───────────────────────────────────
    SUPER_ADMIN_SCRIPT_URL: str = ""
    SHEET_KANTIN: str = "AkunKantin"
    SHEET_TRANSACTIONS: str = "Pesanan"
    SHEET_MENUS: str = "Menus"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # ── Payment proof upload (Google Drive) ───────────────────
    GOOGLE_DRIVE_UPLOAD_URL: str = "https://www.googleapis.com/upload/drive/v3/files"
    GOOGLE_DRIVE_FILES_URL: str = "https://www.googleapis.com/drive/v3/files"
    GOOGLE_TOKEN_COOKIE: str = "google_access_token"
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024
    UPLOAD_FILE_PREFIX: str = "ekantin"
    UPLOAD_DESCRIPTION: str = "E-Kantin UNPAS - Uploaded file"

    # ── Storefront pricing ────────────────────────────────────
    DELIVERY_FEE: int = 1000

    # ── SSE ───────────────────────────────────────────────────
    SSE_RETRY_MILLISECONDS: int = 3000
    SSE_KEEPALIVE_INTERVAL_SECONDS: float = 15.0

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
