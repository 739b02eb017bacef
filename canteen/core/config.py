"""
Canteen Service — Configuration
All settings are read from environment variables (or .env file).
"""
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "canteen-service"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── JWT ──────────────────────────────────────────────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    EMAIL_VERIFY_TOKEN_EXPIRE_HOURS: int = 48
    REQUIRE_VERIFIED_EMAIL: bool = True

    # ── Document store ────────────────────────────────────────
    # "sql" → PostgreSQL JSON documents + Redis change feed
    # "memory" → in-process store (tests, local demos)
    DOCUMENT_STORE_BACKEND: str = "sql"

    POSTGRES_HOST: str = "canteen-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "canteen_db"
    POSTGRES_USER: str = "canteen_user"
    POSTGRES_PASSWORD: str = "canteen_pass"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis (change feed / Celery broker) ────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def celery_broker_url(self) -> str:
        return self.redis_url

    @property
    def celery_result_backend(self) -> str:
        return self.redis_url

    # ── Meal windows ──────────────────────────────────────────
    # Half-open [start, end) local hours. Hours outside every range have no window.
    LOCAL_TIMEZONE: str = "Asia/Kolkata"
    MEAL_WINDOWS: dict[str, tuple[int, int]] = {
        "Breakfast": (7, 12),
        "Lunch": (12, 16),
        "Snacks": (16, 19),
        "Dinner": (19, 23),
    }

    @field_validator("LOCAL_TIMEZONE")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        ZoneInfo(v)  # raises ZoneInfoNotFoundError on typos
        return v

    @property
    def local_tz(self) -> ZoneInfo:
        return ZoneInfo(self.LOCAL_TIMEZONE)

    # ── Queue estimate / analytics ─────────────────────────────
    QUEUE_AVG_PREP_MINUTES: int = 8
    QUEUE_PARALLEL_STATIONS: int = 2
    SLA_MINUTES: int = 15
    BASELINE_PREP_MINUTES: int = 12
    WASTE_PER_ORDER_KG: float = 0.25

    # ── Queue simulator defaults ───────────────────────────────
    SIM_DURATION_MINUTES: int = 45
    SIM_NEW_ORDERS_PER_MIN: float = 5
    SIM_STATIONS: int = 2
    SIM_AVG_PREP_MINUTES: float = 6

    # ── SSE ───────────────────────────────────────────────────
    SSE_RETRY_MILLISECONDS: int = 3000

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
