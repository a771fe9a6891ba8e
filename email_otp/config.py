import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str) -> tuple[str, ...]:
    raw_value = os.getenv(name, "")
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


def _build_database_url() -> str:
    raw_url = os.getenv("DATABASE_URL", "").strip()
    if not raw_url:
        return "sqlite:///./otp.db"
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+psycopg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


@dataclass(frozen=True)
class Settings:
    database_url: str = _build_database_url()
    app_env: str = os.getenv("APP_ENV", "development").strip().lower()
    log_file: str = os.getenv("LOG_FILE", "").strip()
    otp_size: int = int(os.getenv("OTP_SIZE", "6"))
    otp_validity_period_minutes: int = int(
        os.getenv("OTP_VALIDITY_PERIOD_MINUTES", "5")
    )
    otp_sweep_interval_minutes: int = int(
        os.getenv("OTP_SWEEP_INTERVAL_MINUTES", "10")
    )
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS")
    )


settings = Settings()
