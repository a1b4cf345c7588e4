import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # The expiry job flips Active coupons past expiresAt to Expired (hourly by default)
    expiry_check_interval_seconds: float = float(os.getenv("COUPON_EXPIRY_CHECK_INTERVAL_SECONDS", "3600"))
    expiry_job_enabled: bool = _env_bool("COUPON_EXPIRY_JOB_ENABLED", True)

    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
