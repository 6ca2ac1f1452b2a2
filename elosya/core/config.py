import logging
from decimal import Decimal

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    SQLITE_FALLBACK_URL: str = "sqlite:///./elosya.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Monetization rates
    LIKE_PAYOUT_AMOUNT: Decimal = Decimal("0.05")
    LIKE_PAYOUT_THRESHOLD: int = 20
    SHARE_PAYOUT_AMOUNT: Decimal = Decimal("0.10")
    SHARE_PAYOUT_THRESHOLD: int = 10
    COIN_UNIT_PRICE: Decimal = Decimal("0.10")
    CREATOR_COIN_SHARE: Decimal = Decimal("0.85")

    # Monetization eligibility
    MIN_VIDEOS_FOR_MONETIZATION: int = 10
    MIN_FOLLOWERS_FOR_MONETIZATION: int = 10000  # declared, not enforced
    MIN_ENGAGEMENT_RATE: Decimal = Decimal("0.05")  # declared, not enforced

    # Engagement unit of work
    ENGAGEMENT_MAX_RETRIES: int = 5

    # Feed
    FEED_PAGE_SIZE_DEFAULT: int = 10
    FEED_PAGE_SIZE_MAX: int = 50

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("elosya")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    share = Decimal(str(getattr(cfg, "CREATOR_COIN_SHARE", "0.85")))
    if not (Decimal("0") <= share <= Decimal("1")):
        message = f"CREATOR_COIN_SHARE must be between 0 and 1, got {share}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
