import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CLINICBILL_", extra="ignore")

    db_url: str = "sqlite:///clinicbill.db"

    currency: str = "RON"
    timezone: str = "Europe/Bucharest"

    # Cap payments by outstanding amounts instead of invoice totals.
    strict_outstanding_check: bool = False

    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
