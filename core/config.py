from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    DATABASE_URL: str
    SECRET_KEY: str
    TELEGRAM_BOT_TOKEN: str
    KAKAO_API_KEY: str = ""
    WEATHER_API_URL: str = "https://api.open-meteo.com/v1/forecast"
    PROXY: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 5
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    DEBUG: bool = False
    TELEGRAM_POLLING: bool = False

    # Планировщик
    SCHEDULER_ENABLED: bool = True
    TIMEZONE: str = "Asia/Seoul"
    SCHEDULER_CONFIRM_CRON: str = "0 * * * *"
    SCHEDULER_WEATHER_CRON: str = "30 6 * * *"
    SCHEDULER_NOTIFICATION_DELETE_CRON: str = "30 0 * * *"
    NOTIFICATION_RETENTION_DAYS: int = 3

    # Штрафы и погода
    PENALTY_ACCEPTED_THRESHOLD: int = 2
    RAIN_PROBABILITY_THRESHOLD: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


# Создаём глобальный объект, который будем импортировать везде
settings = Settings()
