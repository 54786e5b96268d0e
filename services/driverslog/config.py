import os
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Конфигурация driverslog — журнала парковок автомобиля.
    Отдаёт сохранённые события и собирает из них упорядоченный список
    с адресами (reverse geocoding).
    """

    # --- Общая информация ---
    SERVICE_NAME: str = "Driver's Log Service"
    VERSION: str = "1.0.0"
    ENV: str = os.getenv("ENV", "dev")

    # --- Подключение к базе ---
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://postgres:postgres@db:5432/driverslog"
    )

    # --- URL хранилища событий (GET /api/logs) ---
    LOGS_API_URL: str = os.getenv(
        "LOGS_API_URL",
        "http://localhost:8000/api/logs"
    )

    # --- Reverse geocoding (Nominatim) ---
    GEOCODER_URL: str = os.getenv(
        "GEOCODER_URL",
        "https://nominatim.openstreetmap.org"
    )
    # Nominatim требует идентифицировать клиента через User-Agent
    GEOCODER_USER_AGENT: str = os.getenv(
        "GEOCODER_USER_AGENT",
        "driverslog/1.0 (vehicle logbook)"
    )
    GEOCODER_ZOOM: int = 18
    GEOCODER_MAX_CONCURRENCY: int = 4   # 0 — без ограничения

    # --- Настройки запросов ---
    REQUEST_TIMEOUT: float = 5.0

    # --- Разбор дат ---
    # IANA-зона для ISO-строк без смещения; None — локальная зона хоста
    LOCAL_TIMEZONE: Optional[str] = os.getenv("LOCAL_TIMEZONE")

    @field_validator("LOCAL_TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        # Ошибочная зона должна ронять старт сервиса, а не каждый запрос
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"unknown timezone: {value!r}") from None
        return value

    # --- Логирование ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Глобальный объект конфигурации
settings = Settings()
