from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent
RUNTIME_DIR = BASE_DIR / 'runtime'

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class Settings(BaseSettings):
    """Gate configuration loaded from environment, `.env` or defaults."""

    APP_ENV: str = Field(default='development')
    DB_PATH: Path = Field(default=RUNTIME_DIR / 'promotion_gate.sqlite')
    PROCESSES_PATH: Path = Field(default=RUNTIME_DIR / 'processes.yaml')
    LOG_LEVEL: str = Field(default='INFO')

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        case_sensitive = False

    def ensure_runtime_paths(self) -> None:
        self.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        self.PROCESSES_PATH.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_runtime_paths()
    return settings


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = getattr(logging, (settings.LOG_LEVEL or 'INFO').upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
