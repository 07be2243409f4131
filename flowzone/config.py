# flowzone/config.py

"""
Centralised configuration.

Every setting comes from the environment (a local .env file is honoured via
python-dotenv). Nothing here is required at import time: the Cosmos client is
only built when a container is first needed, so the app and the tests can load
without a live database.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Cosmos DB
    COSMOS_CONNECTION_STRING: str = ""
    COSMOS_DATABASE_NAME: str = "FlowZoneDB"

    # Bearer tokens
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 24

    # Google sign-in and calendar sync
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CALENDAR_API_URL: str = "https://www.googleapis.com/calendar/v3"
    GOOGLE_API_TIMEOUT: int = 10

    # Outgoing mail
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = ""

    APP_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalise_level(cls, v: str) -> str:
        return str(v).upper()


def _load_settings() -> Settings:
    values = {name: os.environ[name] for name in Settings.model_fields if name in os.environ}
    return Settings(**values)


# Imported by the other modules as:
#   from flowzone.config import settings
settings = _load_settings()
