"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./events.db")
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() in ("1", "true", "yes")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")
    USER_HEADER: str = os.getenv("USER_HEADER", "X-User-Handle")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://localhost:8000",
    ]

    # Event rules
    MAX_DAYS_IN_ADVANCE: int = 20
    START_WINDOW_MINUTES: int = 10

    class Config:
        env_file = ".env"

settings = Settings()
