"""
Configuration settings for the FinSensei backend
"""

import os
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings"""

    # App Info
    APP_NAME: str = "FinSensei"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Personal finance dashboard and AI financial coach"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False

    # Database (required, no default)
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # Generative AI (any OpenAI-compatible chat completion endpoint)
    AI_API_KEY: str = os.getenv("AI_API_KEY", os.getenv("GEMINI_API_KEY", ""))
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    AI_MODEL: str = "gemini-1.5-flash"
    AI_TEMPERATURE: float = 0.7
    AI_TOP_P: float = 0.95
    AI_MAX_OUTPUT_TOKENS: int = 1024
    AI_TIMEOUT_SECONDS: float = 30.0

    # Upstream backend behind the /api/* proxy
    UPSTREAM_API_URL: str = "https://finsenseibackend-production.up.railway.app"
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0

    # Rate Limiting
    CHAT_RATE_LIMIT_PER_MINUTE: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",
    ]

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create settings instance; a missing DATABASE_URL stops the process here
settings = Settings()


# Validate critical settings
def validate_settings(config: Settings = settings):
    """Validate that critical settings are configured"""
    errors = []

    if config.ENVIRONMENT == "production":
        if not config.AI_API_KEY:
            errors.append("AI_API_KEY must be set for the financial coach")

        if config.DATABASE_URL.startswith("sqlite"):
            errors.append("A hosted database is required in production")

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Run validation
if settings.ENVIRONMENT == "production":
    validate_settings()
