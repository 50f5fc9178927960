from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24 * 7

    # Onboarding provisioning
    # Generated passwords need room for at least one letter and one digit
    TEMP_PASSWORD_LENGTH: int = Field(12, ge=8)

    # Password reset
    PASSWORD_RESET_OTP_MINUTES: int = Field(10, ge=1)
    PASSWORD_RESET_MAX_ATTEMPTS: int = Field(5, ge=1)
    # Write issued codes to the DEBUG log; for local setups without mail
    LOG_RESET_OTP: bool = False

    # API Configuration
    API_VERSION: str = "v1"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

@lru_cache()
def get_settings():
    return Settings()
