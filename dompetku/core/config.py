from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "DompetKu"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="ap-southeast-1")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. http://localhost:8000 for DynamoDB Local
    DYNAMO_USERS_TABLE: str = Field(
        default="dompetku-users",
        validation_alias=AliasChoices("DYNAMO_TABLE_USERS", "DYNAMO_USERS_TABLE"),
    )
    DYNAMO_TRANSACTIONS_TABLE: str = Field(
        default="dompetku-transactions",
        validation_alias=AliasChoices("DYNAMO_TABLE_TRANSACTIONS", "DYNAMO_TRANSACTIONS_TABLE"),
    )

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(
        default="change-me-in-production",
        validation_alias=AliasChoices("JWT_SECRET", "JWT_SECRET_KEY"),
    )
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    EMAIL_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # confirmation / recovery links

    # Accounts
    REQUIRE_EMAIL_CONFIRMATION: bool = True
    MIN_PASSWORD_LENGTH: int = 6
    SITE_URL: str = "http://localhost:5173"

    # SMTP
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: str = "no-reply@dompetku.local"
    SMTP_STARTTLS: bool = True


settings = Settings()
