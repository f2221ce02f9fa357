from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "FinanceTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"]
    )

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: str = Field(default="")  # e.g. http://localhost:8001 for DynamoDB Local
    DYNAMO_USERS_TABLE: str = Field(default="finance-users", validation_alias=AliasChoices("DYNAMO_TABLE_USERS", "DYNAMO_USERS_TABLE"))
    DYNAMO_TRANSACTIONS_TABLE: str = Field(default="finance-transactions", validation_alias=AliasChoices("DYNAMO_TABLE_TRANSACTIONS", "DYNAMO_TRANSACTIONS_TABLE"))
    DYNAMO_BUDGETS_TABLE: str = Field(default="finance-budgets", validation_alias=AliasChoices("DYNAMO_TABLE_BUDGETS", "DYNAMO_BUDGETS_TABLE"))
    DYNAMO_GOALS_TABLE: str = Field(default="finance-goals", validation_alias=AliasChoices("DYNAMO_TABLE_GOALS", "DYNAMO_GOALS_TABLE"))
    DYNAMO_CATEGORIES_TABLE: str = Field(default="finance-categories", validation_alias=AliasChoices("DYNAMO_TABLE_CATEGORIES", "DYNAMO_CATEGORIES_TABLE"))
    DYNAMO_RECURRING_TABLE: str = Field(default="finance-recurring", validation_alias=AliasChoices("DYNAMO_TABLE_RECURRING", "DYNAMO_RECURRING_TABLE"))
    DYNAMO_NOTIFICATIONS_TABLE: str = Field(default="finance-notifications", validation_alias=AliasChoices("DYNAMO_TABLE_NOTIFICATIONS", "DYNAMO_NOTIFICATIONS_TABLE"))
    DYNAMO_PREFERENCES_TABLE: str = Field(default="finance-preferences", validation_alias=AliasChoices("DYNAMO_TABLE_PREFERENCES", "DYNAMO_PREFERENCES_TABLE"))

    # AWS S3 (archived PDF reports)
    S3_BUCKET_NAME: str = Field(default="")
    S3_REGION: str = Field(default="eu-west-1")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production", validation_alias=AliasChoices("JWT_SECRET", "JWT_SECRET_KEY"))
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Background scheduler
    SCHEDULER_ENABLED: bool = Field(default=True)
    SCHEDULER_INTERVAL_MINUTES: int = Field(default=60)

    # Analytics thresholds (percentages)
    LOW_SAVINGS_RATE: float = 20.0
    HIGH_SAVINGS_RATE: float = 30.0
    TOP_CATEGORY_SHARE: float = 30.0
    BUDGET_WARNING_THRESHOLD: float = 80.0
    BUDGET_AT_RISK_THRESHOLD: float = 90.0

    # AI advice
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_MODEL: str = Field(default="gpt-4.1-mini")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
