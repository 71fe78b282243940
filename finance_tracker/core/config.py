from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

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
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. http://localhost:8001 for DynamoDB Local
    DYNAMO_USERS_TABLE: str = Field(default="finance-tracker-users")
    DYNAMO_EXPENSES_TABLE: str = Field(default="finance-tracker-expenses")
    DYNAMO_SALARIES_TABLE: str = Field(default="finance-tracker-salaries")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Listing / analytics
    DEFAULT_PAGE_LIMIT: int = 20
    RECENT_EXPENSES_LIMIT: int = 10
    TREND_WINDOW: int = 12
    # Percent of net salary above which a category gets its own suggestion
    CATEGORY_THRESHOLDS: Dict[str, float] = Field(
        default={"Food": 15.0, "Transportation": 10.0, "Shopping": 5.0}
    )


settings = Settings()
