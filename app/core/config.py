from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    max_section_capacity: int = Field(40, ge=1, alias="MAX_SECTION_CAPACITY")
    gender_balance_weight: float = Field(0.08, ge=0, alias="GENDER_BALANCE_WEIGHT")
    unclassified_section_name: str = Field("Unclassified", alias="UNCLASSIFIED_SECTION_NAME")

    # false forces the two-step demote/promote path (may briefly leave no Active year)
    school_year_atomic_activation: bool = Field(True, alias="SCHOOL_YEAR_ATOMIC_ACTIVATION")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
