"""
Configuration management for the UBL Converter API
"""
import re
from typing import List, Optional
from pydantic import field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Project info
    PROJECT_NAME: str = "UBL Converter API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    PORT: int = 8080

    # CORS
    BACKEND_CORS_ORIGINS: str = "*"

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list"""
        if not self.BACKEND_CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    # File storage
    XML_STORE_PATH: str = "./xml_output"

    # Fixed HH:MM:SS issue time for reproducible output (current UTC time when unset)
    ISSUE_TIME: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        if value.lower() not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return value.lower()

    @field_validator("ISSUE_TIME")
    @classmethod
    def validate_issue_time(cls, value: Optional[str]) -> Optional[str]:
        if value and not re.match(r"^([01]\d|2[0-3]):[0-5]\d:[0-5]\d$", value):
            raise ValueError("ISSUE_TIME must use the HH:MM:SS format")
        return value or None

    model_config = ConfigDict(
        env_file=[".env.local", ".env"],
        case_sensitive=True
    )


settings = Settings()
