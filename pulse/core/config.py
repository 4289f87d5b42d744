from functools import lru_cache
from typing import Annotated, Any, Optional
import json
import os

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Pulse"
    DEBUG: bool = False

    # CORS settings
    BACKEND_CORS_ORIGINS: Annotated[list[str], NoDecode] = ["*"]

    # Logging settings
    LOG_LEVEL: str = "INFO"
    ENABLE_STRUCTURED_LOGGING: bool = True

    # Provider selection
    DEFAULT_PROVIDER: Optional[str] = None

    # External API timeout settings
    DEFAULT_TIMEOUT: float = 10.0  # seconds
    MAX_RETRIES: int = 3
    RETRY_BACKOFF_FACTOR: float = 0.3

    # Plaid credentials
    PLAID_CLIENT_ID: Optional[str] = None
    PLAID_SECRET: Optional[str] = None
    PLAID_ENVIRONMENT: str = "sandbox"

    # Teller credentials
    TELLER_API_KEY: Optional[str] = None
    TELLER_CERTIFICATE: Optional[str] = None
    TELLER_PRIVATE_KEY: Optional[str] = None

    # Pluggy credentials
    PLUGGY_CLIENT_ID: Optional[str] = None
    PLUGGY_CLIENT_SECRET: Optional[str] = None

    # Register the in-memory adapter (local development only)
    ENABLE_MOCK_ADAPTER: bool = False

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator("PLAID_ENVIRONMENT")
    @classmethod
    def validate_plaid_environment(cls, v: str) -> str:
        """Only the three Plaid hosts are valid."""
        v = v.lower()
        if v not in ("sandbox", "development", "production"):
            raise ValueError(f"Unsupported Plaid environment: {v}")
        return v


def load_env_file(env_file: str = ".env") -> bool:
    """
    Load environment variables from specified .env file.

    Args:
        env_file: Path to the .env file. Defaults to ".env".

    Returns:
        bool: True if the file existed and was loaded
    """
    env_path = os.path.join(os.getcwd(), env_file)
    if os.path.exists(env_path):
        return load_dotenv(env_path)
    return False


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings with caching for efficiency.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
