from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for FABOT.
    Every field can be overridden by an environment variable of the same name
    or by an entry in the local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "FABOT"
    LOG_LEVEL: str = "INFO"

    # Completion Gateway
    COMPLETION_PROVIDER: Literal["groq", "openai"] = "groq"
    GROQ_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    CHAT_MODEL: Optional[str] = None

    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 1000
    ANALYSIS_TEMPERATURE: float = 0.3
    ANALYSIS_MAX_TOKENS: int = 1500

    # HTTP server
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    # Client side
    API_BASE_URL: str = "http://127.0.0.1:8000"
    CLIENT_TIMEOUT_SECONDS: float = 120.0
    SESSION_STORE_PATH: Path = Path.home() / ".fabot" / "local_storage.json"
    MAX_ATTACHMENT_BYTES: int = 10 * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    return Settings()
