# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Completion / embedding provider (OpenAI-compatible)
    OPENAI_API_KEY: str = Field(default="", validation_alias="OPENAI_API_KEY")
    OPENAI_BASE_URL: str = Field(
        default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL"
    )
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=60.0, validation_alias="PROVIDER_TIMEOUT_SECONDS"
    )

    # Embedding Engine
    EMBEDDING_PROVIDER: str = Field(default="openai", validation_alias="EMBEDDING_PROVIDER")
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", validation_alias="EMBEDDING_MODEL"
    )
    LOCAL_EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_BATCH_SIZE: int = Field(default=64, validation_alias="EMBEDDING_BATCH_SIZE")
    INDEX_ENABLED: bool = Field(default=False, validation_alias="INDEX_ENABLED")

    # Pipeline knobs
    FETCH_TIMEOUT_MS: int = Field(default=12000, validation_alias="FETCH_TIMEOUT_MS")
    MAX_CONTENT_BYTES: int = Field(
        default=15 * 1024 * 1024, validation_alias="MAX_CONTENT_BYTES"
    )
    MIN_CONTENT_LENGTH: int = Field(default=800, validation_alias="MIN_CONTENT_LENGTH")
    MAX_DIRECT_INPUT_LENGTH: int = Field(
        default=12000, validation_alias="MAX_DIRECT_INPUT_LENGTH"
    )
    RETRIEVAL_CHUNK_SIZE: int = 1200
    MAP_REDUCE_CHUNK_SIZE: int = 4000
    RESUME_TOP_K: int = Field(default=8, validation_alias="RESUME_TOP_K")
    RESUME_QUERY: str = Field(default="RESUME", validation_alias="RESUME_QUERY")
    PROMPT_MAX_CHUNKS: int = 6
    FALLBACK_LANGUAGE: str = Field(default="fr", validation_alias="FALLBACK_LANGUAGE")
    MICRO_SEARCH_ENABLED: bool = Field(
        default=False, validation_alias="MICRO_SEARCH_ENABLED"
    )

    # Logging knobs
    LOGGER_NAME: str = "pagebrief"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_JSON: bool = Field(default=False, validation_alias="LOG_JSON")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
