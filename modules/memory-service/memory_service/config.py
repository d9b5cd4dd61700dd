"""Service configuration loaded from environment variables or a .env file."""

import os
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the memory service.

    Variable names match the deployed service (QDRANT_URL, OLLAMA_URL, ...),
    so no prefix is applied.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Vector backend
    qdrant_url: str = Field("http://localhost:6333", alias="QDRANT_URL")
    qdrant_api_key: Optional[str] = Field(None, alias="QDRANT_API_KEY")
    collection_name: str = Field("memories", alias="COLLECTION_NAME")
    embed_dims: int = Field(768, gt=0, alias="EMBED_DIMS")

    # Inference backends
    ollama_url: str = Field("http://localhost:11434", alias="OLLAMA_URL")
    llm_model: str = Field("qwen2.5:3b", alias="OLLAMA_LLM_MODEL")
    embed_model: str = Field("nomic-embed-text", alias="OLLAMA_EMBED_MODEL")
    embed_provider: Literal["ollama", "openai"] = Field(
        "ollama", alias="EMBED_PROVIDER"
    )
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field("https://api.openai.com", alias="OPENAI_BASE_URL")

    # HTTP surface
    api_key: Optional[str] = Field(None, alias="API_KEY")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(7890, alias="PORT")

    # Limits
    max_message_length: int = Field(50_000, gt=0, alias="MAX_MESSAGE_LENGTH")
    max_query_length: int = Field(1000, gt=0, alias="MAX_QUERY_LENGTH")
    add_concurrency: int = Field(8, gt=0, alias="ADD_CONCURRENCY")
    request_timeout: float = Field(30.0, gt=0, alias="REQUEST_TIMEOUT")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", alias="LOG_LEVEL"
    )

    @classmethod
    def load(cls) -> "Settings":
        """Load settings, using ``MEMORY_SERVICE_CONFIG_FILE`` as env file if set.

        Raises:
            SystemExit: If the configuration is invalid
        """
        env_file = os.getenv("MEMORY_SERVICE_CONFIG_FILE")
        kwargs = {"_env_file": env_file} if env_file else {}
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise SystemExit(f"Invalid configuration: {exc}")


__all__ = ["Settings"]
