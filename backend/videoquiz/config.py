from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Speech-to-text
    TRANSCRIBER: Literal["whisper", "mock"] = "whisper"
    WHISPER_PATH: str = "whisper"
    WHISPER_LANGUAGE: str = "en"
    WHISPER_TIMEOUT_SECONDS: float = 30 * 60

    # Language model
    LLM_BACKEND: Literal["ollama", "llamacpp", "gpt4all"] = "ollama"
    LLM_ENDPOINT: str = "http://localhost:11434/api/generate"
    LLM_MODEL: str = "llama2"
    LLM_TIMEOUT_SECONDS: float = 60
    LLAMACPP_ENDPOINT: str = "http://localhost:8080/completion"
    GPT4ALL_PATH: str = "gpt4all"
    GPT4ALL_TIMEOUT_SECONDS: float = 120

    # Question generation
    QUESTIONS_PER_SEGMENT: int = 3
    GENERATION_DELAY_SECONDS: float = 1.0

    # Storage
    UPLOAD_DIR: Path = Path("data/uploads")
    DATA_DIR: Optional[Path] = None
    MAX_UPLOAD_BYTES: int = 500 * 1024 * 1024

    # API
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    @property
    def cors_origins(self) -> List[str]:
        origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        return origins or ["*"]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
