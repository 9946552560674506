# sidekick/settings.py
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="Sidekick Advisor")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # model provider: anthropic | openai | ollama | echo
    MODEL_PROVIDER: str = Field(default="anthropic")
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = Field(default="claude-sonnet-4-20250514")
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = Field(default="gpt-4o-mini")
    OLLAMA_HOST: str = Field(default="http://localhost:11434")
    OLLAMA_MODEL: str = Field(default="mistral:7b-instruct")

    # knowledge base (query embeddings + per-owner FAISS indexes)
    # EMBED_PROVIDER: openai | ollama | local
    EMBED_PROVIDER: str = Field(default="openai")
    EMBED_MODEL: str = Field(default="text-embedding-3-small")
    EMBED_DEVICE: str = Field(default="cpu")
    KB_DB_PATH: str = Field(default="data/db/knowledge.db")
    KB_INDEX_DIR: str = Field(default="data/index")

    PERSONAS_PATH: str = Field(default=str(PACKAGE_DIR / "agents" / "personas.yaml"))

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def app_name(self) -> str:
        return self.APP_NAME


@lru_cache
def get_settings() -> Settings:
    return Settings()
