from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

# GitHub
GITHUB_TOKEN: str | None = os.getenv("GITHUB_TOKEN")
GITHUB_API_BASE: str = os.getenv("GITHUB_BASE_URL", "https://api.github.com")
GITHUB_OAUTH_URL: str = os.getenv("GITHUB_OAUTH_URL", "https://github.com/login/oauth/access_token")
GITHUB_CLIENT_ID: str | None = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET: str | None = os.getenv("GITHUB_CLIENT_SECRET")
APP_URL: str = os.getenv("APP_URL", "http://localhost:3000")

# Session cookie
SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "github_token")
SESSION_MAX_AGE: int = int(os.getenv("SESSION_MAX_AGE", "604800"))  # 7 days
COOKIE_SECURE: bool = os.getenv("APP_ENV", "development").lower() == "production"

# Repository browsing limits
MAX_FILE_SIZE_BYTES: int = int(os.getenv("MAX_FILE_SIZE_BYTES", "1000000"))
MAX_DIAGRAM_CONTENT_CHARS: int = int(os.getenv("MAX_DIAGRAM_CONTENT_CHARS", "20000"))
PACKAGE_SEARCH_MAX_DEPTH: int = int(os.getenv("PACKAGE_SEARCH_MAX_DEPTH", "3"))
PACKAGE_JSON_TIMEOUT: float = float(os.getenv("PACKAGE_JSON_TIMEOUT", "10"))

# Dependency enrichment
NPM_REGISTRY_URL: str = os.getenv("NPM_REGISTRY_URL", "https://registry.npmjs.org")
METADATA_TIMEOUT: float = float(os.getenv("METADATA_TIMEOUT", "4"))
METADATA_CONCURRENCY: int = int(os.getenv("METADATA_CONCURRENCY", "6"))
LOGO_TIMEOUT: float = float(os.getenv("LOGO_TIMEOUT", "2.5"))
LLM_DESCRIPTION_TIMEOUT: float = float(os.getenv("LLM_DESCRIPTION_TIMEOUT", "15"))
LLM_DESCRIPTION_CHUNK_SIZE: int = int(os.getenv("LLM_DESCRIPTION_CHUNK_SIZE", "10"))

# LLM Settings
LLM_PROVIDER: str = os.getenv("LLM_MODEL_PROVIDER", "openai_compatible")
LLM_API_BASE: str | None = os.getenv("LLM_BASE_URL")
LLM_API_KEY: str | None = os.getenv("LLM_API_KEY")
LLM_MODEL_NAME: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_TIMEOUT: int = int(os.getenv("LLM_TIMEOUT", "60"))
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "2"))

# CORS
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]


@dataclass(frozen=True)
class LLMSettings:
    """Model client settings, built once at startup and injected."""
    provider: str = LLM_PROVIDER
    api_base: str | None = LLM_API_BASE
    api_key: str | None = LLM_API_KEY
    model: str = LLM_MODEL_NAME
    temperature: float = LLM_TEMPERATURE
    timeout: int = LLM_TIMEOUT
    max_retries: int = LLM_MAX_RETRIES

    @classmethod
    def from_env(cls) -> "LLMSettings":
        return cls()


@dataclass(frozen=True)
class EnrichmentSettings:
    """Timeouts and fan-out limits of the dependency enrichment stages."""
    registry_url: str = NPM_REGISTRY_URL
    metadata_timeout: float = METADATA_TIMEOUT
    metadata_concurrency: int = METADATA_CONCURRENCY
    logo_timeout: float = LOGO_TIMEOUT
    logo_concurrency: int = METADATA_CONCURRENCY
    description_timeout: float = LLM_DESCRIPTION_TIMEOUT
    description_chunk_size: int = LLM_DESCRIPTION_CHUNK_SIZE

    @classmethod
    def from_env(cls) -> "EnrichmentSettings":
        return cls()
