"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    critique_env: str = "development"
    critique_log_level: str = "info"
    service_version: str = "1.0.0"

    # CORS (plugin iframes send a null origin)
    cors_origins: list[str] = ["*"]

    # Model defaults
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 1000
    max_tokens_cap: int = 2000
    temperature: float = 0.7
    upstream_timeout: float = 60.0

    # Request correlation
    request_timeout: float = 30.0
    retry_attempts: int = 3
    retry_base_delay: float = 1.0

    # Input limits
    max_elements: int = 1000
    max_context_length: int = 10000
    api_key_prefix: str = "sk-"
    api_key_min_length: int = 10

    # Per-client limit on critique calls
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 20
    rate_limit_window: str = "15 minutes"

    # Where the transport sends critique requests
    proxy_url: str = "http://localhost:3001"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}


settings = Settings()
