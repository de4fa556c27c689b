from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    shopify_api_key: Optional[str] = None
    shopify_api_secret: Optional[str] = None
    database_url: str = "sqlite:///./sessions.db"
    request_timeout: float = 10.0
    default_headers: Dict[str, str] = Field(default_factory=dict)

    # Upper bound on the raw body echoed back when an outbound response isn't JSON.
    raw_response_limit: int = 1000
    # Clock skew tolerated when verifying embedded-app session tokens, in seconds.
    session_token_leeway: int = 10
    log_level: str = "INFO"

    class Config:
        env_prefix = "RELAY_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
