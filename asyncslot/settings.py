import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Operation slot defaults
    retry_delay_ms: int = Field(default=1000, alias="ASYNCSLOT_RETRY_DELAY_MS")
    http_timeout: float = Field(default=30.0, alias="ASYNCSLOT_HTTP_TIMEOUT")
    cache_max_size: int | None = Field(default=None, alias="ASYNCSLOT_CACHE_MAX_SIZE")
    debug: bool = Field(default=False, alias="ASYNCSLOT_DEBUG")

    # AI provider defaults
    ai_provider: str = Field(default="groq", alias="AI_PROVIDER")
    ai_model: str = Field(default="llama-3.1-8b", alias="AI_MODEL")
    ai_api_key: str | None = Field(default=None, alias="AI_API_KEY")
    ai_api_url: str | None = Field(default=None, alias="AI_API_URL")
    ai_temperature: float = Field(default=0.7, alias="AI_TEMPERATURE")
    ai_max_tokens: int = Field(default=1024, alias="AI_MAX_TOKENS")


def load_settings() -> Settings:
    """Build settings from the process environment (after .env is loaded)."""
    known = {field.alias for field in Settings.model_fields.values() if field.alias}
    values = {k: v for k, v in os.environ.items() if k in known and v != ""}
    return Settings(**values)


global_settings = load_settings()
