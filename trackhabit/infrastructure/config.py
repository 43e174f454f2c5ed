from functools import lru_cache
from typing import List, Optional
import os

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    """Service configuration, read from the environment"""

    # Model API
    model_api_key: Optional[str] = Field(None, description="Bearer token for the completion API")
    model_base_url: str = "https://openrouter.ai/api/v1"
    model_name: str = "google/gemini-2.0-flash-001"
    model_max_tokens: int = 500
    model_temperature: float = 0.7
    model_timeout_seconds: float = 30.0

    # Assistant behaviour
    assistant_locale: str = "fr"
    action_extraction_mode: str = Field("fenced", description="fenced or lenient")
    assistant_tool_calls: bool = False

    # Data store
    data_store: str = Field("supabase", description="supabase or memory")
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    session_cookie_name: str = "sb-access-token"

    # Service
    service_name: str = "trackhabit-assistant"
    log_level: str = "INFO"
    log_format: str = "json"
    langfuse_enabled: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    model_config = {"protected_namespaces": ()}

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables"""
        return cls(
            model_api_key=os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY"),
            model_base_url=os.getenv("MODEL_BASE_URL", "https://openrouter.ai/api/v1"),
            model_name=os.getenv("MODEL_NAME", "google/gemini-2.0-flash-001"),
            model_max_tokens=int(os.getenv("MODEL_MAX_TOKENS", "500")),
            model_temperature=float(os.getenv("MODEL_TEMPERATURE", "0.7")),
            model_timeout_seconds=float(os.getenv("MODEL_TIMEOUT_SECONDS", "30")),
            assistant_locale=os.getenv("ASSISTANT_LOCALE", "fr"),
            action_extraction_mode=os.getenv("ACTION_EXTRACTION_MODE", "fenced").lower(),
            assistant_tool_calls=_env_bool("ASSISTANT_TOOL_CALLS", False),
            data_store=os.getenv("DATA_STORE", "supabase").lower(),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY"),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "sb-access-token"),
            service_name=os.getenv("SERVICE_NAME", "trackhabit-assistant"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            langfuse_enabled=_env_bool("LANGFUSE_ENABLED", False),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
