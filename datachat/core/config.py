from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from datachat.core.errors import ConfigError

DEFAULT_ANALYSIS_QUERY = "What are the appliances with the most and least electricity consumption?"

_UNSAFE_SECRETS = {
    "",
    "my-key",
    "change-me",
    "replace_with_strong_secret",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Data Chat API"
    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    huggingface_token: str
    inference_base_url: str = "https://api-inference.huggingface.co/models"
    chat_model: str = "microsoft/Phi-3.5-mini-instruct"
    analysis_model: str = ""
    max_new_tokens: int = Field(default=256, gt=0)
    inference_timeout_seconds: float | None = Field(default=None, gt=0)

    analysis_query: str = DEFAULT_ANALYSIS_QUERY
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    session_secret_key: str = ""
    session_cookie_name: str = "chat-session"
    session_max_age_seconds: int = 14 * 24 * 60 * 60
    context_backend: str = "cookie"
    max_context_chars: int = Field(default=0, ge=0)

    @field_validator("huggingface_token")
    @classmethod
    def _token_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("HUGGINGFACE_TOKEN is empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG")
        return value

    @field_validator("context_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in {"cookie", "memory"}:
            raise ValueError("CONTEXT_BACKEND must be 'cookie' or 'memory'")
        return value

    @property
    def is_development(self) -> bool:
        return (self.app_env or "").lower() in {"dev", "development", "local"}

    @property
    def effective_analysis_model(self) -> str:
        return self.analysis_model.strip() or self.chat_model


def get_session_secret(settings: Settings) -> str:
    candidate = (settings.session_secret_key or "").strip()
    if candidate.lower() in _UNSAFE_SECRETS or len(candidate) < 16:
        if settings.is_development:
            # Keep local development usable without a configured secret.
            return "dev-only-insecure-session-secret-change-in-production"
        raise ConfigError("Session secret is not configured. Set SESSION_SECRET_KEY (16+ characters).")
    return candidate


def load_settings() -> Settings:
    """Build settings from the environment, raising ConfigError instead of a pydantic error."""
    try:
        settings = Settings()
    except ValidationError as exc:
        problems = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "settings"
            if error.get("type") == "missing" and field == "huggingface_token":
                problems.append("HUGGINGFACE_TOKEN is not set in the environment or .env file")
            else:
                problems.append(f"{field.upper()}: {error.get('msg')}")
        raise ConfigError("; ".join(problems)) from exc
    get_session_secret(settings)
    return settings


@lru_cache
def get_settings() -> Settings:
    return load_settings()
