from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env lives at the project root: careportal/core/config.py -> careportal/core -> careportal -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

# OpenAI keys are only accepted with this prefix
OPENAI_KEY_PREFIX = "sk-"


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./careportal.db"
    # Comma separated origin list; "*" allows everything
    cors_origins: str = "*"
    # Max requests per IP per minute
    rate_limit_per_minute: int = 60
    rate_limit_register_per_minute: int = 3
    rate_limit_login_per_minute: int = 5
    rate_limit_register_per_hour: int = 100
    rate_limit_login_per_hour: int = 200
    # External symptom analysis service. Empty -> OpenAI is used when a key is set.
    analysis_api_url: str = ""
    analysis_api_timeout: float = 30.0
    analysis_model_version: str = "v1.0"
    # External nearby facility lookup
    nearby_api_url: str = "http://127.0.0.1:8000/nearby_medical_help"
    nearby_api_timeout: float = 10.0
    openai_api_key: str = ""
    # Several keys, comma separated. On auth/rate limit errors the next one is tried.
    openai_api_keys: str = ""
    openai_model: str = "gpt-4o-mini"
    # Image uploads (analysis-images bucket) are stored below this directory
    uploads_dir: str = str(_ROOT / "data" / "uploads")
    upload_max_mb: int = 10
    environment: str = "development"
    log_level: str = "INFO"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("openai_api_key", "openai_api_keys", "analysis_api_url", mode="before")
    @classmethod
    def strip_value(cls, v: str | None) -> str:
        return (v or "").strip()


settings = Settings()


def get_openai_keys() -> list[str]:
    """
    Valid OpenAI keys (``sk-`` prefixed, no whitespace).
    OPENAI_API_KEYS wins when set; otherwise OPENAI_API_KEY as a single entry.
    """
    keys_raw = (settings.openai_api_keys or "").strip()
    if keys_raw:
        keys = [k.strip() for k in keys_raw.split(",") if k.strip() and k.strip().startswith(OPENAI_KEY_PREFIX)]
        if keys:
            return keys
    single = (settings.openai_api_key or "").strip()
    if single and single.startswith(OPENAI_KEY_PREFIX):
        return [single]
    return []


def is_openai_configured() -> bool:
    return len(get_openai_keys()) > 0


def is_analysis_configured() -> bool:
    """Either the analysis service URL or at least one OpenAI key is available."""
    return bool(settings.analysis_api_url) or is_openai_configured()
