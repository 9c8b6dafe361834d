import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env - try multiple paths
load_dotenv()  # Current directory
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_PROVIDER_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_PROMPT_TEMPLATE = "Analyze this medical image. Patient's question: {query}"


@dataclass(frozen=True)
class Settings:
    google_api_key: Optional[str]
    provider_base_url: str
    model_name: str
    model_display_name: str
    provider_name: str
    service_name: str
    prompt_template: str
    provider_timeout: float
    provider_max_retries: int
    max_upload_bytes: int
    static_dir: Path
    allowed_origins: List[str]
    log_level: str
    host: str
    port: int

    @property
    def api_configured(self) -> bool:
        return bool(self.google_api_key)

    def require_api_key(self) -> str:
        """Return the provider key or fail; the server must not start without it."""
        if not self.google_api_key:
            raise RuntimeError("GOOGLE_API_KEY missing in environment/.env")
        return self.google_api_key


def load_settings() -> Settings:
    raw_origins = os.getenv("ALLOWED_ORIGINS", "*")
    max_upload_mb = float(os.getenv("MAX_UPLOAD_MB", "20"))
    return Settings(
        google_api_key=os.getenv("GOOGLE_API_KEY") or None,
        provider_base_url=os.getenv("PROVIDER_BASE_URL", DEFAULT_PROVIDER_BASE_URL),
        model_name=os.getenv("MODEL_NAME", "gemini-1.5-flash"),
        model_display_name=os.getenv("MODEL_DISPLAY_NAME", "Gemini 1.5 Flash"),
        provider_name=os.getenv("PROVIDER_NAME", "Google AI Studio"),
        service_name=os.getenv("SERVICE_NAME", "MediClick"),
        prompt_template=os.getenv("PROMPT_TEMPLATE", DEFAULT_PROMPT_TEMPLATE),
        provider_timeout=float(os.getenv("PROVIDER_TIMEOUT", "60")),
        provider_max_retries=int(os.getenv("PROVIDER_MAX_RETRIES", "0")),
        max_upload_bytes=int(max_upload_mb * 1024 * 1024),
        static_dir=Path(os.getenv("STATIC_DIR", str(BASE_DIR / "static"))),
        allowed_origins=[o.strip() for o in raw_origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


def describe_api_key(key: Optional[str]) -> str:
    """Masked form of the key for log lines."""
    if not key:
        return "<not set>"
    return f"{key[:6]}..."
