import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_AI_ENDPOINT = "https://models.github.ai/inference"
DEFAULT_AI_MODEL = "openai/gpt-4.1"


@dataclass(frozen=True)
class Settings:
    github_token: Optional[str] = None
    ai_endpoint: str = DEFAULT_AI_ENDPOINT
    ai_model: str = DEFAULT_AI_MODEL
    log_level: str = "INFO"
    log_file: Optional[str] = None
    export_dir: str = "exports"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])


def _split_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


def get_settings() -> Settings:
    """Read settings from the environment (and .env, loaded at import)."""
    return Settings(
        github_token=os.getenv("GITHUB_TOKEN") or None,
        ai_endpoint=os.getenv("GITHUB_AI_ENDPOINT", DEFAULT_AI_ENDPOINT),
        ai_model=os.getenv("GITHUB_AI_MODEL", DEFAULT_AI_MODEL),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
        export_dir=os.getenv("EXPORT_DIR", "exports"),
        cors_allow_origins=_split_origins(os.getenv("CORS_ALLOW_ORIGINS", "*")),
    )
